from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from diforge._internal.autowiring import ConcreteTypeAutowiringPolicy
from diforge._internal.compilation.artifacts import ArtifactCache, ArtifactIdentity
from diforge._internal.compilation.planner import DefinitionCompilationPlanner, EntryPlan
from diforge._internal.compilation.templates.renderer import CompiledContainerRenderer
from diforge._internal.introspection import TypeIntrospector
from diforge.compiled_container import CompiledContainer
from diforge.definitions import Definition
from diforge.exceptions import DIForgeInvalidDefinitionError

logger = logging.getLogger(__name__)


class CompiledContainersManager:
    """Manager for compiled container artifacts."""

    def __init__(
        self,
        *,
        introspector: TypeIntrospector,
        policy: ConcreteTypeAutowiringPolicy | None = None,
        artifacts: ArtifactCache | None = None,
    ) -> None:
        self._planner = DefinitionCompilationPlanner(
            introspector=introspector,
            policy=policy or ConcreteTypeAutowiringPolicy(),
        )
        self._renderer = CompiledContainerRenderer()
        self._artifacts = artifacts or ArtifactCache()

    def validate(self, identity: ArtifactIdentity) -> None:
        """Check the artifact name and parent type before any discovery or planning."""
        self._artifacts.validate(identity)

    def build_container_class(
        self,
        *,
        identity: ArtifactIdentity,
        definitions: Mapping[str, Definition],
        discovered: Mapping[str, Definition] | None = None,
    ) -> type[CompiledContainer]:
        """Get the compiled container class for the given definitions.

        Generates the container code only when no artifact exists yet for
        ``identity``; an existing artifact is loaded as-is.

        Args:
            identity: Directory, class name and parent type of the artifact.
            definitions: Explicit entries. An entry that cannot be compiled
                aborts the build.
            discovered: Entries found through known-classes discovery. An entry
                that cannot be compiled is left to the interpreted fallback.

        """
        self.validate(identity)

        def build() -> str:
            plans = self.plan_entries(definitions=definitions, discovered=discovered or {})
            return self._renderer.get_container_code(
                plans=plans,
                class_name=identity.name,
                parent_type=identity.parent_type,
            )

        self._artifacts.obtain(identity, build)
        return self._artifacts.load(identity)

    def plan_entries(
        self,
        *,
        definitions: Mapping[str, Definition],
        discovered: Mapping[str, Definition],
    ) -> list[EntryPlan]:
        """Plan every compilable entry, explicit entries first.

        Args:
            definitions: Explicit entries.
            discovered: Entries found through known-classes discovery.

        Raises:
            DIForgeInvalidDefinitionError: An explicit entry cannot be compiled.

        """
        plans: list[EntryPlan] = []
        for entry_id, definition in definitions.items():
            plan = self._planner.plan_entry(entry_id, definition)
            if plan is not None:
                plans.append(plan)

        for entry_id, definition in discovered.items():
            if entry_id in definitions:
                continue
            try:
                plan = self._planner.plan_entry(entry_id, definition)
            except DIForgeInvalidDefinitionError as error:
                logger.debug("Discovered class '%s' left uncompiled: %s", entry_id, error)
                continue
            if plan is not None:
                plans.append(plan)

        self._log_plan_summary(definitions=definitions, discovered=discovered, plans=plans)
        return plans

    def _log_plan_summary(
        self,
        *,
        definitions: Mapping[str, Any],
        discovered: Mapping[str, Any],
        plans: list[EntryPlan],
    ) -> None:
        logger.debug(
            "Compilation plan: explicit_entry_count=%d discovered_entry_count=%d "
            "compiled_entry_count=%d",
            len(definitions),
            len(discovered),
            len(plans),
        )
