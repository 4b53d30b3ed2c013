from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from diforge._internal.autowiring import ConcreteTypeAutowiringPolicy
from diforge._internal.compilation.artifacts import ArtifactCache, ArtifactIdentity
from diforge._internal.compilation.manager import CompiledContainersManager
from diforge._internal.introspection import SignatureTypeIntrospector, TypeIntrospector
from diforge._internal.naming import entry_id_for, locate_type
from diforge.container import Container
from diforge.defaults import (
    DEFAULT_COMPILED_CONTAINER_CLASS_NAME,
    DEFAULT_COMPILED_CONTAINER_PARENT_TYPE,
    DEFAULT_USE_AUTOWIRING,
)
from diforge.definitions import ClassDefinition, Definition, normalize_definitions
from diforge.discovery import KnownClasses

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CompilationOptions:
    """Where and how ``ContainerBuilder.build`` writes the compiled container.

    Args:
        directory: Directory holding the generated module.
        container_class: Name of the generated class and of its module file.
        parent_type: Base class of the generated container.

    """

    directory: Path
    container_class: str = DEFAULT_COMPILED_CONTAINER_CLASS_NAME
    parent_type: type[Container] = DEFAULT_COMPILED_CONTAINER_PARENT_TYPE

    @property
    def identity(self) -> ArtifactIdentity:
        return ArtifactIdentity(
            directory=self.directory,
            name=self.container_class,
            parent_type=self.parent_type,
        )


class ContainerBuilder:
    """Assemble definitions and build an interpreted or compiled container.

    Examples:
        .. code-block:: python

            builder = ContainerBuilder()
            builder.add_definitions({"db.dsn": "sqlite://", Database: autowire()})
            builder.enable_compilation("var/cache")
            container = builder.build()

    """

    def __init__(
        self,
        *,
        introspector: TypeIntrospector | None = None,
        artifacts: ArtifactCache | None = None,
    ) -> None:
        """Initialize an empty builder.

        Args:
            introspector: Type Introspector shared by compilation and the built
                containers. Defaults to the ``inspect``-based implementation.
            artifacts: Artifact cache used to persist and load compiled
                containers. Pass one cache to several builders to share loaded
                classes.

        """
        self._introspector = introspector or SignatureTypeIntrospector()
        self._policy = ConcreteTypeAutowiringPolicy()
        self._definitions: dict[str, Definition] = {}
        self._use_autowiring = DEFAULT_USE_AUTOWIRING
        self._compilation: CompilationOptions | None = None
        self._known_classes: list[KnownClasses] = []
        self._manager = CompiledContainersManager(
            introspector=self._introspector,
            policy=self._policy,
            artifacts=artifacts,
        )

    def add_definitions(self, definitions: Mapping[Any, Any]) -> ContainerBuilder:
        """Add entries; an id added again replaces the earlier definition.

        Args:
            definitions: Mapping of entry ids (or classes) to raw values or definitions.

        """
        self._definitions.update(normalize_definitions(definitions))
        return self

    def use_autowiring(self, enabled: bool) -> ContainerBuilder:
        """Enable or disable construction of unregistered classes from annotations.

        Args:
            enabled: Whether built containers autowire.

        """
        self._use_autowiring = enabled
        return self

    def enable_compilation(
        self,
        directory: str | Path,
        container_class: str = DEFAULT_COMPILED_CONTAINER_CLASS_NAME,
        parent_type: type[Container] = DEFAULT_COMPILED_CONTAINER_PARENT_TYPE,
    ) -> ContainerBuilder:
        """Compile the container into ``<directory>/<container_class>.py``.

        The file is written by the first ``build`` and reused as-is afterwards,
        even when the definitions change. Delete it to recompile.

        Args:
            directory: Directory holding the generated module.
            container_class: Name of the generated class. Must be a valid
                Python class name not shaped like ``_module_<n>`` or ``_type_<n>``.
            parent_type: Base class of the generated container. Must be a
                ``Container`` subclass importable from its module.

        """
        self._compilation = CompilationOptions(
            directory=Path(directory),
            container_class=container_class,
            parent_type=parent_type,
        )
        return self

    def compile_all_classes(self, known_classes: KnownClasses) -> ContainerBuilder:
        """Compile the given classes as autowired entries.

        Classes that already have an explicit entry, cannot be imported, or
        cannot be compiled keep being resolved by the interpreted container.

        Args:
            known_classes: Source of dotted class names.

        """
        self._known_classes.append(known_classes)
        return self

    def build(self) -> Container:
        """Build a container over the current definitions.

        Raises:
            DIForgeInvalidArtifactNameError: The compiled class name is invalid.
            DIForgeInvalidParentTypeError: The compiled parent type is unusable.
            DIForgeInvalidDefinitionError: An explicit entry cannot be compiled.

        """
        definitions = dict(self._definitions)
        if self._compilation is None:
            return Container(
                definitions,
                use_autowiring=self._use_autowiring,
                introspector=self._introspector,
            )

        # Name and parent errors surface before known classes are imported.
        self._manager.validate(self._compilation.identity)
        container_class = self._manager.build_container_class(
            identity=self._compilation.identity,
            definitions=definitions,
            discovered=self._discover(definitions),
        )
        return container_class(
            definitions,
            use_autowiring=self._use_autowiring,
            introspector=self._introspector,
        )

    def _discover(self, definitions: Mapping[str, Definition]) -> dict[str, Definition]:
        discovered: dict[str, Definition] = {}
        for known_classes in self._known_classes:
            for name in known_classes:
                if name in definitions or name in discovered:
                    continue
                target = locate_type(name)
                if not self._policy.is_eligible_concrete(target):
                    logger.debug("Known class '%s' skipped: not an autowirable class", name)
                    continue
                if entry_id_for(target) != name:
                    logger.debug("Known class '%s' skipped: it is an alias of another name", name)
                    continue
                discovered[name] = ClassDefinition(target=target, autowired=True)
        return discovered
