from __future__ import annotations

import contextlib
import hashlib
import importlib.util
import logging
import os
import sys
import tempfile
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from diforge._internal.naming import is_generated_global_name, is_valid_identifier
from diforge._internal.type_checks import is_addressable_type
from diforge.compiled_container import CompiledContainer
from diforge.container import Container
from diforge.defaults import DEFAULT_ARTIFACT_SUFFIX
from diforge.exceptions import (
    DIForgeInvalidArtifactNameError,
    DIForgeInvalidParentTypeError,
)

_MODULE_NAME_PREFIX = "diforge_compiled_"
logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ArtifactIdentity:
    """Where a compiled container lives and what it is named.

    The file at ``path`` is the only cache key: its presence means the
    container was already compiled, whatever the current definitions are.
    """

    directory: Path
    name: str
    parent_type: type[Container]

    @property
    def path(self) -> Path:
        return self.directory / f"{self.name}{DEFAULT_ARTIFACT_SUFFIX}"


class ArtifactCache:
    """Persists generated container modules once and loads their classes."""

    def __init__(self) -> None:
        self._loaded: dict[Path, type[CompiledContainer]] = {}

    def validate(self, identity: ArtifactIdentity) -> None:
        """Check the identity before anything is generated or written.

        Args:
            identity: Artifact to check.

        Raises:
            DIForgeInvalidArtifactNameError: The name is not a valid class name or
                shadows a generated global.
            DIForgeInvalidParentTypeError: The parent type is not an importable
                ``Container`` subclass.

        """
        if not is_valid_identifier(identity.name):
            raise DIForgeInvalidArtifactNameError(identity.name)
        if is_generated_global_name(identity.name):
            raise DIForgeInvalidArtifactNameError(
                identity.name,
                "is reserved for the globals of the generated module",
            )
        parent_type: Any = identity.parent_type
        if not isinstance(parent_type, type) or not issubclass(parent_type, Container):
            raise DIForgeInvalidParentTypeError(parent_type, "it is not a Container subclass")
        if not is_addressable_type(parent_type):
            raise DIForgeInvalidParentTypeError(
                parent_type,
                "it cannot be imported from its module",
            )

    def obtain(self, identity: ArtifactIdentity, build: Callable[[], str]) -> Path:
        """Return the artifact path, generating and writing it only if it is missing.

        Args:
            identity: Artifact to obtain.
            build: Produces the module source; called at most once, and only
                when no file exists yet.

        """
        self.validate(identity)
        path = identity.path
        if path.exists():
            logger.debug("Compiled container '%s' reused from %s", identity.name, path)
            return path

        source = build()
        self._write_atomically(path, source)
        logger.info("Compiled container '%s' written to %s", identity.name, path)
        return path

    def load(self, identity: ArtifactIdentity) -> type[CompiledContainer]:
        """Import the artifact and return its container class.

        Args:
            identity: Artifact previously obtained.

        """
        path = identity.path.resolve()
        cached = self._loaded.get(path)
        if cached is not None:
            return cached

        module_name = _module_name_for(path)
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            msg = f"Cannot load compiled container module from {path}"
            raise ImportError(msg)

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(module_name, None)
            raise

        container_class = getattr(module, identity.name, None)
        if not isinstance(container_class, type) or not issubclass(
            container_class,
            CompiledContainer,
        ):
            msg = f"{path} does not define a compiled container class named '{identity.name}'"
            raise ImportError(msg)

        self._loaded[path] = container_class
        logger.debug("Compiled container '%s' loaded as module '%s'", identity.name, module_name)
        return container_class

    def _write_atomically(self, path: Path, source: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        descriptor, temporary_name = tempfile.mkstemp(
            dir=path.parent,
            prefix=f".{path.stem}.",
            suffix=".tmp",
        )
        temporary_path = Path(temporary_name)
        try:
            with os.fdopen(descriptor, "w", encoding="utf-8") as handle:
                handle.write(source)
            os.replace(temporary_path, path)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                temporary_path.unlink()
            raise


def _module_name_for(path: Path) -> str:
    digest = hashlib.sha1(str(path).encode("utf-8"), usedforsecurity=False).hexdigest()
    return f"{_MODULE_NAME_PREFIX}{digest[:16]}"
