from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any, TypeVar, overload

from diforge._internal.autowiring import ConcreteTypeAutowiringPolicy
from diforge._internal.introspection import SignatureTypeIntrospector, TypeIntrospector
from diforge._internal.naming import entry_id_for, locate_type
from diforge._internal.resolution import DefinitionResolver
from diforge._internal.type_checks import is_runtime_class
from diforge.definitions import (
    ClassDefinition,
    Definition,
    normalize_definition,
    normalize_definitions,
)
from diforge.exceptions import (
    DIForgeCircularDependencyError,
    DIForgeDependencyNotFoundError,
    DIForgeEnvironmentVariableNotDefinedError,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Container:
    """Resolve entries on demand from a definition mapping.

    Entry ids are strings. Classes can be used as keys everywhere and map to
    ``"<module>.<qualname>"``. Each entry is resolved once and shared; use
    ``make`` for a fresh value.

    With autowiring enabled (the default), unregistered concrete classes are
    built from their ``__init__`` annotations. The container answers its own
    class ids with itself, so a parameter annotated with ``Container`` receives
    the resolving container.
    """

    def __init__(
        self,
        definitions: Mapping[Any, Any] | None = None,
        *,
        use_autowiring: bool = True,
        introspector: TypeIntrospector | None = None,
    ) -> None:
        """Initialize a container over a definition mapping.

        Args:
            definitions: Mapping of entry ids (or classes) to raw values or
                definitions. Raw lists, tuples and dicts become array
                definitions and plain functions become factories.
            use_autowiring: Construct unregistered concrete classes from their
                annotations.
            introspector: Type Introspector used for autowiring. Defaults to
                the ``inspect``-based implementation.

        Examples:
            .. code-block:: python

                container = Container(
                    {
                        "db.dsn": "sqlite://",
                        Database: create().constructor(get("db.dsn")),
                    },
                )
                database = container.get(Database)

        """
        self._definitions: dict[str, Definition] = normalize_definitions(definitions or {})
        self._use_autowiring = use_autowiring
        self._introspector = introspector or SignatureTypeIntrospector()
        self._autowiring_policy = ConcreteTypeAutowiringPolicy()
        self._resolver = DefinitionResolver(
            container=self,
            introspector=self._introspector,
            policy=self._autowiring_policy,
        )
        self._known_types: dict[str, type[Any]] = {}
        self._resolution_stack: list[str] = []
        self._resolved_entries: dict[str, Any] = {
            entry_id_for(cls): self for cls in type(self).__mro__ if issubclass(cls, Container)
        }

    @overload
    def get(self, key: type[T]) -> T: ...

    @overload
    def get(self, key: str) -> Any: ...

    def get(self, key: Any) -> Any:
        """Return the shared value of an entry, resolving it on first access.

        Args:
            key: Entry id or class.

        Raises:
            DIForgeDependencyNotFoundError: The entry is not defined and cannot
                be autowired.

        """
        entry_id = self._remember_key(key)
        if entry_id in self._resolved_entries:
            return self._resolved_entries[entry_id]

        value = self._resolve_entry(entry_id)
        self._resolved_entries[entry_id] = value
        return value

    @overload
    def make(self, key: type[T]) -> T: ...

    @overload
    def make(self, key: str) -> Any: ...

    def make(self, key: Any) -> Any:
        """Resolve an entry again and return a fresh value that is not shared.

        Args:
            key: Entry id or class.

        """
        entry_id = self._remember_key(key)
        definition = self._definition_for(entry_id)
        if definition is None:
            raise DIForgeDependencyNotFoundError(entry_id)
        with self._resolving(entry_id):
            return self._resolver.resolve(definition, (entry_id,))

    def has(self, key: Any) -> bool:
        """Return true when ``get(key)`` can produce a value.

        Args:
            key: Entry id or class.

        """
        entry_id = self._remember_key(key)
        if entry_id in self._resolved_entries:
            return True
        return self._definition_for(entry_id) is not None

    def set(self, key: Any, value: Any) -> None:
        """Define or replace an entry.

        Definitions replace the entry definition. Any other value is stored as
        the resolved entry as-is.

        Args:
            key: Entry id or class.
            value: Definition or raw value.

        """
        entry_id = self._remember_key(key)
        if isinstance(value, Definition):
            definition = normalize_definition(value)
            if isinstance(definition, ClassDefinition) and definition.target is None:
                definition = definition._replace(target=key)
            self._definitions[entry_id] = definition
            self._resolved_entries.pop(entry_id, None)
            return
        self._resolved_entries[entry_id] = value

    def is_entry_compiled(self, key: Any) -> bool:
        """Return true when the entry is served by generated code.

        Interpreted containers never compile entries.

        Args:
            key: Entry id or class.

        """
        return False

    def get_definition(self, key: Any) -> Definition | None:
        """Return the explicit definition registered for an entry, if any.

        Args:
            key: Entry id or class.

        """
        return self._definitions.get(entry_id_for(key))

    def read_environment_variable(
        self,
        variable: str,
        default: Callable[[], Any] | None = None,
    ) -> Any:
        """Return an environment variable, falling back to a lazily resolved default.

        Args:
            variable: Environment variable name.
            default: Callable producing the default value when the variable is unset.

        """
        value = os.environ.get(variable)
        if value is not None:
            return value
        if default is None:
            raise DIForgeEnvironmentVariableNotDefinedError(variable)
        return default()

    def _resolve_entry(self, entry_id: str) -> Any:
        definition = self._definition_for(entry_id)
        if definition is None:
            raise DIForgeDependencyNotFoundError(entry_id)
        with self._resolving(entry_id):
            return self._resolver.resolve(definition, (entry_id,))

    def _definition_for(self, entry_id: str) -> Definition | None:
        definition = self._definitions.get(entry_id)
        if definition is not None or not self._use_autowiring:
            return definition

        target = self._known_types.get(entry_id) or locate_type(entry_id)
        if not self._autowiring_policy.is_eligible_concrete(target):
            return None
        if entry_id_for(target) != entry_id:
            return None
        logger.debug("Autowiring entry '%s'", entry_id)
        return ClassDefinition(target=target, autowired=True)

    def _remember_key(self, key: Any) -> str:
        entry_id = entry_id_for(key)
        if is_runtime_class(key):
            self._known_types.setdefault(entry_id, key)
        return entry_id

    @contextmanager
    def _resolving(self, entry_id: str) -> Iterator[None]:
        if entry_id in self._resolution_stack:
            raise DIForgeCircularDependencyError(entry_id, self._resolution_stack)
        self._resolution_stack.append(entry_id)
        try:
            yield
        finally:
            self._resolution_stack.pop()
