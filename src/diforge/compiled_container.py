from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, ClassVar

from diforge._internal.naming import entry_id_for
from diforge.container import Container
from diforge.exceptions import DIForgeCompiledContainerImmutableError


class CompiledContainer(Container):
    """Base class of generated containers.

    Generated subclasses declare ``METHOD_MAPPING`` (entry id to method name)
    and one resolution method per compiled entry. Entries in that mapping are
    served by the generated methods; everything else goes through the
    interpreted resolution of ``Container`` over the definitions passed to
    the constructor.

    A compiled container cannot be mutated: ``set`` always raises.
    """

    METHOD_MAPPING: ClassVar[Mapping[str, str]] = {}

    def __init__(
        self,
        definitions: Mapping[Any, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(definitions, **kwargs)
        self._dispatch_table: dict[str, Callable[[], Any]] = {
            entry_id: getattr(self, method_name)
            for entry_id, method_name in type(self).METHOD_MAPPING.items()
        }

    def has(self, key: Any) -> bool:
        if entry_id_for(key) in self._dispatch_table:
            return True
        return super().has(key)

    def set(self, key: Any, value: Any) -> None:
        """Reject runtime mutation.

        Args:
            key: Entry id or class.
            value: Ignored.

        Raises:
            DIForgeCompiledContainerImmutableError: Always.

        """
        raise DIForgeCompiledContainerImmutableError(entry_id_for(key))

    def is_entry_compiled(self, key: Any) -> bool:
        """Return true when the entry has a generated resolution method.

        This does not say whether the entry is resolvable: entries served by the
        interpreted fallback report ``False``.

        Args:
            key: Entry id or class.

        """
        return entry_id_for(key) in self._dispatch_table

    def compiled_entries(self) -> tuple[str, ...]:
        """Return the sorted ids of all compiled entries."""
        return tuple(sorted(self._dispatch_table))

    def _resolve_entry(self, entry_id: str) -> Any:
        method = self._dispatch_table.get(entry_id)
        if method is None:
            return super()._resolve_entry(entry_id)
        with self._resolving(entry_id):
            return method()
