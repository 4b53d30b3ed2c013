from __future__ import annotations

import inspect
from collections.abc import Callable, Iterable, Iterator
from types import ModuleType
from typing import Any

from diforge._internal.naming import entry_id_for


class KnownClasses:
    """Source of fully-qualified class names to compile ahead of time.

    The names are read once, when the builder compiles the container. A lazy
    iterable is not consumed before that point, and names that cannot be
    imported or are not autowirable are ignored.

    Examples:
        .. code-block:: python

            builder.compile_all_classes(KnownClasses.from_module(services))
            builder.compile_all_classes(KnownClasses.from_iterable(read_class_map()))

    """

    def __init__(self, names: Callable[[], Iterable[str]]) -> None:
        self._names = names

    @classmethod
    def from_iterable(cls, names: Iterable[str]) -> KnownClasses:
        """Wrap an iterable of dotted class names without consuming it.

        Args:
            names: Names such as ``"app.services.Mailer"``. Generators are fine.

        """
        return cls(lambda: names)

    @classmethod
    def from_types(cls, *types: type[Any]) -> KnownClasses:
        """Use the entry ids of the given classes.

        Args:
            *types: Classes to compile.

        """
        names = tuple(entry_id_for(cls_type) for cls_type in types)
        return cls(lambda: names)

    @classmethod
    def from_module(cls, module: ModuleType) -> KnownClasses:
        """Use every class defined in ``module`` (imported names are skipped).

        Args:
            module: Module to scan.

        """

        def names() -> Iterator[str]:
            for _, member in inspect.getmembers(module, inspect.isclass):
                if member.__module__ == module.__name__:
                    yield entry_id_for(member)

        return cls(names)

    def __iter__(self) -> Iterator[str]:
        seen: set[str] = set()
        for name in self._names():
            if name in seen:
                continue
            seen.add(name)
            yield name
