from __future__ import annotations

import sys
from collections.abc import Iterator

from diforge.discovery import KnownClasses


class _First:
    pass


class _Second:
    class Inner:
        pass


def test_from_iterable_is_consumed_only_when_iterated() -> None:
    consumed: list[str] = []

    def names() -> Iterator[str]:
        for name in ("app.First", "app.Second"):
            consumed.append(name)
            yield name

    known_classes = KnownClasses.from_iterable(names())

    assert consumed == []
    assert list(known_classes) == ["app.First", "app.Second"]
    assert consumed == ["app.First", "app.Second"]


def test_duplicate_names_are_yielded_once() -> None:
    known_classes = KnownClasses.from_iterable(["app.First", "app.Second", "app.First"])

    assert list(known_classes) == ["app.First", "app.Second"]


def test_from_types_uses_entry_ids() -> None:
    known_classes = KnownClasses.from_types(_First, _Second.Inner)

    assert list(known_classes) == [f"{__name__}._First", f"{__name__}._Second.Inner"]


def test_from_module_lists_classes_defined_in_module() -> None:
    names = set(KnownClasses.from_module(sys.modules[__name__]))

    assert names == {f"{__name__}._First", f"{__name__}._Second"}
