from __future__ import annotations

import logging
from pathlib import Path

import pytest

from diforge._internal.compilation.artifacts import ArtifactIdentity
from diforge._internal.compilation.manager import CompiledContainersManager
from diforge._internal.compilation.planner import LiteralNode
from diforge._internal.introspection import SignatureTypeIntrospector
from diforge.compiled_container import CompiledContainer
from diforge.definitions import ClassDefinition, ValueDefinition
from diforge.exceptions import DIForgeInvalidArtifactNameError, DIForgeObjectNotCompilableError
from diforge.helpers import factory


class _Clock:
    pass


class _NeedsName:
    def __init__(self, name: str) -> None:
        self.name = name


_CLOCK_ID = f"{__name__}._Clock"
_NEEDS_NAME_ID = f"{__name__}._NeedsName"


def _manager() -> CompiledContainersManager:
    return CompiledContainersManager(introspector=SignatureTypeIntrospector())


def test_plan_entries_puts_explicit_entries_first_and_skips_factories() -> None:
    plans = _manager().plan_entries(
        definitions={"b": ValueDefinition(1), "a": factory(lambda: 2), "c": ValueDefinition(3)},
        discovered={_CLOCK_ID: ClassDefinition(target=_Clock, autowired=True)},
    )

    assert [plan.entry_id for plan in plans] == ["b", "c", _CLOCK_ID]


def test_plan_entries_skips_discovered_failures_and_logs_them(
    caplog: pytest.LogCaptureFixture,
) -> None:
    with caplog.at_level(logging.DEBUG, logger="diforge._internal.compilation.manager"):
        plans = _manager().plan_entries(
            definitions={},
            discovered={_NEEDS_NAME_ID: ClassDefinition(target=_NeedsName, autowired=True)},
        )

    assert plans == []
    assert f"Discovered class '{_NEEDS_NAME_ID}' left uncompiled" in caplog.text


def test_plan_entries_ignores_discovered_entries_with_explicit_definitions() -> None:
    plans = _manager().plan_entries(
        definitions={_CLOCK_ID: ValueDefinition("explicit")},
        discovered={_CLOCK_ID: ClassDefinition(target=_Clock, autowired=True)},
    )

    assert [(plan.entry_id, plan.root) for plan in plans] == [(_CLOCK_ID, LiteralNode("explicit"))]


def test_explicit_failure_aborts_the_build(tmp_path: Path) -> None:
    identity = ArtifactIdentity(directory=tmp_path, name="Broken", parent_type=CompiledContainer)

    with pytest.raises(DIForgeObjectNotCompilableError):
        _manager().build_container_class(
            identity=identity,
            definitions={"foo": ValueDefinition(object())},
        )

    assert not identity.path.exists()


def test_invalid_name_is_rejected_before_planning(tmp_path: Path) -> None:
    identity = ArtifactIdentity(directory=tmp_path, name="1nvalid", parent_type=CompiledContainer)

    with pytest.raises(DIForgeInvalidArtifactNameError):
        _manager().build_container_class(
            identity=identity,
            definitions={"foo": ValueDefinition(object())},
        )


def test_build_container_class_returns_loaded_class(tmp_path: Path) -> None:
    identity = ArtifactIdentity(directory=tmp_path, name="Loaded", parent_type=CompiledContainer)

    container_class = _manager().build_container_class(
        identity=identity,
        definitions={"foo": ValueDefinition("bar")},
        discovered={_CLOCK_ID: ClassDefinition(target=_Clock, autowired=True)},
    )

    container = container_class()
    assert container.compiled_entries() == tuple(sorted(["foo", _CLOCK_ID]))
    assert isinstance(container.get(_Clock), _Clock)
