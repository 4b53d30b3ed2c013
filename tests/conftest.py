"""Shared pytest fixtures for diforge tests."""

from __future__ import annotations

import uuid
from pathlib import Path

import pytest


@pytest.fixture()
def compilation_dir(tmp_path: Path) -> Path:
    """Directory receiving generated containers; not created up front."""
    return tmp_path / "compiled"


@pytest.fixture()
def container_class_name() -> str:
    """Unique generated class name, so loaded modules never collide between tests."""
    return f"CompiledContainer{uuid.uuid4().hex}"

