from __future__ import annotations

import keyword
import pkgutil
import re
from typing import Any

from diforge._internal.type_checks import is_runtime_class

GENERATED_MODULE_PREFIX = "_module_"
GENERATED_TYPE_PREFIX = "_type_"
_GENERATED_GLOBAL_PATTERN = re.compile(
    rf"(?:{GENERATED_MODULE_PREFIX}|{GENERATED_TYPE_PREFIX})[0-9]+",
)


def entry_id_for(key: Any) -> str:
    """Return the entry id used for a ``get``/``has`` key.

    Strings are used as-is; classes map to ``"<module>.<qualname>"``.

    Args:
        key: Entry id or class.

    """
    if isinstance(key, str):
        return key
    if is_runtime_class(key):
        return f"{key.__module__}.{key.__qualname__}"
    msg = f"Entry ids must be strings or classes, got {key!r}."
    raise TypeError(msg)


def locate_type(name: str) -> type[Any] | None:
    """Import the class named by a dotted entry id, or return ``None``."""
    if not name or name.startswith(".") or "<" in name:
        return None
    try:
        located = pkgutil.resolve_name(name)
    except (ImportError, AttributeError, ValueError):
        return None
    return located if is_runtime_class(located) else None


def is_valid_identifier(name: str) -> bool:
    """Return true when ``name`` can be used as a Python class name."""
    return name.isidentifier() and not keyword.iskeyword(name)


def is_generated_global_name(name: str) -> bool:
    """Return true when ``name`` has the shape of a generated module-level alias."""
    return _GENERATED_GLOBAL_PATTERN.fullmatch(name) is not None
