from __future__ import annotations

import pkgutil
import types
from typing import Any, TypeGuard

_LOCALS_MARKER = "<locals>"

# Values rendered as literals by the code generator.
SCALAR_TYPES: tuple[type[Any], ...] = (str, bytes, int, float, complex, bool, type(None))


def is_runtime_class(candidate: object) -> TypeGuard[type[Any]]:
    """Return true when candidate is a runtime class safe for class-only operations.

    Args:
        candidate: Value being checked for eligibility or runtime type constraints.

    """
    return isinstance(candidate, type) and not isinstance(candidate, types.GenericAlias)


def is_scalar(candidate: object) -> bool:
    """Return true when candidate is a plain scalar value (string, number, bool or None)."""
    return type(candidate) in SCALAR_TYPES


def is_plain_function(candidate: object) -> bool:
    """Return true for functions and bound methods written in Python (lambdas included)."""
    return isinstance(candidate, types.FunctionType | types.MethodType)


def is_addressable_type(candidate: object) -> TypeGuard[type[Any]]:
    """Return true when a class can be imported back from its module and qualified name.

    Classes defined inside function bodies, classes created with ``type(...)``
    under a name that does not exist in their module, and generic aliases are
    not addressable.

    Args:
        candidate: Class being checked.

    """
    if not is_runtime_class(candidate):
        return False
    qualname = candidate.__qualname__
    if _LOCALS_MARKER in qualname:
        return False
    try:
        located = pkgutil.resolve_name(f"{candidate.__module__}:{qualname}")
    except (ImportError, AttributeError, ValueError):
        return False
    return located is candidate


__all__ = [
    "SCALAR_TYPES",
    "is_addressable_type",
    "is_plain_function",
    "is_runtime_class",
    "is_scalar",
]
