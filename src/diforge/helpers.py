from __future__ import annotations

from collections.abc import Callable
from typing import Any

from diforge._internal.naming import entry_id_for
from diforge.definitions import (
    ClassDefinition,
    DefinitionTarget,
    EnvironmentVariableDefinition,
    FactoryDefinition,
    ReferenceDefinition,
    StringDefinition,
    ValueDefinition,
)

_NO_DEFAULT: Any = object()


def create(target: DefinitionTarget | None = None) -> ClassDefinition:
    """Define an entry built by calling a class with explicit arguments only.

    Without a target the class named by the entry key is constructed.

    Args:
        target: Class or dotted class name to construct.

    Examples:
        .. code-block:: python

            definitions = {
                Mailer: create().constructor("smtp.local").property("retries", 3),
            }

    """
    return ClassDefinition(target=target)


def autowire(target: DefinitionTarget | None = None) -> ClassDefinition:
    """Define an entry built by calling a class, filling missing parameters from annotations.

    Args:
        target: Class or dotted class name to construct.

    """
    return ClassDefinition(target=target, autowired=True)


def get(entry: Any) -> ReferenceDefinition:
    """Define an alias to another entry.

    Args:
        entry: Entry id or class of the target entry.

    """
    return ReferenceDefinition(entry_id_for(entry))


def factory(function: Callable[..., Any]) -> FactoryDefinition:
    """Define an entry produced by a callable.

    Args:
        function: Callable invoked on first resolution. Its parameters are
            autowired unless set through ``.parameter(...)``.

    """
    return FactoryDefinition(function)


def value(raw: Any) -> ValueDefinition:
    """Define an entry holding ``raw`` as-is, even when it is a list or a function.

    Args:
        raw: Value returned by the container.

    """
    return ValueDefinition(raw)


def env(variable: str, default: Any = _NO_DEFAULT) -> EnvironmentVariableDefinition:
    """Define an entry read from an environment variable at resolution time.

    Args:
        variable: Environment variable name.
        default: Raw value or definition used when the variable is not set.

    """
    if default is _NO_DEFAULT:
        return EnvironmentVariableDefinition(variable)
    return EnvironmentVariableDefinition(variable, default=default, has_default=True)


def string(expression: str) -> StringDefinition:
    """Define a string with ``{entry.id}`` placeholders replaced by resolved entries.

    Args:
        expression: Template such as ``"{app.root}/cache"``.

    """
    return StringDefinition(expression)


__all__ = ["autowire", "create", "env", "factory", "get", "string", "value"]
