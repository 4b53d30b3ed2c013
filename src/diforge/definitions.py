from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from diforge._internal.naming import entry_id_for
from diforge._internal.type_checks import is_plain_function

DefinitionTarget: TypeAlias = "type[Any] | str"
"""A class, or the dotted name of a class, constructed by a ``ClassDefinition``."""


class Definition:
    """Base class of every declarative entry description."""

    __slots__ = ()


@dataclass(frozen=True, slots=True)
class ValueDefinition(Definition):
    """An already-built value returned as-is."""

    value: Any


@dataclass(frozen=True, slots=True)
class ReferenceDefinition(Definition):
    """An alias resolving another entry by id."""

    target: str


@dataclass(frozen=True, slots=True)
class FactoryDefinition(Definition):
    """A callable invoked to produce the entry. Never compiled."""

    factory: Callable[..., Any]
    parameters: Mapping[str, Any] = field(default_factory=dict)
    """Explicit values for factory parameters, keyed by parameter name."""

    def parameter(self, name: str, value: Any) -> FactoryDefinition:
        """Return a copy with an explicit value for one factory parameter.

        Args:
            name: Parameter name of the factory.
            value: Raw value or definition injected for that parameter.

        """
        return FactoryDefinition(factory=self.factory, parameters={**self.parameters, name: value})


@dataclass(frozen=True, slots=True)
class MethodCall:
    """A method invoked on a freshly constructed instance."""

    name: str
    args: tuple[Any, ...] = ()
    kwargs: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ClassDefinition(Definition):
    """Construction of a class instance.

    Injection always happens in the same order: constructor arguments, then
    properties in declaration order, then method calls in declaration order.
    With ``autowired`` set, constructor and method parameters that were not
    given explicitly are looked up from their class annotations.
    """

    target: DefinitionTarget | None = None
    args: tuple[Any, ...] = ()
    kwargs: Mapping[str, Any] = field(default_factory=dict)
    properties: tuple[tuple[str, Any], ...] = ()
    method_calls: tuple[MethodCall, ...] = ()
    autowired: bool = False

    def constructor(self, *args: Any, **kwargs: Any) -> ClassDefinition:
        """Return a copy with explicit constructor arguments.

        Args:
            *args: Positional constructor arguments (raw values or definitions).
            **kwargs: Keyword constructor arguments (raw values or definitions).

        """
        return self._replace(args=args, kwargs=kwargs)

    def constructor_parameter(self, name: str, value: Any) -> ClassDefinition:
        """Return a copy with one more keyword constructor argument.

        Args:
            name: Constructor parameter name.
            value: Raw value or definition injected for that parameter.

        """
        return self._replace(kwargs={**self.kwargs, name: value})

    def property(self, name: str, value: Any) -> ClassDefinition:
        """Return a copy that sets an attribute after construction.

        Args:
            name: Attribute name.
            value: Raw value or definition assigned to the attribute.

        """
        return self._replace(properties=(*self.properties, (name, value)))

    def method(self, name: str, *args: Any, **kwargs: Any) -> ClassDefinition:
        """Return a copy that calls a method after construction and property injection.

        Args:
            name: Method name.
            *args: Positional method arguments (raw values or definitions).
            **kwargs: Keyword method arguments (raw values or definitions).

        """
        call = MethodCall(name=name, args=args, kwargs=kwargs)
        return self._replace(method_calls=(*self.method_calls, call))

    def _replace(self, **changes: Any) -> ClassDefinition:
        values = {
            "target": self.target,
            "args": self.args,
            "kwargs": self.kwargs,
            "properties": self.properties,
            "method_calls": self.method_calls,
            "autowired": self.autowired,
        }
        values.update(changes)
        return ClassDefinition(**values)


@dataclass(frozen=True, slots=True)
class ArrayDefinition(Definition):
    """A list, tuple or dict whose items may themselves be definitions."""

    values: list[Any] | tuple[Any, ...] | dict[Any, Any]


@dataclass(frozen=True, slots=True)
class EnvironmentVariableDefinition(Definition):
    """The value of an environment variable, read at resolution time."""

    variable: str
    default: Any = None
    has_default: bool = False


@dataclass(frozen=True, slots=True)
class StringDefinition(Definition):
    """A string where ``{entry.id}`` placeholders are replaced by resolved entries."""

    expression: str


def normalize_definition(raw: Any) -> Definition:
    """Turn a raw definition-mapping value into a ``Definition``.

    Args:
        raw: Value supplied for an entry in a definition mapping.

    """
    if isinstance(raw, Definition):
        return raw
    if isinstance(raw, list | tuple | dict):
        return ArrayDefinition(raw)
    if is_plain_function(raw):
        return FactoryDefinition(raw)
    return ValueDefinition(raw)


def normalize_definitions(raw: Mapping[Any, Any]) -> dict[str, Definition]:
    """Normalize every key and value of a definition mapping.

    Class keys become their entry ids. A ``create()``/``autowire()`` definition
    without an explicit target constructs the class named by its key.

    Args:
        raw: Mapping of entry ids (or classes) to raw values or definitions.

    """
    definitions: dict[str, Definition] = {}
    for key, value in raw.items():
        definition = normalize_definition(value)
        if isinstance(definition, ClassDefinition) and definition.target is None:
            definition = definition._replace(target=key)
        definitions[entry_id_for(key)] = definition
    return definitions


__all__ = [
    "ArrayDefinition",
    "ClassDefinition",
    "Definition",
    "DefinitionTarget",
    "EnvironmentVariableDefinition",
    "FactoryDefinition",
    "MethodCall",
    "ReferenceDefinition",
    "StringDefinition",
    "ValueDefinition",
    "normalize_definition",
    "normalize_definitions",
]
