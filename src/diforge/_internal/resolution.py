from __future__ import annotations

import re
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from diforge._internal.arguments import ArgumentBinding, bind_arguments
from diforge._internal.autowiring import ConcreteTypeAutowiringPolicy
from diforge._internal.introspection import TypeIntrospector
from diforge._internal.naming import locate_type
from diforge.definitions import (
    ArrayDefinition,
    ClassDefinition,
    Definition,
    EnvironmentVariableDefinition,
    FactoryDefinition,
    ReferenceDefinition,
    StringDefinition,
    ValueDefinition,
)
from diforge.exceptions import DIForgeInvalidDefinitionError, PathSegment

if TYPE_CHECKING:
    from diforge.container import Container

STRING_PLACEHOLDER_PATTERN = re.compile(r"\{([^{}]+)\}")


def resolve_class_target(definition: ClassDefinition, path: Sequence[PathSegment]) -> type[Any]:
    """Return the class constructed by a ``ClassDefinition``.

    Args:
        definition: Class definition whose target is a class or a dotted class name.
        path: Nesting trail used when the target cannot be found.

    """
    target = definition.target
    if isinstance(target, str):
        located = locate_type(target)
        if located is None:
            raise DIForgeInvalidDefinitionError(path, f"class '{target}' does not exist")
        return located
    if not isinstance(target, type):
        raise DIForgeInvalidDefinitionError(path, f"{target!r} is not a class")
    return target


class DefinitionResolver:
    """Interpreted resolution of definitions against a container."""

    def __init__(
        self,
        *,
        container: Container,
        introspector: TypeIntrospector,
        policy: ConcreteTypeAutowiringPolicy,
    ) -> None:
        self._container = container
        self._introspector = introspector
        self._policy = policy

    def resolve(self, definition: Definition, path: Sequence[PathSegment]) -> Any:
        """Build the value described by ``definition``.

        Args:
            definition: Definition to resolve.
            path: Nesting trail starting with the entry id.

        """
        if isinstance(definition, ValueDefinition):
            return definition.value
        if isinstance(definition, ReferenceDefinition):
            return self._container.get(definition.target)
        if isinstance(definition, ArrayDefinition):
            return self.resolve_nested(definition.values, path)
        if isinstance(definition, ClassDefinition):
            return self._resolve_class(definition, path)
        if isinstance(definition, FactoryDefinition):
            return self._resolve_factory(definition, path)
        if isinstance(definition, EnvironmentVariableDefinition):
            return self._resolve_environment_variable(definition, path)
        if isinstance(definition, StringDefinition):
            return STRING_PLACEHOLDER_PATTERN.sub(
                lambda match: str(self._container.get(match.group(1))),
                definition.expression,
            )

        msg = f"unsupported definition {type(definition).__qualname__}"
        raise DIForgeInvalidDefinitionError(path, msg)

    def resolve_nested(self, raw: Any, path: Sequence[PathSegment]) -> Any:
        """Resolve a raw value that may contain definitions inside lists, tuples or dicts."""
        if isinstance(raw, Definition):
            return self.resolve(raw, path)
        if isinstance(raw, list):
            return [self.resolve_nested(item, (*path, index)) for index, item in enumerate(raw)]
        if isinstance(raw, tuple):
            return tuple(
                self.resolve_nested(item, (*path, index)) for index, item in enumerate(raw)
            )
        if isinstance(raw, dict):
            return {key: self.resolve_nested(item, (*path, key)) for key, item in raw.items()}
        if isinstance(raw, set | frozenset):
            return type(raw)(self.resolve_nested(item, path) for item in raw)
        return raw

    def _resolve_class(self, definition: ClassDefinition, path: Sequence[PathSegment]) -> Any:
        target = resolve_class_target(definition, path)
        bindings = bind_arguments(
            parameters=self._introspector.constructor_parameters(target),
            args=definition.args,
            kwargs=definition.kwargs,
            autowired=definition.autowired,
            policy=self._policy,
            path=path,
            callable_label="__init__",
        )
        args, kwargs = self._call_arguments(bindings, path)
        instance = target(*args, **kwargs)

        for name, raw in definition.properties:
            setattr(instance, name, self.resolve_nested(raw, (*path, name)))

        for call in definition.method_calls:
            bindings = bind_arguments(
                parameters=self._introspector.method_parameters(target, call.name),
                args=call.args,
                kwargs=call.kwargs,
                autowired=definition.autowired,
                policy=self._policy,
                path=path,
                callable_label=call.name,
            )
            args, kwargs = self._call_arguments(bindings, path)
            getattr(instance, call.name)(*args, **kwargs)

        return instance

    def _resolve_factory(self, definition: FactoryDefinition, path: Sequence[PathSegment]) -> Any:
        factory = definition.factory
        bindings = bind_arguments(
            parameters=self._introspector.callable_parameters(factory),
            args=(),
            kwargs=definition.parameters,
            autowired=True,
            policy=self._policy,
            path=path,
            callable_label=getattr(factory, "__qualname__", repr(factory)),
        )
        args, kwargs = self._call_arguments(bindings, path)
        return factory(*args, **kwargs)

    def _resolve_environment_variable(
        self,
        definition: EnvironmentVariableDefinition,
        path: Sequence[PathSegment],
    ) -> Any:
        if not definition.has_default:
            return self._container.read_environment_variable(definition.variable)
        return self._container.read_environment_variable(
            definition.variable,
            lambda: self.resolve_nested(definition.default, (*path, "default")),
        )

    def _call_arguments(
        self,
        bindings: Sequence[ArgumentBinding],
        path: Sequence[PathSegment],
    ) -> tuple[list[Any], dict[str, Any]]:
        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        for binding in bindings:
            if binding.reference_type is not None:
                value = self._container.get(binding.reference_type)
            elif binding.reference is not None:
                value = self._container.get(binding.reference)
            else:
                value = self.resolve_nested(binding.value, (*path, binding.segment))
            if binding.positional or binding.name is None:
                args.append(value)
            else:
                kwargs[binding.name] = value
        return args, kwargs
