from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, TypeAlias

from diforge._internal.arguments import ArgumentBinding, bind_arguments
from diforge._internal.autowiring import ConcreteTypeAutowiringPolicy
from diforge._internal.introspection import TypeIntrospector
from diforge._internal.naming import locate_type
from diforge._internal.resolution import STRING_PLACEHOLDER_PATTERN
from diforge._internal.type_checks import is_addressable_type, is_runtime_class, is_scalar
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
from diforge.exceptions import (
    DIForgeAnonymousTypeNotCompilableError,
    DIForgeInvalidDefinitionError,
    DIForgeNestedCompilationError,
    DIForgeObjectNotCompilableError,
    PathSegment,
)

_SEQUENCE_TYPES: tuple[type[Any], ...] = (list, tuple, set, frozenset)


@dataclass(frozen=True, slots=True)
class LiteralNode:
    """A scalar rendered with ``repr``."""

    value: Any


@dataclass(frozen=True, slots=True)
class TypeNode:
    """A class imported by the generated module."""

    target: type[Any]


@dataclass(frozen=True, slots=True)
class SequenceNode:
    """A list, tuple, set or frozenset literal."""

    kind: type[Any]
    items: tuple[PlanNode, ...]


@dataclass(frozen=True, slots=True)
class MappingNode:
    """A dict literal with scalar keys."""

    items: tuple[tuple[LiteralNode, PlanNode], ...]


@dataclass(frozen=True, slots=True)
class ReferenceNode:
    """A lookup of another entry through the container."""

    entry_id: str


@dataclass(frozen=True, slots=True)
class EnvironmentNode:
    """An environment variable read with an optional lazily built default."""

    variable: str
    default: PlanNode | None
    has_default: bool


@dataclass(frozen=True, slots=True)
class StringNode:
    """A string assembled from literal parts and resolved entries."""

    parts: tuple[str | ReferenceNode, ...]


@dataclass(frozen=True, slots=True)
class ArgumentNode:
    """One call argument; ``name`` is ``None`` for extra positional values."""

    name: str | None
    positional: bool
    value: PlanNode


@dataclass(frozen=True, slots=True)
class PropertyNode:
    """An attribute assigned after construction."""

    name: str
    value: PlanNode


@dataclass(frozen=True, slots=True)
class MethodCallNode:
    """A method called after property injection."""

    name: str
    arguments: tuple[ArgumentNode, ...]


@dataclass(frozen=True, slots=True)
class ConstructionNode:
    """A class instantiation followed by property and method injection."""

    target: TypeNode
    arguments: tuple[ArgumentNode, ...]
    properties: tuple[PropertyNode, ...]
    method_calls: tuple[MethodCallNode, ...]

    @property
    def needs_statements(self) -> bool:
        return bool(self.properties or self.method_calls)


PlanNode: TypeAlias = (
    LiteralNode
    | TypeNode
    | SequenceNode
    | MappingNode
    | ReferenceNode
    | EnvironmentNode
    | StringNode
    | ConstructionNode
)


@dataclass(frozen=True, slots=True)
class EntryPlan:
    """Compilation plan of one entry, consumed by the renderer."""

    entry_id: str
    root: PlanNode


class _InterpretedOnlyError(Exception):
    """Raised inside the planner when a definition must stay on the interpreted path."""


class DefinitionCompilationPlanner:
    """Decides whether definitions can be compiled and builds their plans.

    Planning is a pure function of the definition and of the classes it names:
    it reads no clock, no file and no state left by other entries.
    """

    def __init__(
        self,
        *,
        introspector: TypeIntrospector,
        policy: ConcreteTypeAutowiringPolicy,
    ) -> None:
        self._introspector = introspector
        self._policy = policy

    def plan_entry(self, entry_id: str, definition: Definition) -> EntryPlan | None:
        """Return the plan for one entry, or ``None`` when it is served by the interpreter.

        Args:
            entry_id: Id of the entry being compiled.
            definition: Definition registered for that entry.

        Raises:
            DIForgeInvalidDefinitionError: The definition, or one of its nested
                definitions, cannot be compiled.

        """
        try:
            root = self.analyze(definition, (entry_id,))
        except _InterpretedOnlyError:
            return None
        return EntryPlan(entry_id=entry_id, root=root)

    def analyze(self, definition: Definition, path: Sequence[PathSegment]) -> PlanNode:
        """Build the plan node of a definition.

        Args:
            definition: Definition to analyse.
            path: Nesting trail starting with the entry id.

        """
        if isinstance(definition, ValueDefinition):
            return self._analyze_raw(definition.value, path, allow_definitions=False)
        if isinstance(definition, ReferenceDefinition):
            return ReferenceNode(definition.target)
        if isinstance(definition, ArrayDefinition):
            return self._analyze_raw(definition.values, path, allow_definitions=True)
        if isinstance(definition, ClassDefinition):
            return self._analyze_class(definition, path)
        if isinstance(definition, EnvironmentVariableDefinition):
            default = None
            if definition.has_default:
                default = self._analyze_child(definition.default, path, "default")
            return EnvironmentNode(
                variable=definition.variable,
                default=default,
                has_default=definition.has_default,
            )
        if isinstance(definition, StringDefinition):
            return self._analyze_string(definition)
        if isinstance(definition, FactoryDefinition):
            raise _InterpretedOnlyError

        msg = f"unsupported definition {type(definition).__qualname__}"
        raise DIForgeInvalidDefinitionError(path, msg)

    def _analyze_child(
        self,
        raw: Any,
        path: Sequence[PathSegment],
        segment: PathSegment,
    ) -> PlanNode:
        try:
            return self._analyze_raw(raw, (*path, segment), allow_definitions=True)
        except DIForgeInvalidDefinitionError as error:
            raise DIForgeNestedCompilationError(path, error) from error

    def _analyze_raw(
        self,
        raw: Any,
        path: Sequence[PathSegment],
        *,
        allow_definitions: bool,
    ) -> PlanNode:
        if isinstance(raw, Definition):
            if allow_definitions:
                return self.analyze(raw, path)
            raise DIForgeObjectNotCompilableError(path)
        if is_scalar(raw):
            return LiteralNode(raw)
        if is_runtime_class(raw):
            return self._type_node(raw, path)
        if type(raw) in _SEQUENCE_TYPES:
            items = raw
            if isinstance(raw, set | frozenset):
                items = sorted(raw, key=repr)
            return SequenceNode(
                kind=type(raw),
                items=tuple(
                    self._analyze_nested(item, path, index, allow_definitions=allow_definitions)
                    for index, item in enumerate(items)
                ),
            )
        if type(raw) is dict:
            return MappingNode(
                items=tuple(
                    (
                        self._mapping_key(key, path),
                        self._analyze_nested(item, path, key, allow_definitions=allow_definitions),
                    )
                    for key, item in raw.items()
                ),
            )
        raise DIForgeObjectNotCompilableError(path)

    def _analyze_nested(
        self,
        raw: Any,
        path: Sequence[PathSegment],
        key: Any,
        *,
        allow_definitions: bool,
    ) -> PlanNode:
        segment = key if isinstance(key, str | int) else repr(key)
        try:
            return self._analyze_raw(raw, (*path, segment), allow_definitions=allow_definitions)
        except DIForgeInvalidDefinitionError as error:
            raise DIForgeNestedCompilationError(path, error) from error

    def _mapping_key(self, key: Any, path: Sequence[PathSegment]) -> LiteralNode:
        if not is_scalar(key):
            raise DIForgeObjectNotCompilableError((*path, repr(key)))
        return LiteralNode(key)

    def _analyze_class(
        self,
        definition: ClassDefinition,
        path: Sequence[PathSegment],
    ) -> ConstructionNode:
        target_node = self._class_target(definition, path)
        target = target_node.target
        bindings = bind_arguments(
            parameters=self._introspector.constructor_parameters(target),
            args=definition.args,
            kwargs=definition.kwargs,
            autowired=definition.autowired,
            policy=self._policy,
            path=path,
            callable_label="__init__",
        )
        arguments = self._argument_nodes(bindings, path)
        properties = tuple(
            PropertyNode(name=name, value=self._property_value(raw, path, name))
            for name, raw in definition.properties
        )
        method_calls = tuple(
            MethodCallNode(
                name=call.name,
                arguments=self._argument_nodes(
                    bind_arguments(
                        parameters=self._introspector.method_parameters(target, call.name),
                        args=call.args,
                        kwargs=call.kwargs,
                        autowired=definition.autowired,
                        policy=self._policy,
                        path=path,
                        callable_label=call.name,
                    ),
                    path,
                ),
            )
            for call in definition.method_calls
        )
        return ConstructionNode(
            target=target_node,
            arguments=arguments,
            properties=properties,
            method_calls=method_calls,
        )

    def _property_value(self, raw: Any, path: Sequence[PathSegment], name: str) -> PlanNode:
        # Properties of the entry itself report their failure as the entry's own.
        if len(path) == 1:
            return self._analyze_raw(raw, (*path, name), allow_definitions=True)
        return self._analyze_child(raw, path, name)

    def _class_target(self, definition: ClassDefinition, path: Sequence[PathSegment]) -> TypeNode:
        target = definition.target
        if isinstance(target, str):
            located = locate_type(target)
            if located is None:
                raise DIForgeInvalidDefinitionError(path, f"class '{target}' does not exist")
            target = located
        if not is_runtime_class(target):
            raise DIForgeInvalidDefinitionError(path, f"{target!r} is not a class")
        return self._type_node(target, path)

    def _type_node(self, target: type[Any], path: Sequence[PathSegment]) -> TypeNode:
        if not is_addressable_type(target):
            raise DIForgeAnonymousTypeNotCompilableError(path, target)
        return TypeNode(target)

    def _argument_nodes(
        self,
        bindings: Sequence[ArgumentBinding],
        path: Sequence[PathSegment],
    ) -> tuple[ArgumentNode, ...]:
        nodes: list[ArgumentNode] = []
        for binding in bindings:
            if binding.reference is not None:
                if binding.reference_type is not None:
                    self._ensure_addressable_dependency(binding, path)
                value: PlanNode = ReferenceNode(binding.reference)
            else:
                value = self._analyze_child(binding.value, path, binding.segment)
            nodes.append(
                ArgumentNode(name=binding.name, positional=binding.positional, value=value),
            )
        return tuple(nodes)

    def _ensure_addressable_dependency(
        self,
        binding: ArgumentBinding,
        path: Sequence[PathSegment],
    ) -> None:
        if is_addressable_type(binding.reference_type):
            return
        error = DIForgeAnonymousTypeNotCompilableError(
            (*path, binding.segment),
            binding.reference_type,
        )
        raise DIForgeNestedCompilationError(path, error) from error

    def _analyze_string(self, definition: StringDefinition) -> StringNode:
        parts: list[str | ReferenceNode] = []
        position = 0
        for match in STRING_PLACEHOLDER_PATTERN.finditer(definition.expression):
            if match.start() > position:
                parts.append(definition.expression[position : match.start()])
            parts.append(ReferenceNode(match.group(1)))
            position = match.end()
        if position < len(definition.expression):
            parts.append(definition.expression[position:])
        return StringNode(tuple(parts))
