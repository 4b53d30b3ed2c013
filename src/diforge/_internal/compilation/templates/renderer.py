from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from importlib.metadata import PackageNotFoundError, version
from textwrap import indent
from typing import Any

from jinja2 import Environment, Template

from diforge._internal.compilation.planner import (
    ArgumentNode,
    ConstructionNode,
    EntryPlan,
    EnvironmentNode,
    LiteralNode,
    MappingNode,
    PlanNode,
    ReferenceNode,
    SequenceNode,
    StringNode,
    TypeNode,
)
from diforge._internal.compilation.templates.templates import (
    CLASS_TEMPLATE,
    IMPORTS_TEMPLATE,
    METHOD_MAPPING_TEMPLATE,
    MODULE_TEMPLATE,
    RESOLVER_METHOD_TEMPLATE,
)
from diforge._internal.naming import (
    GENERATED_MODULE_PREFIX,
    GENERATED_TYPE_PREFIX,
    is_valid_identifier,
)
from diforge.compiled_container import CompiledContainer

_INDENT = " " * 4
_GENERATOR_SOURCE = (
    "diforge._internal.compilation.templates.renderer.CompiledContainerRenderer.get_container_code"
)
_INSTANCE_VARIABLE = "instance"
logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ModuleSymbols:
    """Module-level names of the classes referenced by one generated module."""

    module_aliases: dict[str, str] = field(default_factory=dict)
    type_symbols: dict[type[Any], str] = field(default_factory=dict)
    type_expressions: dict[str, str] = field(default_factory=dict)

    def type_symbol(self, target: type[Any]) -> str:
        """Return the global name bound to ``target``, allocating it on first use."""
        symbol = self.type_symbols.get(target)
        if symbol is not None:
            return symbol

        module_alias = self.module_aliases.get(target.__module__)
        if module_alias is None:
            module_alias = f"{GENERATED_MODULE_PREFIX}{len(self.module_aliases) + 1}"
            self.module_aliases[target.__module__] = module_alias

        symbol = f"{GENERATED_TYPE_PREFIX}{len(self.type_symbols) + 1}"
        self.type_symbols[target] = symbol
        self.type_expressions[symbol] = f"{module_alias}.{target.__qualname__}"
        return symbol


@dataclass(frozen=True, slots=True)
class EntryFragment:
    """Rendered methods of one compiled entry."""

    entry_id: str
    method_name: str
    methods: tuple[str, ...]


@dataclass(slots=True)
class _EntryRenderState:
    method_name: str
    symbols: ModuleSymbols
    helper_methods: list[str] = field(default_factory=list)

    def next_helper_name(self) -> str:
        return f"_{self.method_name}_{len(self.helper_methods) + 1}"


class CompiledContainerRenderer:
    """Renderer for generated compiled-container modules."""

    def __init__(self) -> None:
        self._env = Environment(
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._module_template = self._template(MODULE_TEMPLATE)
        self._imports_template = self._template(IMPORTS_TEMPLATE)
        self._class_template = self._template(CLASS_TEMPLATE)
        self._method_mapping_template = self._template(METHOD_MAPPING_TEMPLATE)
        self._resolver_method_template = self._template(RESOLVER_METHOD_TEMPLATE)

    def get_container_code(
        self,
        *,
        plans: Sequence[EntryPlan],
        class_name: str,
        parent_type: type[Any],
    ) -> str:
        """Render the complete module of a compiled container.

        Args:
            plans: Entry plans, in the order their methods are emitted.
            class_name: Name of the generated container class.
            parent_type: Base class of the generated container.

        """
        symbols = ModuleSymbols()
        parent_symbol = symbols.type_symbol(parent_type)
        fragments = [
            self.render_entry(plan=plan, method_name=f"resolve_{index}", symbols=symbols)
            for index, plan in enumerate(plans, start=1)
        ]
        self._log_codegen_strategy(class_name=class_name, fragments=fragments, symbols=symbols)

        needs_compiled_container_import = not issubclass(parent_type, CompiledContainer)
        bases = (
            f"CompiledContainer, {parent_symbol}"
            if needs_compiled_container_import
            else parent_symbol
        )
        return self._module_template.render(
            module_docstring_block=self._render_module_docstring(
                class_name=class_name,
                parent_type=parent_type,
                fragments=fragments,
            ),
            imports_block=self._render_imports(
                symbols=symbols,
                needs_compiled_container_import=needs_compiled_container_import,
            ),
            globals_block=self._join_lines(
                [
                    f"{symbol}: Any = {expression}"
                    for symbol, expression in symbols.type_expressions.items()
                ],
            ),
            class_block=self._render_class(
                class_name=class_name,
                bases=bases,
                fragments=fragments,
            ),
        ).strip() + "\n"

    def render_entry(
        self,
        *,
        plan: EntryPlan,
        method_name: str,
        symbols: ModuleSymbols,
    ) -> EntryFragment:
        """Render the resolution method of one entry and its helper methods.

        Args:
            plan: Plan produced by the planner for the entry.
            method_name: Name of the method registered in ``METHOD_MAPPING``.
            symbols: Module symbol table shared by every entry of the module.

        """
        state = _EntryRenderState(method_name=method_name, symbols=symbols)
        if isinstance(plan.root, ConstructionNode) and plan.root.needs_statements:
            body_lines = self._construction_lines(node=plan.root, state=state)
        else:
            body_lines = [f"return {self._expression(plan.root, state)}"]

        main_method = self._render_method(
            method_name=method_name,
            docstring_lines=self._resolver_docstring_lines(plan=plan),
            body_lines=body_lines,
        )
        return EntryFragment(
            entry_id=plan.entry_id,
            method_name=method_name,
            methods=(main_method, *state.helper_methods),
        )

    def _render_imports(
        self,
        *,
        symbols: ModuleSymbols,
        needs_compiled_container_import: bool,
    ) -> str:
        module_import_lines = [
            f"import {module_name} as {alias}"
            for module_name, alias in symbols.module_aliases.items()
        ]
        return self._imports_template.render(
            needs_compiled_container_import=needs_compiled_container_import,
            module_imports_block=self._join_lines(module_import_lines),
        ).strip()

    def _render_class(
        self,
        *,
        class_name: str,
        bases: str,
        fragments: Sequence[EntryFragment],
    ) -> str:
        mapping_lines = [
            f"{fragment.entry_id!r}: {fragment.method_name!r}," for fragment in fragments
        ]
        method_mapping_block = self._method_mapping_template.render(
            mapping_lines_block=self._join_lines(self._indent_lines(mapping_lines, 1)),
        ).strip()
        resolver_methods_block = "\n\n".join(
            self._indent_block(method) for fragment in fragments for method in fragment.methods
        )
        return self._class_template.render(
            class_name=class_name,
            bases=bases,
            class_docstring_block=self._docstring_block(
                lines=self._class_docstring_lines(class_name=class_name, fragments=fragments),
                depth=1,
            ),
            method_mapping_block=self._indent_block(method_mapping_block),
            resolver_methods_block=resolver_methods_block,
        ).strip()

    def _render_method(
        self,
        *,
        method_name: str,
        docstring_lines: list[str],
        body_lines: list[str],
    ) -> str:
        docstring_block = ""
        if docstring_lines:
            docstring_block = self._docstring_block(lines=docstring_lines, depth=1)
        return self._resolver_method_template.render(
            method_name=method_name,
            docstring_block=docstring_block,
            body_block=self._join_lines(self._indent_lines(body_lines, 1)),
        ).strip()

    def _construction_lines(self, *, node: ConstructionNode, state: _EntryRenderState) -> list[str]:
        lines = [f"{_INSTANCE_VARIABLE} = {self._construction_call(node, state)}"]
        for injected in node.properties:
            value = self._expression(injected.value, state)
            if is_valid_identifier(injected.name):
                lines.append(f"{_INSTANCE_VARIABLE}.{injected.name} = {value}")
            else:
                lines.append(f"setattr({_INSTANCE_VARIABLE}, {injected.name!r}, {value})")
        for call in node.method_calls:
            arguments = self._call_arguments(call.arguments, state)
            if is_valid_identifier(call.name):
                lines.append(f"{_INSTANCE_VARIABLE}.{call.name}({arguments})")
            else:
                lines.append(f"getattr({_INSTANCE_VARIABLE}, {call.name!r})({arguments})")
        lines.append(f"return {_INSTANCE_VARIABLE}")
        return lines

    def _construction_call(self, node: ConstructionNode, state: _EntryRenderState) -> str:
        target = self._expression(node.target, state)
        return f"{target}({self._call_arguments(node.arguments, state)})"

    def _call_arguments(
        self,
        arguments: Sequence[ArgumentNode],
        state: _EntryRenderState,
    ) -> str:
        positional = [
            self._expression(argument.value, state)
            for argument in arguments
            if argument.positional or argument.name is None
        ]
        keywords: list[str] = []
        for argument in arguments:
            if argument.positional or argument.name is None:
                continue
            value = self._expression(argument.value, state)
            if is_valid_identifier(argument.name):
                keywords.append(f"{argument.name}={value}")
            else:
                keywords.append(f"**{{{argument.name!r}: {value}}}")
        return ", ".join([*positional, *keywords])

    def _expression(self, node: PlanNode, state: _EntryRenderState) -> str:
        if isinstance(node, LiteralNode):
            return self._literal(node.value)
        if isinstance(node, TypeNode):
            return state.symbols.type_symbol(node.target)
        if isinstance(node, ReferenceNode):
            return f"self.get({node.entry_id!r})"
        if isinstance(node, SequenceNode):
            return self._sequence(node, state)
        if isinstance(node, MappingNode):
            items = ", ".join(
                f"{self._literal(key.value)}: {self._expression(value, state)}"
                for key, value in node.items
            )
            return f"{{{items}}}"
        if isinstance(node, EnvironmentNode):
            if not node.has_default or node.default is None:
                return f"self.read_environment_variable({node.variable!r})"
            default = self._expression(node.default, state)
            return f"self.read_environment_variable({node.variable!r}, lambda: {default})"
        if isinstance(node, StringNode):
            return self._string(node)
        if isinstance(node, ConstructionNode):
            if not node.needs_statements:
                return self._construction_call(node, state)
            return f"self.{self._helper_method(node, state)}()"

        msg = f"Unsupported plan node {type(node).__qualname__}"
        raise TypeError(msg)

    def _helper_method(self, node: ConstructionNode, state: _EntryRenderState) -> str:
        helper_name = state.next_helper_name()
        # Reserve the slot before rendering so nested helpers get later numbers.
        state.helper_methods.append("")
        slot = len(state.helper_methods) - 1
        state.helper_methods[slot] = self._render_method(
            method_name=helper_name,
            docstring_lines=[],
            body_lines=self._construction_lines(node=node, state=state),
        )
        return helper_name

    def _sequence(self, node: SequenceNode, state: _EntryRenderState) -> str:
        items = [self._expression(item, state) for item in node.items]
        joined = ", ".join(items)
        if node.kind is list:
            return f"[{joined}]"
        if node.kind is tuple:
            if len(items) == 1:
                return f"({joined},)"
            return f"({joined})"
        if node.kind is set:
            return f"{{{joined}}}" if items else "set()"
        return f"frozenset({{{joined}}})" if items else "frozenset()"

    def _string(self, node: StringNode) -> str:
        parts = [
            f"str(self.get({part.entry_id!r}))" if isinstance(part, ReferenceNode) else repr(part)
            for part in node.parts
        ]
        if not parts:
            return "''"
        if len(parts) == 1 and not isinstance(node.parts[0], ReferenceNode):
            return parts[0]
        return f"''.join(({', '.join(parts)},))"

    def _literal(self, value: Any) -> str:
        if isinstance(value, float) and not math.isfinite(value):
            return f"float({str(value)!r})"
        if isinstance(value, complex):
            return f"complex({self._literal(value.real)}, {self._literal(value.imag)})"
        return repr(value)

    def _log_codegen_strategy(
        self,
        *,
        class_name: str,
        fragments: Sequence[EntryFragment],
        symbols: ModuleSymbols,
    ) -> None:
        logger.info(
            (
                "Compiled container codegen strategy: class=%s compiled_entry_count=%d "
                "helper_method_count=%d imported_module_count=%d imported_type_count=%d"
            ),
            class_name,
            len(fragments),
            sum(len(fragment.methods) - 1 for fragment in fragments),
            len(symbols.module_aliases),
            len(symbols.type_symbols),
        )

    def _render_module_docstring(
        self,
        *,
        class_name: str,
        parent_type: type[Any],
        fragments: Sequence[EntryFragment],
    ) -> str:
        lines = [
            "Generated compiled container module.",
            "",
            f"Generated by: {_GENERATOR_SOURCE}",
            f"diforge version used for generation: {self._resolve_diforge_version()}",
            "",
            "Generation configuration:",
            f"- container class: {class_name}",
            f"- parent type: {parent_type.__module__}.{parent_type.__qualname__}",
            f"- compiled entry count: {len(fragments)}",
            "",
            "This file is written once and never regenerated. Delete it to recompile.",
        ]
        return self._docstring_block(lines=lines, depth=0)

    def _class_docstring_lines(
        self,
        *,
        class_name: str,
        fragments: Sequence[EntryFragment],
    ) -> list[str]:
        return [
            f"Generated container '{class_name}'.",
            "",
            f"Compiled entries: {len(fragments)}.",
            "Entries missing from METHOD_MAPPING are resolved by the interpreted fallback.",
        ]

    def _resolver_docstring_lines(self, *, plan: EntryPlan) -> list[str]:
        return [
            f"Resolve entry {plan.entry_id!r}.",
            "",
            f"Plan kind: {type(plan.root).__name__}",
        ]

    def _resolve_diforge_version(self) -> str:
        try:
            return version("diforge")
        except PackageNotFoundError:
            return "unknown"

    def _docstring_lines(self, lines: list[str]) -> list[str]:
        escaped = [line.replace("\\", "\\\\").replace('"""', '\\"""') for line in lines]
        return ['"""', *escaped, '"""']

    def _docstring_block(self, *, lines: list[str], depth: int) -> str:
        return self._join_lines(self._indent_lines(self._docstring_lines(lines), depth))

    def _template(self, text: str) -> Template:
        return self._env.from_string(text)

    def _indent_block(self, block: str) -> str:
        return indent(block, _INDENT)

    def _indent_lines(self, lines: list[str], depth: int) -> list[str]:
        prefix = _INDENT * depth
        return [f"{prefix}{line}" if line else "" for line in lines]

    def _join_lines(self, lines: list[str]) -> str:
        return "\n".join(lines)
