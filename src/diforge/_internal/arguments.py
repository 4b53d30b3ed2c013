from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from inspect import Parameter
from typing import Any

from diforge._internal.autowiring import ConcreteTypeAutowiringPolicy
from diforge._internal.introspection import ParameterDependency
from diforge._internal.naming import entry_id_for
from diforge.exceptions import (
    DIForgeInvalidDefinitionError,
    DIForgeUnresolvableParameterError,
    PathSegment,
)

_MISSING: Any = object()
_POSITIONAL_KINDS = (Parameter.POSITIONAL_ONLY, Parameter.POSITIONAL_OR_KEYWORD)


@dataclass(frozen=True, slots=True)
class ArgumentBinding:
    """One argument of a call, either an explicit value or an autowired entry reference."""

    name: str | None
    positional: bool
    segment: str
    """Path segment identifying the argument in error messages."""
    value: Any = _MISSING
    reference: str | None = None
    reference_type: type[Any] | None = None


def bind_arguments(
    *,
    parameters: Sequence[ParameterDependency],
    args: Sequence[Any],
    kwargs: Mapping[str, Any],
    autowired: bool,
    policy: ConcreteTypeAutowiringPolicy,
    path: Sequence[PathSegment],
    callable_label: str,
) -> tuple[ArgumentBinding, ...]:
    """Match explicit arguments and autowired dependencies to a call signature.

    Explicit positional arguments fill positional parameters in order, explicit
    keyword arguments fill parameters by name, and, when ``autowired`` is set,
    remaining parameters annotated with a class become entry references.
    Parameters with defaults are otherwise left out of the call. Once a
    positional-only parameter is left out, later positional-only parameters are
    left out too, since no value could reach their slot.

    Args:
        parameters: Ordered parameters from the Type Introspector.
        args: Explicit positional values (raw values or definitions).
        kwargs: Explicit keyword values (raw values or definitions).
        autowired: Whether unset parameters are looked up from annotations.
        policy: Autowiring policy deciding which annotations name entries.
        path: Nesting trail of the definition being bound.
        callable_label: Name used in path segments and error messages.

    """
    bindings: list[ArgumentBinding] = []
    positional = list(args)
    remaining_kwargs = dict(kwargs)
    skipped_positional_only: str | None = None

    for parameter in parameters:
        if parameter.kind is Parameter.VAR_KEYWORD:
            continue
        if parameter.kind is Parameter.VAR_POSITIONAL:
            bindings.extend(
                _positional_bindings(positional, start=len(bindings), label=callable_label),
            )
            positional = []
            continue
        if positional and parameter.kind in _POSITIONAL_KINDS:
            bindings.append(
                ArgumentBinding(
                    name=parameter.name,
                    positional=True,
                    segment=f"{callable_label}({parameter.name})",
                    value=positional.pop(0),
                ),
            )
            continue
        is_positional_only = parameter.kind is Parameter.POSITIONAL_ONLY
        if is_positional_only and skipped_positional_only is not None:
            if parameter.name in remaining_kwargs:
                msg = (
                    f"Parameter '{parameter.name}' of {callable_label} is positional-only "
                    f"and follows the skipped parameter '{skipped_positional_only}'"
                )
                raise DIForgeInvalidDefinitionError(path, msg)
            if not parameter.has_default:
                raise DIForgeUnresolvableParameterError(path, parameter.name, callable_label)
            continue
        if parameter.name in remaining_kwargs:
            bindings.append(
                ArgumentBinding(
                    name=parameter.name,
                    positional=is_positional_only,
                    segment=f"{callable_label}({parameter.name})",
                    value=remaining_kwargs.pop(parameter.name),
                ),
            )
            continue
        if autowired and policy.is_injectable_dependency(parameter.annotation):
            bindings.append(
                ArgumentBinding(
                    name=parameter.name,
                    positional=is_positional_only,
                    segment=f"{callable_label}({parameter.name})",
                    reference=entry_id_for(parameter.annotation),
                    reference_type=parameter.annotation,
                ),
            )
            continue
        if parameter.has_default:
            if is_positional_only:
                skipped_positional_only = parameter.name
            continue
        raise DIForgeUnresolvableParameterError(path, parameter.name, callable_label)

    # Arguments the signature does not name are passed through unchanged.
    bindings.extend(_positional_bindings(positional, start=len(bindings), label=callable_label))
    bindings.extend(
        ArgumentBinding(
            name=name,
            positional=False,
            segment=f"{callable_label}({name})",
            value=value,
        )
        for name, value in remaining_kwargs.items()
    )
    return tuple(bindings)


def _positional_bindings(values: Sequence[Any], *, start: int, label: str) -> list[ArgumentBinding]:
    return [
        ArgumentBinding(
            name=None,
            positional=True,
            segment=f"{label}(#{start + offset})",
            value=value,
        )
        for offset, value in enumerate(values)
    ]

