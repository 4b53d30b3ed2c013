from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from inspect import Parameter
from typing import Any, Protocol, get_type_hints

from diforge._internal.type_checks import is_runtime_class

_MISSING_ANNOTATION: Any = object()
_IMPLICIT_FIRST_PARAMETER_NAMES = {"self", "cls"}


@dataclass(frozen=True, slots=True)
class ParameterDependency:
    """One parameter of a constructor, method or factory as seen by the autowirer."""

    name: str
    kind: inspect._ParameterKind
    annotation: Any
    """Resolved annotation, or ``_MISSING_ANNOTATION`` when the parameter is unannotated."""
    has_default: bool


class TypeIntrospector(Protocol):
    """Capability that lists the injectable parameters of classes and callables.

    The compiled path needs it only while the artifact is generated; the
    interpreted path uses it on every autowired resolution.
    """

    def constructor_parameters(self, target: type[Any]) -> tuple[ParameterDependency, ...]:
        """Return the ordered ``__init__`` parameters of ``target``, without ``self``.

        Args:
            target: Class being constructed.

        """

    def method_parameters(
        self,
        target: type[Any],
        method_name: str,
    ) -> tuple[ParameterDependency, ...]:
        """Return the ordered parameters of an instance method, without ``self``.

        Args:
            target: Class owning the method.
            method_name: Name of the method called after construction.

        """

    def callable_parameters(self, factory: Callable[..., Any]) -> tuple[ParameterDependency, ...]:
        """Return the ordered parameters of a factory callable.

        Args:
            factory: Callable invoked to produce an entry.

        """


class SignatureTypeIntrospector:
    """Type Introspector built on ``inspect.signature`` and ``typing.get_type_hints``."""

    def __init__(self) -> None:
        self._cache: dict[tuple[Any, str], tuple[ParameterDependency, ...]] = {}

    def constructor_parameters(self, target: type[Any]) -> tuple[ParameterDependency, ...]:
        if target.__init__ is object.__init__:
            return ()
        return self._cached(target, "__init__", skip_first_parameter=True)

    def method_parameters(
        self,
        target: type[Any],
        method_name: str,
    ) -> tuple[ParameterDependency, ...]:
        return self._cached(target, method_name, skip_first_parameter=True)

    def callable_parameters(self, factory: Callable[..., Any]) -> tuple[ParameterDependency, ...]:
        if is_runtime_class(factory):
            return self.constructor_parameters(factory)
        return self._extract(factory, skip_first_parameter=False)

    def _cached(
        self,
        target: type[Any],
        attribute: str,
        *,
        skip_first_parameter: bool,
    ) -> tuple[ParameterDependency, ...]:
        key = (target, attribute)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        parameters = self._extract(
            getattr(target, attribute, None),
            skip_first_parameter=skip_first_parameter,
        )
        self._cache[key] = parameters
        return parameters

    def _extract(
        self,
        provider: Callable[..., Any],
        *,
        skip_first_parameter: bool,
    ) -> tuple[ParameterDependency, ...]:
        try:
            signature = inspect.signature(provider)
        except (TypeError, ValueError):
            return ()
        parameters = tuple(signature.parameters.values())
        if (
            skip_first_parameter
            and parameters
            and parameters[0].name in _IMPLICIT_FIRST_PARAMETER_NAMES
        ):
            parameters = parameters[1:]

        annotations = self._resolved_type_hints(provider)
        return tuple(
            ParameterDependency(
                name=parameter.name,
                kind=parameter.kind,
                annotation=self._resolve_parameter_annotation(
                    parameter=parameter,
                    annotations=annotations,
                ),
                has_default=parameter.default is not Parameter.empty,
            )
            for parameter in parameters
        )

    def _resolve_parameter_annotation(
        self,
        *,
        parameter: Parameter,
        annotations: dict[str, Any],
    ) -> Any:
        annotation = annotations.get(parameter.name, _MISSING_ANNOTATION)
        if annotation is not _MISSING_ANNOTATION:
            return annotation

        raw_annotation = parameter.annotation
        if raw_annotation is not Parameter.empty and not isinstance(raw_annotation, str):
            return raw_annotation
        return _MISSING_ANNOTATION

    def _resolved_type_hints(self, provider: Callable[..., Any]) -> dict[str, Any]:
        try:
            return get_type_hints(provider, include_extras=True)
        except (NameError, TypeError, AttributeError):
            # Unresolvable forward references fall back to raw signature annotations.
            return {}
