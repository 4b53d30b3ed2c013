from __future__ import annotations

from collections.abc import Sequence

PathSegment = str | int
"""One step of the nesting trail that led to a definition (entry id, key, or index)."""

_NESTED_DEFINITION_LABEL = "<nested definition>"


def format_definition_path(path: Sequence[PathSegment]) -> str:
    """Render a nesting trail as ``entry -> key -> [index]``."""
    return " -> ".join(f"[{segment}]" if isinstance(segment, int) else segment for segment in path)


class DIForgeError(Exception):
    """Represent a base class for all diforge-specific failures.

    Catch this type when you want to handle any diforge error path without
    matching each concrete exception class individually.
    """


class DIForgeInvalidDefinitionError(DIForgeError):
    """Signal that a definition cannot be compiled or resolved as written.

    The error keeps the nesting trail as an ordered tuple of path segments
    (``path``) starting with the entry id, and a human-readable ``reason``.
    The trail is only turned into text when the error is displayed.
    """

    def __init__(self, path: Sequence[PathSegment], reason: str) -> None:
        self.path: tuple[PathSegment, ...] = tuple(path)
        self.reason = reason
        super().__init__(self._render())

    @property
    def entry_id(self) -> str:
        """Return the id of the entry whose definition failed."""
        return str(self.path[0]) if self.path else "<unknown>"

    def _render(self) -> str:
        message = f'Entry "{self.entry_id}" cannot be compiled: {self.reason}'
        if len(self.path) > 1:
            message = f"{message} (at {format_definition_path(self.path)})"
        return message


class DIForgeObjectNotCompilableError(DIForgeInvalidDefinitionError):
    """Signal that a live object instance was found inside a definition.

    Only scalars, strings, numbers, containers of those, addressable classes,
    and definitions can be rendered into generated code. Keep the object out of
    compiled definitions or provide it through a ``factory``.
    """

    def __init__(self, path: Sequence[PathSegment]) -> None:
        super().__init__(path, "An object was found but objects cannot be compiled")


class DIForgeAnonymousTypeNotCompilableError(DIForgeInvalidDefinitionError):
    """Signal a class without a stable import path in a compiled definition.

    Classes defined inside function bodies or created dynamically cannot be
    imported by the generated module. Move the class to module level.
    """

    def __init__(self, path: Sequence[PathSegment], target: object) -> None:
        self.target = target
        super().__init__(path, f"anonymous classes cannot be compiled ({target!r})")


class DIForgeUnresolvableParameterError(DIForgeInvalidDefinitionError):
    """Signal a required parameter that has no explicit or autowirable value.

    Typical fixes include annotating the parameter with a concrete class,
    giving it a default, or passing it explicitly in the definition.
    """

    def __init__(
        self,
        path: Sequence[PathSegment],
        parameter_name: str,
        callable_name: str,
    ) -> None:
        self.parameter_name = parameter_name
        self.callable_name = callable_name
        super().__init__(
            path,
            f"Parameter '{parameter_name}' of {callable_name} has no value defined or guessable",
        )


class DIForgeNestedCompilationError(DIForgeInvalidDefinitionError):
    """Signal a failure inside a nested definition.

    Each enclosing container node (array, class construction, factory
    parameters) adds one frame. Only the innermost error names the concrete
    cause; outer frames are generic ``<nested definition>`` markers.
    """

    def __init__(self, path: Sequence[PathSegment], cause: DIForgeInvalidDefinitionError) -> None:
        self.cause = cause
        super().__init__(path, cause.reason)

    @property
    def root_cause(self) -> DIForgeInvalidDefinitionError:
        """Return the innermost concrete error of the chain."""
        error: DIForgeInvalidDefinitionError = self
        while isinstance(error, DIForgeNestedCompilationError):
            error = error.cause
        return error

    def _render(self) -> str:
        frames: list[str] = []
        error: DIForgeInvalidDefinitionError = self
        while isinstance(error, DIForgeNestedCompilationError):
            label = error.entry_id if len(error.path) == 1 else _NESTED_DEFINITION_LABEL
            frames.append(f"Error while compiling {label}.")
            error = error.cause
        frames.append(error.reason)
        return " ".join(frames)


class DIForgeInvalidArtifactNameError(DIForgeError):
    """Signal a generated container name that cannot name the generated class.

    The name must be a Python identifier that does not shadow the
    ``_module_<n>`` and ``_type_<n>`` globals of the generated module.
    Raised by ``ContainerBuilder.build`` before any code generation or file
    write happens.
    """

    def __init__(self, name: str, reason: str = "is not a valid Python class name") -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"The container cannot be compiled: `{name}` {reason}")


class DIForgeInvalidParentTypeError(DIForgeError):
    """Signal an unusable parent type for the generated container class.

    The parent must be a ``Container`` subclass defined at module level so the
    generated module can import it.
    """

    def __init__(self, parent_type: object, reason: str) -> None:
        self.parent_type = parent_type
        super().__init__(
            f"The container cannot be compiled: parent type {parent_type!r} is unusable, {reason}",
        )


class DIForgeCompiledContainerImmutableError(DIForgeError):
    """Signal a runtime mutation attempt on a compiled container.

    The generated fast path is fixed when the artifact is written, so entries
    cannot be replaced afterwards.
    """

    def __init__(self, entry_id: str) -> None:
        self.entry_id = entry_id
        super().__init__(
            f'Cannot set entry "{entry_id}": you cannot set a definition at runtime on a '
            "compiled container. You can either put your definitions in the definition "
            "mapping passed to the builder, or disable compilation.",
        )


class DIForgeDependencyNotFoundError(DIForgeError):
    """Signal that an entry id has no definition and cannot be autowired.

    Raised by ``get``/``make`` when the id is neither compiled, defined, nor an
    autowirable class.
    """

    def __init__(self, entry_id: str) -> None:
        self.entry_id = entry_id
        super().__init__(f"No entry or class found for '{entry_id}'")


class DIForgeCircularDependencyError(DIForgeError):
    """Signal an entry requested again while it is still being resolved."""

    def __init__(self, entry_id: str, stack: Sequence[str]) -> None:
        self.entry_id = entry_id
        self.stack = tuple(stack)
        chain = " -> ".join([*self.stack, entry_id])
        super().__init__(f"Circular dependency detected for entry '{entry_id}': {chain}")


class DIForgeEnvironmentVariableNotDefinedError(DIForgeError):
    """Signal an environment variable definition with no value and no default."""

    def __init__(self, variable: str) -> None:
        self.variable = variable
        super().__init__(f"The environment variable '{variable}' has not been defined")
