from diforge.builder import CompilationOptions, ContainerBuilder
from diforge.compiled_container import CompiledContainer
from diforge.container import Container
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
from diforge.discovery import KnownClasses
from diforge.exceptions import (
    DIForgeAnonymousTypeNotCompilableError,
    DIForgeCircularDependencyError,
    DIForgeCompiledContainerImmutableError,
    DIForgeDependencyNotFoundError,
    DIForgeEnvironmentVariableNotDefinedError,
    DIForgeError,
    DIForgeInvalidArtifactNameError,
    DIForgeInvalidDefinitionError,
    DIForgeInvalidParentTypeError,
    DIForgeNestedCompilationError,
    DIForgeObjectNotCompilableError,
    DIForgeUnresolvableParameterError,
)
from diforge.helpers import autowire, create, env, factory, get, string, value

__all__ = [
    "ArrayDefinition",
    "ClassDefinition",
    "CompilationOptions",
    "CompiledContainer",
    "Container",
    "ContainerBuilder",
    "DIForgeAnonymousTypeNotCompilableError",
    "DIForgeCircularDependencyError",
    "DIForgeCompiledContainerImmutableError",
    "DIForgeDependencyNotFoundError",
    "DIForgeEnvironmentVariableNotDefinedError",
    "DIForgeError",
    "DIForgeInvalidArtifactNameError",
    "DIForgeInvalidDefinitionError",
    "DIForgeInvalidParentTypeError",
    "DIForgeNestedCompilationError",
    "DIForgeObjectNotCompilableError",
    "DIForgeUnresolvableParameterError",
    "Definition",
    "EnvironmentVariableDefinition",
    "FactoryDefinition",
    "KnownClasses",
    "ReferenceDefinition",
    "StringDefinition",
    "ValueDefinition",
    "autowire",
    "create",
    "env",
    "factory",
    "get",
    "string",
    "value",
]
