from diforge.compiled_container import CompiledContainer

DEFAULT_COMPILED_CONTAINER_CLASS_NAME = "CompiledContainer"
"""Class name used for generated containers when the caller does not choose one."""

DEFAULT_COMPILED_CONTAINER_PARENT_TYPE = CompiledContainer
"""Base class of generated containers when no custom parent type is supplied."""

DEFAULT_USE_AUTOWIRING = True
"""Whether unregistered concrete classes are constructed from their annotations."""

DEFAULT_ARTIFACT_SUFFIX = ".py"
