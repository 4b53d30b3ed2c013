from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from diforge import (
    CompiledContainer,
    Container,
    ContainerBuilder,
    DIForgeAnonymousTypeNotCompilableError,
    DIForgeCircularDependencyError,
    DIForgeCompiledContainerImmutableError,
    DIForgeDependencyNotFoundError,
    DIForgeEnvironmentVariableNotDefinedError,
    DIForgeInvalidArtifactNameError,
    DIForgeNestedCompilationError,
    DIForgeObjectNotCompilableError,
    KnownClasses,
    autowire,
    create,
    env,
    factory,
    get,
    string,
    value,
)


class _Logger:
    pass


class _Service:
    def __init__(self, logger: _Logger) -> None:
        self.logger = logger


class _Mailer:
    def __init__(self, host: str, port: int = 25) -> None:
        self.host = host
        self.port = port


class _OrderRecorder:
    def __init__(self, name: str) -> None:
        self.events = [f"constructor:{name}"]
        self._label = ""

    @property
    def label(self) -> str:
        return self._label

    @label.setter
    def label(self, label: str) -> None:
        self.events.append(f"property:{label}")
        self._label = label

    def start(self, mode: str) -> None:
        self.events.append(f"method:{mode}")


class _NeedsName:
    def __init__(self, name: str) -> None:
        self.name = name


class _CycleA:
    def __init__(self, other: _CycleB) -> None:
        self.other = other


class _CycleB:
    def __init__(self, other: _CycleA) -> None:
        self.other = other


class _CustomContainer(Container):
    def greeting(self) -> str:
        return f"hello {self.get('name')}"


class _CustomCompiledContainer(CompiledContainer):
    pass


class _Holder:
    def __init__(self, container: Container) -> None:
        self.container = container


_DEFAULT_LOGGER = _Logger()


class _Retrying:
    def __init__(self, retries: int = 3, logger: _Logger = _DEFAULT_LOGGER, /) -> None:
        self.retries = retries
        self.logger = logger


def _greeting_factory(container: Container) -> str:
    return f"hello {container.get('name')}"


def _compiled(
    compilation_dir: Path,
    container_class_name: str,
    definitions: dict[object, object],
    **kwargs: object,
) -> Container:
    builder = ContainerBuilder()
    builder.add_definitions(definitions)
    builder.enable_compilation(
        compilation_dir,
        container_class_name,
        **kwargs,  # type: ignore[arg-type]
    )
    return builder.build()


def test_build_returns_compiled_container_serving_values(
    compilation_dir: Path,
    container_class_name: str,
) -> None:
    container = _compiled(compilation_dir, container_class_name, {"foo": "bar"})

    assert isinstance(container, CompiledContainer)
    assert container.get("foo") == "bar"
    assert container.has("foo")
    assert container.is_entry_compiled("foo")
    assert (compilation_dir / f"{container_class_name}.py").is_file()


def test_building_twice_with_same_definitions_gives_same_values(
    compilation_dir: Path,
    container_class_name: str,
) -> None:
    definitions: dict[object, object] = {"foo": "bar", "numbers": [1, 2.5, None, True]}

    first = _compiled(compilation_dir, container_class_name, definitions)
    second = _compiled(compilation_dir, container_class_name, definitions)

    assert first.get("foo") == second.get("foo") == "bar"
    assert first.get("numbers") == second.get("numbers") == [1, 2.5, None, True]


def test_existing_artifact_wins_over_changed_definitions(
    compilation_dir: Path,
    container_class_name: str,
) -> None:
    _compiled(compilation_dir, container_class_name, {"foo": "bar"})

    container = _compiled(compilation_dir, container_class_name, {"foo": "DIFFERENT"})

    assert container.get("foo") == "bar"


def test_anonymous_class_value_is_rejected_without_writing_artifact(
    compilation_dir: Path,
    container_class_name: str,
) -> None:
    class LocalService:
        pass

    with pytest.raises(DIForgeAnonymousTypeNotCompilableError):
        _compiled(compilation_dir, container_class_name, {"foo": value(LocalService)})

    assert not (compilation_dir / f"{container_class_name}.py").exists()


def test_anonymous_class_construction_is_rejected(
    compilation_dir: Path,
    container_class_name: str,
) -> None:
    class LocalService:
        pass

    with pytest.raises(DIForgeAnonymousTypeNotCompilableError):
        _compiled(compilation_dir, container_class_name, {"foo": create(LocalService)})


def test_object_injected_as_property_is_rejected(
    compilation_dir: Path,
    container_class_name: str,
) -> None:
    definitions: dict[object, object] = {_Logger: create().property("foo", object())}

    with pytest.raises(DIForgeObjectNotCompilableError) as exc_info:
        _compiled(compilation_dir, container_class_name, definitions)

    entry_id = f"{__name__}._Logger"
    assert str(exc_info.value).startswith(
        f'Entry "{entry_id}" cannot be compiled: '
        "An object was found but objects cannot be compiled",
    )
    assert exc_info.value.path == (entry_id, "foo")


def test_object_in_nested_construction_property_reports_chained_message(
    compilation_dir: Path,
    container_class_name: str,
) -> None:
    definitions: dict[object, object] = {"foo": [create(_Logger).property("foo", object())]}

    with pytest.raises(DIForgeNestedCompilationError) as exc_info:
        _compiled(compilation_dir, container_class_name, definitions)

    assert str(exc_info.value) == (
        "Error while compiling foo. "
        "Error while compiling <nested definition>. "
        "An object was found but objects cannot be compiled"
    )
    assert exc_info.value.root_cause.path == ("foo", 0, "foo")


def test_deeply_nested_object_reports_chained_message(
    compilation_dir: Path,
    container_class_name: str,
) -> None:
    definitions: dict[object, object] = {"foo": {"bar": {"baz": [object()]}}}

    with pytest.raises(DIForgeNestedCompilationError) as exc_info:
        _compiled(compilation_dir, container_class_name, definitions)

    assert str(exc_info.value) == (
        "Error while compiling foo. "
        "Error while compiling <nested definition>. "
        "Error while compiling <nested definition>. "
        "An object was found but objects cannot be compiled"
    )
    assert exc_info.value.root_cause.path == ("foo", "bar", "baz", 0)
    assert not compilation_dir.exists()


def test_autowired_class_is_compiled_only_when_discovered(
    compilation_dir: Path,
    container_class_name: str,
    tmp_path: Path,
) -> None:
    container = _compiled(compilation_dir, container_class_name, {"foo": "bar"})

    assert not container.is_entry_compiled(_Logger)
    assert isinstance(container.get(_Logger), _Logger)

    builder = ContainerBuilder()
    builder.add_definitions({"foo": "bar"})
    builder.enable_compilation(tmp_path / "discovered", container_class_name)
    builder.compile_all_classes(KnownClasses.from_types(_Logger))
    discovered = builder.build()

    assert discovered.is_entry_compiled(_Logger)
    assert isinstance(discovered.get(_Logger), _Logger)


def test_invalid_class_name_is_rejected_before_any_file_is_written(
    compilation_dir: Path,
) -> None:
    with pytest.raises(DIForgeInvalidArtifactNameError, match="`123-abc` is not a valid"):
        _compiled(compilation_dir, "123-abc", {"foo": "bar"})

    assert not compilation_dir.exists()


def test_invalid_class_name_is_rejected_before_known_classes_are_read(
    compilation_dir: Path,
) -> None:
    consumed: list[str] = []

    def names() -> Iterator[str]:
        consumed.append("started")
        yield f"{__name__}._Logger"

    builder = ContainerBuilder()
    builder.enable_compilation(compilation_dir, "123-abc")
    builder.compile_all_classes(KnownClasses.from_iterable(names()))

    with pytest.raises(DIForgeInvalidArtifactNameError):
        builder.build()

    assert consumed == []


def test_class_name_shadowing_generated_globals_is_rejected(compilation_dir: Path) -> None:
    with pytest.raises(DIForgeInvalidArtifactNameError, match="`_type_2` is reserved"):
        _compiled(compilation_dir, "_type_2", {_Logger: autowire()})

    assert not compilation_dir.exists()


def test_compiled_positional_only_defaults_are_not_shifted(
    compilation_dir: Path,
    container_class_name: str,
) -> None:
    container = _compiled(compilation_dir, container_class_name, {_Retrying: autowire()})

    retrying = container.get(_Retrying)

    assert container.is_entry_compiled(_Retrying)
    assert retrying.retries == 3
    assert retrying.logger is _DEFAULT_LOGGER


@pytest.mark.parametrize("key", ["foo", "not.defined"])
def test_set_is_rejected_on_compiled_container(
    compilation_dir: Path,
    container_class_name: str,
    key: str,
) -> None:
    container = _compiled(compilation_dir, container_class_name, {"foo": "bar"})

    with pytest.raises(DIForgeCompiledContainerImmutableError, match="disable compilation"):
        container.set(key, "value")

    assert container.get("foo") == "bar"


def test_custom_parent_type_is_inherited(
    compilation_dir: Path,
    container_class_name: str,
) -> None:
    container = _compiled(
        compilation_dir,
        container_class_name,
        {"name": "world"},
        parent_type=_CustomContainer,
    )

    assert isinstance(container, _CustomContainer)
    assert isinstance(container, CompiledContainer)
    assert container.greeting() == "hello world"


def test_custom_compiled_parent_type_is_inherited(
    compilation_dir: Path,
    container_class_name: str,
) -> None:
    container = _compiled(
        compilation_dir,
        container_class_name,
        {"foo": "bar"},
        parent_type=_CustomCompiledContainer,
    )

    assert isinstance(container, _CustomCompiledContainer)
    assert container.is_entry_compiled("foo")


def test_alias_resolves_through_dispatch_and_fallback(
    compilation_dir: Path,
    container_class_name: str,
) -> None:
    container = _compiled(
        compilation_dir,
        container_class_name,
        {
            "db.host": "localhost",
            "host": get("db.host"),
            "answer": factory(lambda: 42),
            "answer.alias": get("answer"),
        },
    )

    assert container.get("host") == "localhost"
    assert container.get("answer.alias") == 42
    assert container.is_entry_compiled("answer.alias")
    assert not container.is_entry_compiled("answer")


def test_factory_entries_are_served_by_interpreted_fallback(
    compilation_dir: Path,
    container_class_name: str,
) -> None:
    container = _compiled(
        compilation_dir,
        container_class_name,
        {
            "name": "world",
            "greeting": _greeting_factory,
            "greetings": ["hi", factory(_greeting_factory)],
        },
    )

    assert not container.is_entry_compiled("greeting")
    assert not container.is_entry_compiled("greetings")
    assert container.get("greeting") == "hello world"
    assert container.get("greetings") == ["hi", "hello world"]
    assert container.compiled_entries() == ("name",)  # type: ignore[attr-defined]


def test_compiled_construction_follows_injection_order(
    compilation_dir: Path,
    container_class_name: str,
) -> None:
    recorder_definition = (
        create().constructor("recorder").property("label", "main").method("start", "fast")
    )
    container = _compiled(
        compilation_dir,
        container_class_name,
        {_OrderRecorder: recorder_definition},
    )

    recorder = container.get(_OrderRecorder)

    assert container.is_entry_compiled(_OrderRecorder)
    assert recorder.events == ["constructor:recorder", "property:main", "method:fast"]


def test_compiled_autowired_dependencies_are_shared(
    compilation_dir: Path,
    container_class_name: str,
) -> None:
    container = _compiled(compilation_dir, container_class_name, {_Service: autowire()})

    service = container.get(_Service)

    assert container.is_entry_compiled(_Service)
    assert service.logger is container.get(_Logger)
    assert container.get(_Service) is service
    assert container.make(_Service) is not service


def test_compiled_construction_with_nested_definitions(
    compilation_dir: Path,
    container_class_name: str,
) -> None:
    container = _compiled(
        compilation_dir,
        container_class_name,
        {
            "mail.host": "smtp.local",
            "mailers": [
                create(_Mailer).constructor(get("mail.host")),
                create(_Mailer)
                .constructor_parameter("host", "backup.local")
                .property("port", 2525),
            ],
        },
    )

    mailers = container.get("mailers")

    assert container.is_entry_compiled("mailers")
    assert [(mailer.host, mailer.port) for mailer in mailers] == [
        ("smtp.local", 25),
        ("backup.local", 2525),
    ]


def test_container_parameter_receives_compiled_container(
    compilation_dir: Path,
    container_class_name: str,
) -> None:
    container = _compiled(compilation_dir, container_class_name, {_Holder: autowire()})

    assert container.get(_Holder).container is container


def test_environment_and_string_definitions_are_compiled(
    compilation_dir: Path,
    container_class_name: str,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("DIFORGE_TEST_HOST", "db.internal")
    monkeypatch.delenv("DIFORGE_TEST_MISSING", raising=False)
    container = _compiled(
        compilation_dir,
        container_class_name,
        {
            "root": "/srv",
            "host": env("DIFORGE_TEST_HOST", "localhost"),
            "fallback": env("DIFORGE_TEST_MISSING", get("root")),
            "required": env("DIFORGE_TEST_MISSING"),
            "cache": string("{root}/cache/{host}"),
        },
    )

    assert container.is_entry_compiled("cache")
    assert container.get("host") == "db.internal"
    assert container.get("fallback") == "/srv"
    assert container.get("cache") == "/srv/cache/db.internal"
    with pytest.raises(DIForgeEnvironmentVariableNotDefinedError, match="DIFORGE_TEST_MISSING"):
        container.get("required")


def test_missing_entry_raises_not_found(
    compilation_dir: Path,
    container_class_name: str,
) -> None:
    container = _compiled(compilation_dir, container_class_name, {"foo": "bar"})

    assert not container.has("missing")
    with pytest.raises(DIForgeDependencyNotFoundError, match="missing"):
        container.get("missing")


def test_circular_dependency_is_detected_in_compiled_code(
    compilation_dir: Path,
    container_class_name: str,
) -> None:
    container = _compiled(
        compilation_dir,
        container_class_name,
        {_CycleA: autowire(), _CycleB: autowire()},
    )

    with pytest.raises(DIForgeCircularDependencyError):
        container.get(_CycleA)


def test_discovered_class_that_cannot_be_compiled_is_skipped(
    compilation_dir: Path,
    container_class_name: str,
) -> None:
    builder = ContainerBuilder()
    builder.add_definitions({"foo": "bar"})
    builder.enable_compilation(compilation_dir, container_class_name)
    builder.compile_all_classes(
        KnownClasses.from_iterable(
            [
                "builtins.int",
                "does.not.Exist",
                f"{_NeedsName.__module__}.{_NeedsName.__qualname__}",
                f"{_Logger.__module__}.{_Logger.__qualname__}",
            ],
        ),
    )

    container = builder.build()

    assert container.is_entry_compiled(_Logger)
    assert not container.is_entry_compiled(_NeedsName)
    assert not container.is_entry_compiled("builtins.int")
    assert not container.is_entry_compiled("does.not.Exist")


def test_explicit_entry_is_not_replaced_by_discovery(
    compilation_dir: Path,
    container_class_name: str,
) -> None:
    builder = ContainerBuilder()
    builder.add_definitions({_Mailer: create().constructor("smtp.local")})
    builder.enable_compilation(compilation_dir, container_class_name)
    builder.compile_all_classes(KnownClasses.from_types(_Mailer))

    container = builder.build()

    assert container.get(_Mailer).host == "smtp.local"
