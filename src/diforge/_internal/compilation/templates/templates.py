from textwrap import dedent

MODULE_TEMPLATE = dedent(
    """
    {{ module_docstring_block }}

    {{ imports_block }}
    {% if globals_block %}

    {{ globals_block }}
    {% endif %}


    {{ class_block }}
    """,
).strip()

IMPORTS_TEMPLATE = dedent(
    """
    from __future__ import annotations

    from collections.abc import Mapping
    from typing import Any, ClassVar

    {% if needs_compiled_container_import %}
    from diforge.compiled_container import CompiledContainer
    {% endif %}
    {% if module_imports_block %}
    {{ module_imports_block }}
    {% endif %}
    """,
).strip()

CLASS_TEMPLATE = dedent(
    """
    class {{ class_name }}({{ bases }}):
    {{ class_docstring_block }}

    {{ method_mapping_block }}
    {% if resolver_methods_block %}

    {{ resolver_methods_block }}
    {% endif %}
    """,
).strip()

METHOD_MAPPING_TEMPLATE = dedent(
    """
    METHOD_MAPPING: ClassVar[Mapping[str, str]] = {
    {% if mapping_lines_block %}
    {{ mapping_lines_block }}
    {% endif %}
    }
    """,
).strip()

RESOLVER_METHOD_TEMPLATE = dedent(
    """
    def {{ method_name }}(self) -> Any:
    {% if docstring_block %}
    {{ docstring_block }}
    {% endif %}
    {{ body_block }}
    """,
).strip()
