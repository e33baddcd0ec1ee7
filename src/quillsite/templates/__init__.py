"""Layout-composing template engine and bundled templates."""

from quillsite.templates.engine import (
    CompiledTemplate,
    compose,
    create_environment,
    load_layout,
    render,
)

__all__ = ["CompiledTemplate", "compose", "create_environment", "load_layout", "render"]
