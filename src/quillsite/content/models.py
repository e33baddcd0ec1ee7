"""Form descriptor models: pure Pydantic v2 data types.

A FieldDescriptor describes one input (or one section grouping inputs) of
an admin edit form. An AdminForm bundles the descriptors with the hidden
fields that route a submission back to its content file.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field

CONTENT_TYPE_FIELD = "content_type"
CONTENT_PATH_FIELD = "content_path"
RESERVED_FIELDS = frozenset({CONTENT_TYPE_FIELD, CONTENT_PATH_FIELD})

# Appended to an array section or array item path to name its hidden
# presence field. Key escaping never produces a backslash before "#".
PRESENCE_MARKER = "\\#"


class InputKind(StrEnum):
    """How a field is presented in the edit form."""

    TEXT = "text"
    NUMBER = "number"
    CHECKBOX = "checkbox"
    NESTED_SECTION = "nested-section"
    ARRAY_SECTION = "array-section"
    TEXTAREA = "textarea"
    FILE = "file"


SECTION_KINDS = frozenset({InputKind.NESTED_SECTION, InputKind.ARRAY_SECTION})


class FieldDescriptor(BaseModel):
    """One form input, or one section holding nested descriptors."""

    path: str
    label: str
    kind: InputKind
    value: str = ""
    checked: bool = False
    children: list[FieldDescriptor] = Field(default_factory=list)

    @property
    def is_section(self) -> bool:
        return self.kind in SECTION_KINDS

    @property
    def presence_name(self) -> str:
        """Name of the hidden field that marks this array or item as submitted."""
        return self.path + PRESENCE_MARKER


class AdminForm(BaseModel):
    """Everything needed to render the edit form for one content file."""

    content_type: str
    content_path: str
    title: str
    submit_label: str = "Save"
    enctype: str = "application/x-www-form-urlencoded"
    preview_url: str = ""
    fields: list[FieldDescriptor] = Field(default_factory=list)


FieldDescriptor.model_rebuild()
