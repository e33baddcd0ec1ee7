"""Content domain: value classification, form codec, and content entities."""

from quillsite.content.codec import TreeFormCodec, decode, encode, flatten_to_map
from quillsite.content.entities import (
    ContentEntity,
    JSONEntity,
    MarkdownEntity,
    MediaEntity,
    entity_for_type,
    open_entity,
)
from quillsite.content.models import AdminForm, FieldDescriptor, InputKind
from quillsite.content.values import ValueKind, kind_of

__all__ = [
    "AdminForm",
    "ContentEntity",
    "FieldDescriptor",
    "InputKind",
    "JSONEntity",
    "MarkdownEntity",
    "MediaEntity",
    "TreeFormCodec",
    "ValueKind",
    "decode",
    "encode",
    "entity_for_type",
    "flatten_to_map",
    "kind_of",
    "open_entity",
]
