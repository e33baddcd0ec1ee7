"""TreeFormCodec: JSON value trees to flat form fields and back.

``encode`` walks a decoded JSON value and produces FieldDescriptors whose
paths are FieldPaths such as ``contact.address[2].city``. ``decode`` takes
the flat ``{path: string}`` map a browser submits and rebuilds the tree,
using the previously loaded value as a shape hint to recover numbers and
booleans, which arrive as plain strings (or not at all, for unchecked
checkboxes).

Array sections and their items also submit a hidden presence field (the
item path followed by ``PRESENCE_MARKER``). When an array carries its
marker, exactly the marked items are rebuilt, so removing an item that
holds only checkboxes really removes it. Unmarked submissions fall back to
guessing presence from the shape hint.

Array reconstruction scans indices upward from 0 and stops at the first
missing index. A client that removes or reorders entries must renumber
them contiguously before submitting, otherwise trailing entries are dropped.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from quillsite.content.models import PRESENCE_MARKER, FieldDescriptor, InputKind
from quillsite.content.values import (
    ValueKind,
    format_number,
    has_text_leaves,
    kind_of,
    parse_number,
)
from quillsite.errors import NestingDepthError

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64
ROOT_FIELD = "value"

# Spelling of the empty object key, so it never collapses into its parent.
EMPTY_KEY = "\\~"

_ESCAPED = ("\\", ".", "[", "]")
_NO_HINT = object()


# ── FieldPath helpers ────────────────────────────────────────────


def escape_key(key: str) -> str:
    """Backslash-escape the characters FieldPath syntax reserves."""
    if not key:
        return EMPTY_KEY
    for ch in _ESCAPED:
        key = key.replace(ch, "\\" + ch)
    return key


def join_key(prefix: str, key: str) -> str:
    escaped = escape_key(key)
    return f"{prefix}.{escaped}" if prefix else escaped


def join_index(prefix: str, index: int) -> str:
    return f"{prefix}[{index}]"


def presence_base(name: str) -> str | None:
    """Return the array or item path a presence field marks, else None."""
    if not name.endswith(PRESENCE_MARKER):
        return None
    head = name[:-1]
    backslashes = len(head) - len(head.rstrip("\\"))
    if backslashes % 2 == 0:
        # An escaped backslash followed by a literal "#" inside a key.
        return None
    return name[: -len(PRESENCE_MARKER)]


def parse_path(path: str) -> list[str | int]:
    """Split a FieldPath into object keys (str) and array indices (int).

    Raises ValueError for malformed paths (unbalanced or non-numeric
    brackets, dangling escapes).
    """
    segments: list[str | int] = []
    buf: list[str] = []
    empty_key = False
    after_index = False
    i = 0
    n = len(path)
    while i < n:
        ch = path[i]
        if ch == "\\":
            if i + 1 >= n:
                raise ValueError(f"dangling escape in {path!r}")
            if path[i : i + 2] == EMPTY_KEY:
                empty_key = True
            else:
                buf.append(path[i + 1])
            after_index = False
            i += 2
            continue
        if ch == ".":
            if buf or empty_key or not after_index:
                segments.append("".join(buf))
            buf = []
            empty_key = False
            after_index = False
            i += 1
            continue
        if ch == "[":
            if buf or empty_key or (segments and not after_index):
                segments.append("".join(buf))
            buf = []
            empty_key = False
            close = path.find("]", i)
            digits = path[i + 1 : close] if close != -1 else ""
            if not digits.isdigit():
                raise ValueError(f"malformed index in {path!r}")
            segments.append(int(digits))
            after_index = True
            i = close + 1
            continue
        if ch == "]":
            raise ValueError(f"unbalanced ']' in {path!r}")
        buf.append(ch)
        after_index = False
        i += 1
    if buf or empty_key or (segments and not after_index):
        segments.append("".join(buf))
    return segments


def last_segment(path: str) -> str:
    try:
        segments = parse_path(path)
    except ValueError:
        return path
    return str(segments[-1]) if segments else ""


# ── Submitted-field trie ─────────────────────────────────────────


@dataclass
class _Node:
    """Submitted fields grouped by FieldPath segment."""

    value: str | None = None
    marked: bool = False
    keys: dict[str, _Node] = field(default_factory=dict)
    indices: dict[int, _Node] = field(default_factory=dict)

    def key(self, name: str) -> _Node | None:
        return self.keys.get(name)

    def index(self, i: int) -> _Node | None:
        return self.indices.get(i)

    @property
    def is_scalar(self) -> bool:
        return self.value is not None and not self.keys and not self.indices


class TreeFormCodec:
    """Encodes value trees as form fields and decodes submissions back.

    Recursion depth is bounded by ``max_depth`` in both directions so a
    hostile submission cannot exhaust the interpreter stack.
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self.max_depth = max_depth

    # ── Encode ───────────────────────────────────────────────────

    def encode(self, value: Any, prefix: str = "") -> list[FieldDescriptor]:
        """Describe ``value`` as an ordered list of form fields.

        Object keys are emitted in sorted order. At the root an object
        contributes its children directly; a scalar root becomes a single
        leaf named ``value``.
        """
        kind = kind_of(value)
        if kind == ValueKind.OBJECT:
            return [
                self._describe(value[key], join_key(prefix, key), key, 1)
                for key in sorted(value)
            ]
        if kind == ValueKind.ARRAY:
            return [self._describe(value, prefix, last_segment(prefix), 0)]
        path = prefix or ROOT_FIELD
        return [self._describe(value, path, last_segment(path), 0)]

    def _describe(self, value: Any, path: str, label: str, depth: int) -> FieldDescriptor:
        if depth > self.max_depth:
            raise NestingDepthError(f"value nests deeper than {self.max_depth} at {path!r}")

        kind = kind_of(value)
        if kind == ValueKind.OBJECT:
            children = [
                self._describe(value[key], join_key(path, key), key, depth + 1)
                for key in sorted(value)
            ]
            return FieldDescriptor(
                path=path, label=label, kind=InputKind.NESTED_SECTION, children=children
            )
        if kind == ValueKind.ARRAY:
            children = [
                self._describe(item, join_index(path, i), str(i), depth + 1)
                for i, item in enumerate(value)
            ]
            return FieldDescriptor(
                path=path, label=label, kind=InputKind.ARRAY_SECTION, children=children
            )
        if kind == ValueKind.BOOL:
            return FieldDescriptor(
                path=path, label=label, kind=InputKind.CHECKBOX, value="true", checked=value
            )
        if kind == ValueKind.NUMBER:
            return FieldDescriptor(
                path=path, label=label, kind=InputKind.NUMBER, value=format_number(value)
            )
        if kind == ValueKind.STRING:
            return FieldDescriptor(path=path, label=label, kind=InputKind.TEXT, value=value)
        if kind == ValueKind.NULL:
            return FieldDescriptor(path=path, label=label, kind=InputKind.TEXT, value="")
        # Lossy fallback for shapes JSON cannot produce.
        return FieldDescriptor(path=path, label=label, kind=InputKind.TEXT, value=str(value))

    # ── Flatten ──────────────────────────────────────────────────

    def flatten_to_map(self, descriptors: Iterable[FieldDescriptor]) -> dict[str, str]:
        """Return the field map a browser would submit for these descriptors.

        Unchecked checkboxes and file inputs are omitted. Array sections and
        their items contribute their hidden presence fields.
        """
        fields: dict[str, str] = {}
        stack = list(reversed(list(descriptors)))
        while stack:
            desc = stack.pop()
            if desc.is_section:
                if desc.kind == InputKind.ARRAY_SECTION:
                    fields[desc.presence_name] = ""
                    for child in desc.children:
                        fields[child.presence_name] = ""
                stack.extend(reversed(desc.children))
            elif desc.kind == InputKind.CHECKBOX:
                if desc.checked:
                    fields[desc.path] = desc.value or "true"
            elif desc.kind != InputKind.FILE:
                fields[desc.path] = desc.value
        return fields

    # ── Decode ───────────────────────────────────────────────────

    def decode(self, fields: Mapping[str, str], shape_hint: Any = _NO_HINT) -> Any:
        """Rebuild a value tree from submitted ``{FieldPath: string}`` pairs.

        Args:
            fields: Submitted form fields. Reserved routing fields must be
                removed by the caller.
            shape_hint: The previously loaded value, used to recover the
                original variant at each path. Omit when unknown.

        Returns:
            The reconstructed value. With no hint and no fields, ``{}``.
        """
        root = self._build_trie(fields)
        has_hint = shape_hint is not _NO_HINT

        if has_hint and kind_of(shape_hint) not in (ValueKind.OBJECT, ValueKind.ARRAY):
            return self._decode(root.key(ROOT_FIELD), shape_hint, 0)
        if not has_hint and root.value is None and not (root.marked or root.keys or root.indices):
            return {}
        return self._decode(root, shape_hint, 0)

    def _build_trie(self, fields: Mapping[str, str]) -> _Node:
        root = _Node()
        for name, value in fields.items():
            base = presence_base(name)
            path = name if base is None else base
            try:
                segments = parse_path(path)
            except ValueError:
                logger.debug("Treating malformed field path %r as a plain key", path)
                segments = [path]
            if len(segments) > self.max_depth:
                raise NestingDepthError(
                    f"field path nests deeper than {self.max_depth}: {path!r}"
                )
            node = root
            for segment in segments:
                if isinstance(segment, int):
                    node = node.indices.setdefault(segment, _Node())
                else:
                    node = node.keys.setdefault(segment, _Node())
            if base is None:
                node.value = value
            else:
                node.marked = True
        return root

    def _decode(self, node: _Node | None, hint: Any, depth: int) -> Any:
        if depth > self.max_depth:
            raise NestingDepthError(f"submission nests deeper than {self.max_depth}")

        if hint is _NO_HINT:
            return self._decode_unhinted(node, depth)

        kind = kind_of(hint)
        if kind in (ValueKind.OBJECT, ValueKind.ARRAY):
            if node is not None and node.is_scalar:
                # The client replaced a structure with plain text.
                return node.value
            if kind == ValueKind.OBJECT:
                return self._decode_object(node, hint, depth)
            return self._decode_array(node, hint, depth)
        if node is not None and node.value is None and (node.keys or node.indices):
            # The client replaced a scalar with a structure.
            return self._decode_unhinted(node, depth)
        if kind == ValueKind.BOOL:
            # Checkbox semantics: presence is truth, whatever the content.
            return node is not None and node.value is not None
        if node is None or node.value is None:
            return None
        if kind == ValueKind.NUMBER:
            try:
                return parse_number(node.value)
            except ValueError:
                return node.value
        if kind == ValueKind.NULL:
            return None if node.value == "" else node.value
        return node.value

    def _decode_object(self, node: _Node | None, hint: dict, depth: int) -> dict:
        result: dict[str, Any] = {}
        for key, child_hint in hint.items():
            child = node.key(key) if node is not None else None
            if _present(child, child_hint):
                result[key] = self._decode(child, child_hint, depth + 1)
        if node is not None:
            for key in sorted(node.keys):
                if key not in hint:
                    result[key] = self._decode(node.keys[key], _NO_HINT, depth + 1)
        return result

    def _decode_array(self, node: _Node | None, hint: list, depth: int) -> list:
        """Rebuild an array from indices 0, 1, ... up to the first absent one.

        A marked array keeps exactly the submitted items. Items past the end
        of the hint take the last hinted item as their shape.
        """
        marked = node is not None and node.marked
        result: list[Any] = []
        i = 0
        while True:
            child = node.index(i) if node is not None else None
            if i < len(hint):
                child_hint = hint[i]
                present = child is not None if marked else _present(child, child_hint)
            else:
                child_hint = hint[-1] if hint else _NO_HINT
                present = child is not None
            if not present:
                break
            result.append(self._decode(child, child_hint, depth + 1))
            i += 1
        if node is not None and len(result) < len(node.indices):
            dropped = sorted(idx for idx in node.indices if idx >= len(result))
            logger.debug("Dropping array entries after index gap: %s", dropped)
        return result

    def _decode_unhinted(self, node: _Node | None, depth: int) -> Any:
        if node is None:
            return None
        if node.value is not None:
            return node.value
        if node.keys:
            return {
                key: self._decode(node.keys[key], _NO_HINT, depth + 1)
                for key in sorted(node.keys)
            }
        return self._decode_array(node, [], depth)


def _present(node: _Node | None, hint: Any) -> bool:
    """Whether a hinted child of an unmarked submission should be rebuilt.

    A child is present when anything was submitted for it, or when its
    hinted subtree holds only inputs a browser may omit (checkboxes,
    empty containers).
    """
    if node is not None:
        return True
    if hint is _NO_HINT:
        return False
    return not has_text_leaves(hint)


_default_codec = TreeFormCodec()


def encode(value: Any, prefix: str = "") -> list[FieldDescriptor]:
    """Encode with the default depth limit."""
    return _default_codec.encode(value, prefix)


def flatten_to_map(descriptors: Iterable[FieldDescriptor]) -> dict[str, str]:
    return _default_codec.flatten_to_map(descriptors)


def decode(fields: Mapping[str, str], shape_hint: Any = _NO_HINT) -> Any:
    """Decode with the default depth limit."""
    return _default_codec.decode(fields, shape_hint)
