"""Tests for TreeFormCodec: encoding value trees and decoding submissions."""

import pytest

from quillsite.content.codec import (
    EMPTY_KEY,
    TreeFormCodec,
    decode,
    encode,
    escape_key,
    flatten_to_map,
    join_index,
    join_key,
    parse_path,
    presence_base,
)
from quillsite.content.models import InputKind
from quillsite.errors import NestingDepthError


def roundtrip(value):
    return decode(flatten_to_map(encode(value)), value)


class TestFieldPaths:
    def test_join_key_and_index(self):
        assert join_key("", "contact") == "contact"
        assert join_key("contact", "city") == "contact.city"
        assert join_index("items", 2) == "items[2]"

    def test_parse_nested_path(self):
        assert parse_path("contact.address[2].city") == ["contact", "address", 2, "city"]

    def test_parse_consecutive_indices(self):
        assert parse_path("grid[1][0]") == ["grid", 1, 0]

    def test_escaped_separators_stay_in_key(self):
        key = "v1.0 [beta]"
        path = join_key("releases", key)
        assert path == "releases.v1\\.0 \\[beta\\]"
        assert parse_path(path) == ["releases", key]

    def test_escape_backslash(self):
        assert escape_key("a\\b") == "a\\\\b"
        assert parse_path(escape_key("a\\b")) == ["a\\b"]

    def test_empty_key_has_its_own_spelling(self):
        assert escape_key("") == EMPTY_KEY == "\\~"
        assert join_key("outer", "") == "outer.\\~"
        assert parse_path("\\~.a") == ["", "a"]
        assert parse_path("outer.\\~") == ["outer", ""]
        assert parse_path("\\~[0]") == ["", 0]

    def test_literal_tilde_key_is_not_empty(self):
        assert parse_path(escape_key("~")) == ["~"]

    def test_presence_base(self):
        assert presence_base("tags\\#") == "tags"
        assert presence_base("tags[0]\\#") == "tags[0]"
        assert presence_base("tags") is None
        assert presence_base("hash#") is None
        # An escaped backslash followed by "#" is part of the key.
        assert presence_base(join_key("", "a\\#")) is None

    @pytest.mark.parametrize("path", ["items[x]", "items[1", "items]", "trailing\\"])
    def test_malformed_paths_raise(self, path):
        with pytest.raises(ValueError):
            parse_path(path)


class TestEncode:
    def test_object_keys_sorted(self):
        fields = encode({"zeta": "z", "alpha": "a", "mid": "m"})
        assert [f.path for f in fields] == ["alpha", "mid", "zeta"]

    def test_leaf_kinds(self):
        fields = {f.path: f for f in encode({"n": 3, "s": "x", "b": False, "z": None})}
        assert fields["n"].kind == InputKind.NUMBER
        assert fields["n"].value == "3"
        assert fields["s"].kind == InputKind.TEXT
        assert fields["b"].kind == InputKind.CHECKBOX
        assert fields["b"].checked is False
        assert fields["z"].kind == InputKind.TEXT
        assert fields["z"].value == ""

    def test_nested_sections(self):
        fields = encode({"contact": {"address": [{"city": "Oslo"}]}})
        contact = fields[0]
        assert contact.kind == InputKind.NESTED_SECTION
        address = contact.children[0]
        assert address.kind == InputKind.ARRAY_SECTION
        assert address.path == "contact.address"
        item = address.children[0]
        assert item.path == "contact.address[0]"
        assert item.children[0].path == "contact.address[0].city"
        assert item.children[0].value == "Oslo"

    def test_scalar_root(self):
        fields = encode("hello")
        assert len(fields) == 1
        assert fields[0].path == "value"

    def test_float_formatting(self):
        fields = encode({"price": 2.5})
        assert fields[0].value == "2.5"

    def test_depth_limit(self):
        value: dict = {}
        node = value
        for _ in range(10):
            node["x"] = {}
            node = node["x"]
        with pytest.raises(NestingDepthError):
            TreeFormCodec(max_depth=5).encode(value)


class TestFlatten:
    def test_unchecked_checkbox_omitted(self):
        fields = flatten_to_map(encode({"on": True, "off": False}))
        assert fields == {"on": "true"}

    def test_array_entries_flattened(self):
        fields = flatten_to_map(encode({"tags": ["a", "b"]}))
        assert fields == {
            "tags\\#": "",
            "tags[0]\\#": "",
            "tags[0]": "a",
            "tags[1]\\#": "",
            "tags[1]": "b",
        }


class TestDecode:
    def test_roundtrip_mixed_document(self):
        value = {
            "siteTitle": "Acme",
            "visitors": 1200,
            "rating": 4.5,
            "published": True,
            "draft": False,
            "contactInfo": {"email": "hi@acme.test", "phones": ["1", "2"]},
            "portfolio": [{"title": "One", "featured": False}, {"title": "Two", "featured": True}],
            "notes": None,
            "empty": {},
            "none": [],
        }
        assert roundtrip(value) == value

    def test_roundtrip_scalar_root(self):
        assert roundtrip(42) == 42
        assert roundtrip("text") == "text"

    def test_roundtrip_array_root(self):
        assert roundtrip([1, "two", False]) == [1, "two", False]

    def test_checkbox_absent_is_false(self):
        assert decode({}, {"published": True}) == {"published": False}

    def test_checkbox_presence_is_truth(self):
        assert decode({"published": ""}, {"published": False}) == {"published": True}

    def test_number_parsed_by_hint(self):
        assert decode({"count": "7", "ratio": "0.25"}, {"count": 1, "ratio": 1.0}) == {
            "count": 7,
            "ratio": 0.25,
        }

    def test_unparseable_number_kept_as_string(self):
        assert decode({"count": "lots"}, {"count": 1}) == {"count": "lots"}

    def test_null_hint(self):
        assert decode({"notes": ""}, {"notes": None}) == {"notes": None}
        assert decode({"notes": "hi"}, {"notes": None}) == {"notes": "hi"}

    def test_new_keys_become_strings_sorted(self):
        result = decode({"b": "2", "a": "1"}, {})
        assert result == {"a": "1", "b": "2"}
        assert list(result) == ["a", "b"]

    def test_missing_text_key_omitted(self):
        assert decode({"kept": "x"}, {"kept": "a", "gone": "b"}) == {"kept": "x"}

    def test_array_growth(self):
        assert decode({"tags[0]": "a", "tags[1]": "b"}, {"tags": ["a"]}) == {"tags": ["a", "b"]}

    def test_array_stops_at_first_gap(self):
        result = decode({"items[0]": "x", "items[2]": "z"}, {"items": ["a", "b", "c"]})
        assert result == {"items": ["x"]}

    def test_array_of_unchecked_booleans_kept(self):
        assert decode({"flags[1]": "true"}, {"flags": [False, False]}) == {
            "flags": [False, True]
        }

    def test_no_hint(self):
        assert decode({}) == {}
        assert decode({"a.b": "1", "list[0]": "x"}) == {"a": {"b": "1"}, "list": ["x"]}

    def test_malformed_path_becomes_plain_key(self):
        assert decode({"odd[x]": "v"}, {}) == {"odd[x]": "v"}

    def test_structure_replaces_scalar(self):
        assert decode({"title.main": "Hi"}, {"title": "old"}) == {"title": {"main": "Hi"}}

    def test_submission_depth_limit(self):
        path = ".".join(["k"] * 20)
        with pytest.raises(NestingDepthError):
            TreeFormCodec(max_depth=8).decode({path: "x"}, {})


class TestEmptyKeys:
    @pytest.mark.parametrize(
        "value",
        [
            {"": "x"},
            {"": {"a": "inner"}, "a": "outer"},
            {"outer": {"": 1}},
            {"": ["a", "b"], "b": True},
        ],
    )
    def test_roundtrip(self, value):
        assert roundtrip(value) == value

    def test_paths_stay_distinct(self):
        fields = encode({"": {"a": "inner"}, "a": "outer"})
        paths = [fields[0].children[0].path, fields[1].path]
        assert paths == ["\\~.a", "a"]


class TestPresenceMarkers:
    def test_boolean_array_shrinks(self):
        submitted = {
            "flags\\#": "",
            "flags[0]\\#": "",
            "flags[1]\\#": "",
            "flags[1]": "true",
        }
        result = decode(submitted, {"flags": [True, False, True]})
        assert result == {"flags": [False, True]}

    def test_all_items_removed(self):
        assert decode({"flags\\#": ""}, {"flags": [True, False]}) == {"flags": []}

    def test_object_items_of_checkboxes_removed(self):
        hint = {"rows": [{"on": True}, {"on": False}, {"on": True}]}
        submitted = {"rows\\#": "", "rows[0]\\#": "", "rows[0].on": "true"}
        assert decode(submitted, hint) == {"rows": [{"on": True}]}

    def test_unmarked_submission_keeps_guessing(self):
        assert decode({}, {"flags": [True, False]}) == {"flags": [False, False]}

    def test_markers_on_unhinted_array(self):
        assert decode({"list\\#": "", "list[0]\\#": "", "list[0]": "x"}) == {"list": ["x"]}

    def test_marked_empty_array_without_hint(self):
        assert decode({"list\\#": ""}) == {"list": []}

    def test_flattened_form_roundtrips_removal(self):
        value = {"flags": [True, False, True]}
        fields = flatten_to_map(encode(value))
        del fields["flags[2]\\#"]
        del fields["flags[2]"]
        assert decode(fields, value) == {"flags": [True, False]}


class TestAppendedItems:
    def test_appended_numbers_follow_last_item(self):
        assert decode({"n[0]": "1", "n[1]": "2"}, {"n": [5]}) == {"n": [1, 2]}

    def test_appended_object_item_gets_shape(self):
        hint = {"items": [{"qty": 3, "on": True}]}
        submitted = {"items[0].qty": "3", "items[0].on": "true", "items[1].qty": "4"}
        assert decode(submitted, hint) == {
            "items": [{"qty": 3, "on": True}, {"qty": 4, "on": False}]
        }

    def test_appended_to_empty_array_stays_text(self):
        assert decode({"tags[0]": "7"}, {"tags": []}) == {"tags": ["7"]}


class TestShapeChanges:
    def test_scalar_replaces_object(self):
        result = decode({"contact": "none"}, {"contact": {"email": "x"}})
        assert result == {"contact": "none"}

    def test_scalar_replaces_array(self):
        assert decode({"tags": "a, b"}, {"tags": ["a", "b"]}) == {"tags": "a, b"}
