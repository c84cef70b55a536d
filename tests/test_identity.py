"""Tests for owner identity normalization."""

from models.digest_models import EmbeddedOwner, RawOwner
from scripts.digest.identity import (
    embedded_name,
    fallback_label,
    normalize_owner,
    parse_owner_ref,
    resolve_name,
)


class TestParseOwnerRef:
    def test_bare_int_is_raw(self):
        assert parse_owner_ref(42) == RawOwner(id=42)

    def test_embedded_dict(self):
        ref = parse_owner_ref({"id": 42, "name": "X", "email": "x@example.com"})
        assert isinstance(ref, EmbeddedOwner)
        assert ref.id == 42
        assert ref.name == "X"

    def test_embedded_dict_falls_back_to_value(self):
        ref = parse_owner_ref({"value": 3, "name": "Cy"})
        assert ref.id == 3

    def test_unusable_values(self):
        assert parse_owner_ref(None) is None
        assert parse_owner_ref("") is None
        assert parse_owner_ref(True) is None
        assert parse_owner_ref({"name": "No id"}) is None
        assert parse_owner_ref(3.5) is None

    def test_parsed_ref_passes_through(self):
        ref = RawOwner(id=1)
        assert parse_owner_ref(ref) is ref


class TestNormalizeOwner:
    def test_shapes_collapse_to_same_id(self):
        assert normalize_owner(42) == normalize_owner({"id": 42, "name": "X"}) == 42

    def test_idempotent(self):
        for value in (42, "abc", {"id": 42, "name": "X"}, RawOwner(id=9), None):
            once = normalize_owner(value)
            assert normalize_owner(once) == once

    def test_string_ids_kept_as_given(self):
        assert normalize_owner("17") == "17"


class TestNames:
    def test_embedded_name(self):
        assert embedded_name({"id": 1, "name": "Ann"}) == "Ann"
        assert embedded_name(1) is None

    def test_users_list_wins(self, users):
        assert resolve_name(5, users, default="Annie") == "Ann Lee"

    def test_default_used_when_user_missing(self, users):
        assert resolve_name(99, users, default="Annie") == "Annie"

    def test_fallback_label(self, users):
        assert resolve_name(99, users) == "Unknown User (99)"
        assert resolve_name(None, []) == "Unknown User"
        assert fallback_label(12) == "Unknown User (12)"

    def test_blank_user_name_falls_through(self):
        assert resolve_name(5, [{"id": 5, "name": "  "}]) == "Unknown User (5)"
