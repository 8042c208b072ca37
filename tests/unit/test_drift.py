"""Tests for drift detection."""

import logging
from decimal import Decimal

from rest_resource.models import DiffKind
from rest_resource.utils.drift import (
    DEFAULT_IGNORE_FIELDS,
    DriftPolicy,
    detect_body_drift,
    detect_drift,
    values_equal,
)


class TestDetectDrift:
    """Test the structural comparison of JSON objects."""

    def test_server_metadata_is_not_drift(self):
        report = detect_drift(
            {"name": "John", "email": "j@x.com"},
            {"name": "John", "email": "j@x.com", "id": "123", "created_at": "t"},
        )
        assert not report.drift_detected
        assert report.diffs == []

    def test_default_ignored_even_when_expected(self):
        report = detect_drift(
            {"name": "John", "id": "1", "updatedAt": "yesterday"},
            {"name": "John", "id": "2", "updatedAt": "today"},
        )
        assert not report.drift_detected

    def test_numeric_cross_type_equality(self):
        assert not detect_drift({"count": 1}, {"count": 1.0}).drift_detected

    def test_changed_value(self):
        report = detect_drift({"name": "John"}, {"name": "Jane"})
        assert report.drift_detected
        assert report.paths == ["name"]
        diff = report.diffs[0]
        assert diff.kind is DiffKind.CHANGED
        assert (diff.expected, diff.observed) == ("John", "Jane")

    def test_missing_field(self):
        report = detect_drift({"name": "John", "role": "admin"}, {"name": "John"})
        assert report.paths == ["role"]
        assert report.diffs[0].kind is DiffKind.MISSING

    def test_observed_only_fields_are_not_drift(self):
        report = detect_drift({"name": "John"}, {"name": "John", "nickname": "JJ"})
        assert not report.drift_detected

    def test_nested_objects_use_dotted_paths(self):
        report = detect_drift(
            {"profile": {"address": {"city": "Oslo", "zip": "0150"}}},
            {"profile": {"address": {"city": "Bergen", "zip": "0150", "id": 7}}},
        )
        assert report.paths == ["profile.address.city"]

    def test_ignore_fields_apply_at_every_depth(self):
        report = detect_drift(
            {"settings": {"theme": "dark", "lastLogin": "mon"}},
            {"settings": {"theme": "dark", "lastLogin": "tue"}},
            ignore_fields={"lastLogin"},
        )
        assert not report.drift_detected

    def test_type_mismatch(self):
        report = detect_drift({"active": True}, {"active": "true"})
        assert report.paths == ["active"]

    def test_bool_is_not_number(self):
        report = detect_drift({"enabled": 1}, {"enabled": True})
        assert report.drift_detected

    def test_object_replaced_by_scalar(self):
        report = detect_drift({"owner": {"name": "a"}}, {"owner": "a"})
        assert report.paths == ["owner"]

    def test_arrays_compare_element_wise(self):
        assert not detect_drift({"tags": ["a", 1]}, {"tags": ["a", 1.0]}).drift_detected
        assert detect_drift({"tags": ["a", "b"]}, {"tags": ["b", "a"]}).drift_detected
        assert detect_drift({"tags": ["a"]}, {"tags": ["a", "b"]}).drift_detected

    def test_array_elements_match_key_for_key(self):
        """Extra keys inside array elements count, ignored names included."""
        report = detect_drift({"tags": [{"name": "a"}]}, {"tags": [{"name": "a", "id": "t-1"}]})
        assert report.paths == ["tags"]
        assert report.diffs[0].kind is DiffKind.CHANGED
        assert not detect_drift(
            {"tags": [{"name": "a"}]}, {"tags": [{"name": "a"}]}
        ).drift_detected

    def test_non_json_values_do_not_raise(self):
        assert not detect_drift({"n": Decimal("1")}, {"n": 1}).drift_detected
        assert detect_drift({"n": Decimal("1.5")}, {"n": 2}).paths == ["n"]

    def test_null_values(self):
        assert not detect_drift({"parent": None}, {"parent": None}).drift_detected
        assert detect_drift({"parent": None}, {"parent": "x"}).drift_detected

    def test_default_set_covers_metadata_families(self):
        for name in ("uuid", "etag", "resourceVersion", "owner_id", "_links", "self"):
            assert name in DEFAULT_IGNORE_FIELDS


class TestValuesEqual:
    """Test JSON value equality."""

    def test_large_integers_compare_exactly(self):
        assert not values_equal(2**63, 2**63 + 1)

    def test_nested_structures(self):
        assert values_equal({"a": [1, {"b": 2.0}]}, {"a": [1.0, {"b": 2}]})
        assert not values_equal({"a": 1}, {"a": 1, "b": 2})


class TestDetectBodyDrift:
    """Test comparison of raw bodies."""

    def test_json_bodies(self):
        report = detect_body_drift('{"name": "John"}', b'{"name": "Jane", "id": "1"}')
        assert report.paths == ["name"]

    def test_non_json_expected_compares_strings(self):
        assert not detect_body_drift("plain text", "plain text").drift_detected
        report = detect_body_drift("plain text", "other text")
        assert report.drift_detected
        assert report.diffs[0].kind is DiffKind.BODY

    def test_non_object_observed_is_whole_body_drift(self):
        report = detect_body_drift('{"name": "John"}', "<html>error</html>")
        assert report.drift_detected
        assert report.diffs[0].kind is DiffKind.BODY
        assert report.diffs[0].observed == "<html>error</html>"


class TestDriftPolicy:
    """Test policy toggles and logging."""

    def test_disabled(self):
        policy = DriftPolicy(enabled=False)
        assert not policy.check('{"name": "John"}', '{"name": "Jane"}').drift_detected

    def test_user_fields_merge_with_defaults(self):
        policy = DriftPolicy(ignore_fields=["lastLogin"])
        assert {"lastLogin", "id", "created_at"} <= policy.ignore_fields

    def test_drift_is_logged(self, caplog):
        policy = DriftPolicy()
        with caplog.at_level(logging.WARNING, logger="rest_resource.utils.drift"):
            report = policy.check('{"name": "John"}', '{"name": "Jane"}')
        assert report.drift_detected
        assert "Drift detected in 1 field(s): name" in caplog.text
