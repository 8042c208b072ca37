"""Tests for response projection."""

import json
from datetime import timedelta

import pytest

from rest_resource.utils.response_projector import extract_identifier, project, stringify_value


class TestProject:
    """Test flattening of JSON response bodies."""

    def test_round_trip(self):
        projected = project('{"id":"42","name":"x","active":true,"meta":{"a":1}}')

        assert projected.is_json
        assert projected.identifier == "42"
        assert projected.data == {
            "id": "42",
            "name": "x",
            "active": "true",
            "meta": '{"a":1}',
        }
        assert json.loads(projected.data["meta"]) == {"a": 1}
        assert projected.received_at.utcoffset() == timedelta(0)

    def test_bytes_body(self):
        projected = project(b'{"count": 3, "ratio": 0.25, "tags": ["a", "b"], "parent": null}')
        assert projected.data == {
            "count": "3",
            "ratio": "0.25",
            "tags": '["a","b"]',
            "parent": "null",
        }
        assert projected.identifier is None

    @pytest.mark.parametrize("body", ["", None, "not json", "[1, 2]", '"text"', "42"])
    def test_non_object_bodies(self, body):
        projected = project(body)
        assert not projected.is_json
        assert projected.data == {}
        assert projected.identifier is None

    def test_numeric_id_is_not_an_identifier(self):
        projected = project('{"id": 42}')
        assert projected.identifier is None
        assert projected.data["id"] == "42"


class TestStringifyValue:
    """Test per-value rendering."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("x", "x"),
            (True, "true"),
            (False, "false"),
            (10, "10"),
            (10.0, "10"),
            (1e21, "1000000000000000000000"),
            (-2.5, "-2.5"),
            (None, "null"),
            ({"b": [1, 2]}, '{"b":[1,2]}'),
            ([], "[]"),
        ],
    )
    def test_values(self, value, expected):
        assert stringify_value(value) == expected

    def test_extract_identifier(self):
        assert extract_identifier({"id": "abc"}) == "abc"
        assert extract_identifier({"id": None}) is None
        assert extract_identifier(["id"]) is None
