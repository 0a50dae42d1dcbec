"""Unit tests for API resource records."""

from datetime import datetime, timezone

import pytest

from plcli.records import Record, parse_datetime, thaw

RESOURCE = {
    "id": "main",
    "count": "12",
    "active": "yes",
    "tags": ["a", "b"],
    "deployment": {"routes": {"https://example.com/": {"type": "upstream"}}},
    "_links": {
        "self": {"href": "/projects/p/environments/main"},
        "#activities": {"href": "/projects/p/environments/main/activities"},
        "broken": {},
    },
}


@pytest.fixture
def record():
    return Record(RESOURCE)


class TestAccessors:
    def test_read_only(self, record):
        with pytest.raises(TypeError):
            record["id"] = "x"  # type: ignore[index]
        with pytest.raises(TypeError):
            record["deployment"]["routes"] = {}

    def test_typed_values(self, record):
        assert record.get_int("count") == 12
        assert record.get_bool("active") is True
        assert record.get_bool("missing", default=True) is True
        assert record.get_list("tags") == ["a", "b"]
        assert record.get_list("missing") == []
        assert record.get_str("missing", "n/a") == "n/a"

    def test_paths(self, record):
        assert record.get_path("deployment.routes") == {"https://example.com/": {"type": "upstream"}}
        assert record.get_path("tags.1") == "b"
        assert record.get_path("tags.5") is None
        assert record.has_path("deployment.routes")
        assert not record.has_path("deployment.nope")

    def test_to_dict_is_a_copy(self, record):
        data = record.to_dict()
        data["tags"].append("c")
        assert record.get_list("tags") == ["a", "b"]
        assert thaw(record["deployment"]) == RESOURCE["deployment"]


class TestLinks:
    def test_links(self, record):
        assert record.links == {
            "self": "/projects/p/environments/main",
            "#activities": "/projects/p/environments/main/activities",
        }
        assert record.has_link("#activities")
        assert not record.has_link("broken")

    def test_missing_link(self, record):
        assert record.link("#backup", "/fallback") == "/fallback"
        with pytest.raises(KeyError):
            record.link("#backup")


def test_get_datetime():
    record = Record({"created_at": "2014-04-01T10:00:00+01:00", "text": "x"})
    assert record.get_datetime("created_at") == datetime(2014, 4, 1, 9, tzinfo=timezone.utc)
    assert record.get_datetime("text") is None


def test_parse_datetime():
    assert parse_datetime("2014-04-01T10:00:00Z") == datetime(2014, 4, 1, 10, tzinfo=timezone.utc)
    assert parse_datetime(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
    assert parse_datetime("soon") is None
    assert parse_datetime(None) is None
