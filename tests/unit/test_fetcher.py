"""Unit tests for paginated resource fetching."""

import pytest

from plcli.api_client import ApiClient
from plcli.config import load_config
from plcli.exceptions import FetchError, NotFoundError
from plcli.fetcher import ResourceFetcher


@pytest.fixture
def fetcher():
    return ResourceFetcher(ApiClient(load_config()))


class TestFetchCollection:
    def test_plain_list(self, fetcher, fake_api):
        fake_api.add("/items", [{"id": "a"}, {"id": "b"}])
        records = fetcher.fetch_collection("/items")
        assert [r["id"] for r in records] == ["a", "b"]

    def test_follows_next_links_in_order(self, fetcher, fake_api):
        fake_api.add(
            "/items",
            {"items": [{"id": "1"}, {"id": "2"}], "_links": {"next": {"href": "/items?page=2"}}},
        )
        fake_api.add(
            "/items?page=2",
            {"items": [{"id": "3"}], "_links": {"next": {"href": "/items?page=3"}}},
        )
        fake_api.add("/items?page=3", {"items": [{"id": "4"}], "_links": {}})

        records = fetcher.fetch_collection("/items")
        assert [r["id"] for r in records] == ["1", "2", "3", "4"]

    def test_page_limit(self, fake_api):
        fake_api.add("/loop", {"items": [{"id": "x"}], "_links": {"next": {"href": "/loop"}}})
        limited = ResourceFetcher(ApiClient(load_config()), page_limit=3)
        with pytest.raises(FetchError, match="Too many pages"):
            limited.fetch_collection("/loop")
        assert len(fake_api.requests_to("/loop")) == 3

    def test_cached_per_fetcher(self, fetcher, fake_api):
        fake_api.add("/items", [{"id": "a"}])
        fetcher.fetch_collection("/items")
        fetcher.fetch_collection("/items")
        assert len(fake_api.requests_to("/items")) == 1

        fetcher.fetch_collection("/items", refresh=True)
        assert len(fake_api.requests_to("/items")) == 2

    def test_error_status(self, fetcher, fake_api):
        fake_api.add("/broken", {"message": "Internal error"}, status=500)
        with pytest.raises(FetchError, match="HTTP 500"):
            fetcher.fetch_collection("/broken")

    def test_missing_collection_is_fetch_error(self, fetcher):
        with pytest.raises(FetchError):
            fetcher.fetch_collection("/nothing-here")

    def test_unexpected_body(self, fetcher, fake_api):
        fake_api.add("/weird", "not json")
        with pytest.raises(FetchError, match="Invalid JSON"):
            fetcher.fetch_collection("/weird")


class TestFetchOne:
    def test_record(self, fetcher, fake_api):
        fake_api.add("/users/me", {"id": "me", "email": "me@example.com"})
        record = fetcher.fetch_one("/users/me")
        assert record.get_str("email") == "me@example.com"

    def test_not_found(self, fetcher):
        with pytest.raises(NotFoundError, match="Not found"):
            fetcher.fetch_one("/users/nobody")

    def test_invalidate_drops_cache(self, fetcher, fake_api):
        fake_api.add("/users/me", {"id": "me"})
        fetcher.fetch_one("/users/me")
        fetcher.invalidate()
        fetcher.fetch_one("/users/me")
        assert len(fake_api.requests_to("/users/me")) == 2
