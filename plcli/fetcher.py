"""Resource fetching with pagination and per-invocation caching."""

import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

import requests

from .api_client import ApiClient
from .exceptions import FetchError, NotFoundError
from .records import Record

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, Tuple[Tuple[str, str], ...]]


def describe_error(resp: requests.Response) -> str:
    """Build a one-line description of an error response."""
    detail = ""
    try:
        data = resp.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        detail = str(data.get("message") or data.get("detail") or data.get("title") or "")
    elif resp.text and resp.text.strip():
        detail = resp.text.strip().splitlines()[0]
    status = f"HTTP {resp.status_code}"
    return f"{status}: {detail}" if detail else status


class ResourceFetcher:
    """Fetch API resources as :class:`Record` objects.

    Collection responses are either a JSON array or an object with an ``items``
    array and an optional ``_links.next.href``; further pages are requested until
    no next link remains or ``page_limit`` pages have been read.

    Args:
        client: Authenticated API client
        page_limit: Maximum number of pages to request for one collection
    """

    def __init__(self, client: ApiClient, page_limit: Optional[int] = None) -> None:
        self.client = client
        self.page_limit = page_limit or client.config.page_limit
        self._cache: Dict[CacheKey, Any] = {}
        self._lock = threading.Lock()

    def _cache_key(self, kind: str, url: str, query: Optional[Dict[str, Any]]) -> CacheKey:
        items = tuple(sorted((str(k), str(v)) for k, v in (query or {}).items()))
        return (f"{kind}:{self.client.url_for(url)}", items)

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        resp = self.client.get(url, params=params)
        if resp.status_code == 404:
            raise NotFoundError(f"Not found: {self.client.url_for(url)}")
        if not 200 <= resp.status_code < 300:
            raise FetchError(f"Failed to fetch {self.client.url_for(url)}: {describe_error(resp)}")
        try:
            return resp.json()
        except ValueError as exc:
            raise FetchError(f"Invalid JSON from {self.client.url_for(url)}: {exc}") from exc

    def fetch_collection(
        self,
        url: str,
        query: Optional[Dict[str, Any]] = None,
        refresh: bool = False,
    ) -> List[Record]:
        """Fetch every page of a collection, preserving server order.

        Args:
            url: Collection path or link href
            query: Query parameters for the first page
            refresh: Bypass the in-process cache

        Returns:
            Records in server order

        Raises:
            FetchError: On network, status or decode failure, or when the page
                limit is exceeded
        """
        key = self._cache_key("collection", url, query)
        if not refresh:
            with self._lock:
                cached = self._cache.get(key)
            if cached is not None:
                logger.debug("Cache hit for %s", key[0])
                return list(cached)

        items: List[Record] = []
        next_url: Optional[str] = url
        params = query
        pages = 0
        while next_url:
            if pages >= self.page_limit:
                raise FetchError(
                    f"Too many pages while fetching {self.client.url_for(url)} "
                    f"(limit: {self.page_limit})"
                )
            try:
                data = self._get_json(next_url, params)
            except NotFoundError as exc:
                raise FetchError(exc.format_message()) from exc
            pages += 1
            params = None

            if isinstance(data, list):
                page_items, next_url = data, None
            elif isinstance(data, dict):
                page_items = data.get("items", [])
                next_link = (data.get("_links") or {}).get("next") or {}
                next_url = next_link.get("href") if isinstance(next_link, dict) else None
            else:
                raise FetchError(f"Unexpected response from {self.client.url_for(url)}")
            if not isinstance(page_items, list):
                raise FetchError(f"Unexpected response from {self.client.url_for(url)}")

            for item in page_items:
                if not isinstance(item, dict):
                    raise FetchError(f"Unexpected item in response from {self.client.url_for(url)}")
                items.append(Record(item))
            logger.debug("Fetched page %d of %s (%d items so far)", pages, url, len(items))

        with self._lock:
            self._cache[key] = tuple(items)
        return items

    def fetch_one(self, url: str, refresh: bool = False) -> Record:
        """Fetch a single resource.

        Raises:
            NotFoundError: If the server returns 404
            FetchError: On network, status or decode failure
        """
        key = self._cache_key("one", url, None)
        if not refresh:
            with self._lock:
                cached = self._cache.get(key)
            if cached is not None:
                logger.debug("Cache hit for %s", key[0])
                return cached

        data = self._get_json(url)
        if not isinstance(data, dict):
            raise FetchError(f"Unexpected response from {self.client.url_for(url)}")
        record = Record(data)
        with self._lock:
            self._cache[key] = record
        return record

    def invalidate(self) -> None:
        """Drop every cached response."""
        with self._lock:
            self._cache.clear()
