"""Authenticated HTTP client for the platform API.

Every outbound API request goes through :class:`ApiClient`, which attaches the
bearer token supplied by a :class:`~plcli.auth.TokenStore` and re-authenticates
at most once when the server answers 401.
"""

import enum
import logging
from typing import Any, Dict, Optional
from urllib.parse import urljoin

import requests

from .auth import OAuth2TokenFetcher, TokenStore
from .config import Config
from .exceptions import AuthenticationError, FetchError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60


class RetryState(enum.Enum):
    """Progress of the re-authentication retry for a single request."""

    NOT_ATTEMPTED = "not-attempted"
    RETRIED = "retried"
    EXHAUSTED = "exhausted"

    def on_unauthorized(self) -> "RetryState":
        """Return the state that follows a 401 response."""
        if self is RetryState.NOT_ATTEMPTED:
            return RetryState.RETRIED
        return RetryState.EXHAUSTED


def build_token_store(config: Config) -> TokenStore:
    """Create the token store for the configured credentials.

    Raises:
        AuthenticationError: If neither an API token nor an access token is configured
    """
    if config.access_token:
        return TokenStore(static_token=config.access_token)
    if not config.api_token:
        raise AuthenticationError(
            "No API token found. Set PLCLI_TOKEN or run 'plcli login'."
        )
    return TokenStore(
        fetch_token=OAuth2TokenFetcher(
            config.token_url,
            config.api_token,
            client_id=config.client_id,
            verify=config.ssl_verify,
        )
    )


class ApiClient:
    """Send requests to the API with bearer authentication.

    Args:
        config: Resolved CLI configuration
        token_store: Source of access tokens; built from ``config`` when omitted
    """

    def __init__(self, config: Config, token_store: Optional[TokenStore] = None) -> None:
        self.config = config
        self._token_store = token_store
        self.session = requests.Session()
        self.session.verify = config.ssl_verify
        self.session.headers.update({"Accept": "application/json"})

    @property
    def token_store(self) -> TokenStore:
        """The token store, created on first use so unauthenticated commands never need one."""
        if self._token_store is None:
            self._token_store = build_token_store(self.config)
        return self._token_store

    def url_for(self, path: str) -> str:
        """Resolve a path or link href against the API base URL."""
        return urljoin(self.config.api_url.rstrip("/") + "/", path)

    def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        data: Any = None,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        retry_401: bool = True,
    ) -> requests.Response:
        """Send an authenticated request.

        Non-401 error statuses are returned unchanged for the caller to interpret.

        Args:
            method: HTTP method
            path: API path or absolute link href
            json: JSON body
            data: Raw body
            headers: Extra request headers
            params: Query string parameters
            retry_401: Re-authenticate and retry once when the server returns 401

        Returns:
            The final response

        Raises:
            AuthenticationError: If a token cannot be obtained, or the retried
                request is rejected again
            FetchError: On network failure
        """
        url = self.url_for(path)
        state = RetryState.NOT_ATTEMPTED if retry_401 else RetryState.EXHAUSTED
        store = self.token_store

        while True:
            token = store.get_token()
            request_headers = dict(headers or {})
            request_headers["Authorization"] = f"Bearer {token.value}"
            logger.debug("%s %s", method.upper(), url)
            try:
                resp = self.session.request(
                    method.upper(),
                    url,
                    json=json,
                    data=data,
                    headers=request_headers,
                    params=params,
                    timeout=DEFAULT_TIMEOUT,
                )
            except requests.RequestException as exc:
                raise FetchError(f"Request to {url} failed: {exc}") from exc
            logger.debug("%s %s -> %s", method.upper(), url, resp.status_code)

            if resp.status_code != 401:
                return resp
            # Retry disabled by the caller: the 401 is the caller's to interpret.
            if state is RetryState.EXHAUSTED:
                return resp
            if store.is_static:
                raise AuthenticationError("The access token was rejected (HTTP 401)")

            state = state.on_unauthorized()
            if state is RetryState.EXHAUSTED:
                raise AuthenticationError(
                    f"Authentication failed after re-authenticating: {method.upper()} {url} returned 401"
                )
            logger.debug("Received 401, refreshing access token and retrying once")
            store.invalidate(token)

    def get(self, path: str, **kwargs: Any) -> requests.Response:
        """Send a GET request."""
        return self.request("GET", path, **kwargs)

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()
