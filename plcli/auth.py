"""Bearer token acquisition and caching.

The :class:`TokenStore` owns the current access token for one CLI invocation.
Tokens are kept in memory only. Concurrent callers that find the token missing
or expired share a single outbound fetch: the first caller performs it and the
others wait on the same future.
"""

import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable, Optional

import requests

from .exceptions import AuthenticationError

logger = logging.getLogger(__name__)

# Tokens are treated as expired slightly early so that a request never
# leaves with a token that lapses in flight.
EXPIRY_LEEWAY_SECONDS = 30

TOKEN_REQUEST_TIMEOUT = 30


@dataclass(frozen=True)
class Token:
    """An access token and its absolute expiry (epoch seconds, None = never)."""

    value: str
    expires_at: Optional[float] = None

    def is_expired(self, now: Optional[float] = None) -> bool:
        """Return True if the token should no longer be used."""
        if self.expires_at is None:
            return False
        current = time.time() if now is None else now
        return current >= self.expires_at - EXPIRY_LEEWAY_SECONDS


class OAuth2TokenFetcher:
    """Exchange an API token for an access token at the OAuth2 token endpoint."""

    def __init__(
        self,
        token_url: str,
        api_token: str,
        client_id: str = "platform-cli",
        verify: bool = True,
    ) -> None:
        self.token_url = token_url
        self.api_token = api_token
        self.client_id = client_id
        self.verify = verify
        self._session = requests.Session()

    def __call__(self) -> Token:
        """Fetch a new token.

        Raises:
            AuthenticationError: If the endpoint is unreachable or refuses the grant
        """
        logger.debug("Fetching access token from %s", self.token_url)
        try:
            resp = self._session.request(
                "POST",
                self.token_url,
                data={
                    "grant_type": "api_token",
                    "api_token": self.api_token,
                    "client_id": self.client_id,
                },
                headers={"Accept": "application/json"},
                verify=self.verify,
                timeout=TOKEN_REQUEST_TIMEOUT,
            )
        except requests.RequestException as exc:
            raise AuthenticationError(f"Token endpoint unreachable: {exc}") from exc

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if resp.status_code != 200:
            detail = data.get("error_description") or data.get("error") or f"HTTP {resp.status_code}"
            raise AuthenticationError(f"Failed to obtain an access token: {detail}")

        access_token = data.get("access_token")
        if not access_token:
            raise AuthenticationError("Failed to obtain an access token: no access_token in response")

        expires_in = data.get("expires_in")
        expires_at = None
        if expires_in is not None:
            try:
                expires_at = time.time() + float(expires_in)
            except (TypeError, ValueError) as exc:
                raise AuthenticationError(
                    "Failed to obtain an access token: invalid expires_in"
                ) from exc
        logger.debug("Access token obtained (expires in %s s)", expires_in)
        return Token(value=str(access_token), expires_at=expires_at)


class TokenStore:
    """Supply non-expired access tokens, fetching at most once per refresh.

    Args:
        fetch_token: Callable performing one outbound token request
        static_token: An externally supplied access token; if set it is always
            returned and never refreshed
    """

    def __init__(
        self,
        fetch_token: Optional[Callable[[], Token]] = None,
        static_token: Optional[str] = None,
    ) -> None:
        if fetch_token is None and static_token is None:
            raise ValueError("TokenStore needs a token fetcher or a static token")
        self._fetch_token = fetch_token
        self._static = Token(static_token) if static_token else None
        self._token: Optional[Token] = None
        self._pending: Optional["Future[Token]"] = None
        self._lock = threading.Lock()
        self.fetch_count = 0

    @property
    def is_static(self) -> bool:
        """Whether the store serves a fixed token that cannot be refreshed."""
        return self._static is not None

    def get_token(self) -> Token:
        """Return a valid token, fetching a new one if absent or expired.

        Raises:
            AuthenticationError: If fetching fails; concurrent waiters receive
                the same error
        """
        if self._static is not None:
            return self._static

        with self._lock:
            if self._token is not None and not self._token.is_expired():
                return self._token
            owner = self._pending is None
            if owner:
                self._pending = Future()
            pending = self._pending

        if not owner:
            return pending.result()

        try:
            self.fetch_count += 1
            token = self._fetch_token()  # type: ignore[misc]
        except BaseException as exc:
            with self._lock:
                self._pending = None
            pending.set_exception(exc)
            raise

        with self._lock:
            self._token = token
            self._pending = None
        pending.set_result(token)
        return token

    def invalidate(self, rejected: Optional[Token] = None) -> None:
        """Mark the current token unusable.

        Args:
            rejected: The token the server refused. If another caller already
                replaced it with a fresh token, that fresh token is kept.
        """
        if self._static is not None:
            return
        with self._lock:
            if rejected is None or self._token == rejected:
                logger.debug("Access token invalidated")
                self._token = None
