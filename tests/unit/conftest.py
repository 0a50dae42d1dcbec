"""Unit test configuration - runs before any test collection or imports.

Forces the keyring null backend to prevent macOS Keychain access on CI runners.
Without this, macOS GitHub Actions runners hang for minutes per keyring call
because the Keychain is locked and no user session exists.

Also replaces ``requests.Session`` with an in-memory fake API so no test can
make a real HTTP call.
"""

import json
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from urllib.parse import urlparse

import keyring
import pytest
from keyring.backends.null import Keyring as NullKeyring

# Force the null backend BEFORE any test or doctest-module collection
# triggers a real keyring call. This is critical for macOS CI where
# the default macOS Keychain backend blocks on a locked keychain.
keyring.set_keyring(NullKeyring())

API_URL = "https://api.example.com"
AUTH_URL = "https://auth.example.com"


class FakeResponse:
    """Minimal stand-in for :class:`requests.Response`."""

    def __init__(
        self,
        status_code: int = 200,
        body: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.status_code = status_code
        if isinstance(body, (bytes, str)):
            self.text = body.decode("utf-8") if isinstance(body, bytes) else body
        else:
            self.text = json.dumps(body) if body is not None else ""
        self.headers = headers or {"Content-Type": "application/json"}
        self.reason = "OK" if status_code < 400 else "Error"

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        """Decode the body, raising ValueError if it is not JSON."""
        return json.loads(self.text)


Handler = Union[Any, Callable[..., FakeResponse]]


class FakeApi:
    """In-memory API and OAuth2 server.

    Routes map ``(METHOD, path)`` to either a JSON body or a callable returning
    a :class:`FakeResponse`. Every non-token request must carry the current
    ``valid_token`` or it is answered with 401.
    """

    def __init__(self) -> None:
        self.valid_token = "valid-token"
        self.token_fetches = 0
        self.routes: Dict[Tuple[str, str], Handler] = {}
        self.requests: List[Dict[str, Any]] = []

    def add(self, path: str, body: Any = None, method: str = "GET", status: int = 200) -> None:
        """Serve ``body`` (JSON) for ``method path``."""
        if callable(body):
            self.routes[(method, path)] = body
        else:
            self.routes[(method, path)] = lambda **_: FakeResponse(status, body)

    def handle(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        parsed = urlparse(url)
        path = parsed.path + (f"?{parsed.query}" if parsed.query else "")
        headers = kwargs.get("headers") or {}
        self.requests.append({"method": method, "url": url, "path": path, **kwargs})

        if parsed.path == "/oauth2/token":
            self.token_fetches += 1
            return FakeResponse(
                200, {"access_token": self.valid_token, "expires_in": 900, "token_type": "bearer"}
            )
        if headers.get("Authorization") != f"Bearer {self.valid_token}":
            return FakeResponse(
                401, {"error": "invalid_token", "error_description": "Invalid access token."}
            )
        handler = self.routes.get((method, path)) or self.routes.get((method, parsed.path))
        if handler is None:
            return FakeResponse(404, {"message": f"Not found: {path}"})
        return handler(**kwargs)

    def requests_to(self, path: str, method: str = "GET") -> List[Dict[str, Any]]:
        return [r for r in self.requests if r["path"] == path and r["method"] == method]


class FakeSession:
    """Replacement for :class:`requests.Session` that routes to a FakeApi."""

    def __init__(self, api: FakeApi) -> None:
        self.api = api
        self.headers: Dict[str, str] = {}
        self.verify = True

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        headers = dict(self.headers)
        headers.update(kwargs.pop("headers", None) or {})
        return self.api.handle(method, url, headers=headers, **kwargs)

    def close(self) -> None:
        pass


@pytest.fixture(autouse=True)
def plcli_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Any) -> None:
    """Isolate every test from the user's configuration and environment."""
    for name in ("PLCLI_ACCESS_TOKEN", "PLCLI_PROJECT", "PLCLI_DATE_FORMAT", "PLCLI_SSH_OPTIONS"):
        monkeypatch.delenv(name, raising=False)
    for name in ("PLATFORM_ROUTES", "PLATFORM_APPLICATION", "PLATFORM_PROJECT", "PLATFORM_BRANCH"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("PLCLI_API_URL", API_URL)
    monkeypatch.setenv("PLCLI_AUTH_URL", AUTH_URL)
    monkeypatch.setenv("PLCLI_TOKEN", "test-api-token")
    monkeypatch.setenv("PLCLI_TIMEZONE", "UTC")
    monkeypatch.setenv("PLCLI_TABLE_WIDTH", "200")
    monkeypatch.setenv("PLCLI_SSH_AUTO_LOAD_CERT", "0")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))


@pytest.fixture(autouse=True)
def fake_api(monkeypatch: pytest.MonkeyPatch) -> FakeApi:
    """Route all HTTP sessions to an in-memory fake API."""
    api = FakeApi()
    monkeypatch.setattr("requests.Session", lambda: FakeSession(api))
    return api


def table_rows(output: str) -> List[List[str]]:
    """Parse a bordered table into rows of stripped cells, header first."""
    rows = []
    for line in output.splitlines():
        if line.startswith("|"):
            rows.append([cell.strip() for cell in line.strip().strip("|").split("|")])
    return rows


def hal(**links: str) -> Dict[str, Dict[str, str]]:
    """Build a HAL ``_links`` object; ``hash_`` prefixes become ``#``."""
    result = {}
    for rel, href in links.items():
        name = "#" + rel[len("hash_"):] if rel.startswith("hash_") else rel.replace("__", "-")
        result[name] = {"href": href}
    return result


PROJECT_ID = "aiyaikii1uere"


def add_project(api: FakeApi, project_id: str = PROJECT_ID, **extra: Any) -> Dict[str, Any]:
    project = {
        "id": project_id,
        "title": "Project 1",
        "region": "region-1",
        "organization": "org-id-1",
        "default_branch": "main",
        "_links": hal(
            self=f"/projects/{project_id}",
            environments=f"/projects/{project_id}/environments",
        ),
    }
    project.update(extra)
    api.add(f"/projects/{project_id}", project)
    return project


def make_env(
    project_id: str,
    env_id: str,
    env_type: str = "production",
    status: str = "active",
    **extra: Any,
) -> Dict[str, Any]:
    base = f"/projects/{project_id}/environments/{env_id}"
    env = {
        "id": env_id,
        "machine_name": f"{env_id}-xyz",
        "title": env_id.title(),
        "type": env_type,
        "status": status,
        "project": project_id,
        "_links": hal(self=base),
    }
    env.update(extra)
    return env


def set_environments(api: FakeApi, envs: List[Dict[str, Any]], project_id: str = PROJECT_ID) -> None:
    api.add(f"/projects/{project_id}/environments", envs)
