"""Test doubles for the remote domain, the secondary window and the resolver."""

import json
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import parse_qs

import httpx

from asset_finder.auth.api import AuthorizationApi
from asset_finder.auth.window import PopupOptions, WindowDriver
from asset_finder.storage.base import Token


def make_token(**overrides: Any) -> Token:
    values = {
        "token_type": "Bearer",
        "access_token": "access-123",
        "refresh_token": "refresh-456",
        "expires_in": 3600,
        "domain": "x.example",
        "client_id": "c1",
        "scopes": ["basic:read"],
    }
    values.update(overrides)
    return Token(**values)


class RemoteDomain:
    """Simulated remote domain served through httpx.MockTransport."""

    def __init__(
        self,
        polls_until_code: Optional[int] = 2,
        token_status: int = 200,
        revoke_status: int = 200,
        expires_in: int = 3600,
    ):
        """Configure the simulated domain.

        Args:
            polls_until_code: Poll number that returns the code, None to never issue one
            token_status: HTTP status of the token endpoint
            revoke_status: HTTP status of the revoke endpoint
            expires_in: Lifetime reported for issued tokens
        """
        self.polls_until_code = polls_until_code
        self.token_status = token_status
        self.revoke_status = revoke_status
        self.expires_in = expires_in
        self.poll_calls = 0
        self.token_requests: List[Dict[str, List[str]]] = []
        self.revoked: List[str] = []
        self.hosts: List[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.hosts.append(request.url.host)
        path = request.url.path

        if path == "/api/oauth/create/session/":
            return httpx.Response(200, json={"data": {"key": "session-1"}})

        if path == "/api/oauth/poll":
            self.poll_calls += 1
            body = json.loads(request.content)
            assert body == {"session_id": "session-1"}
            if self.polls_until_code is not None and self.poll_calls >= self.polls_until_code:
                return httpx.Response(200, json={"payload": {"code": "code-1"}})
            return httpx.Response(200, json={"payload": None})

        if path == "/api/oauth/accesstoken":
            self.token_requests.append(parse_qs(request.content.decode()))
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_grant"})
            return httpx.Response(
                200,
                json={
                    "token_type": "Bearer",
                    "access_token": f"access-{len(self.token_requests)}",
                    "refresh_token": "refresh-1",
                    "expires_in": self.expires_in,
                },
            )

        if path == "/api/oauth/revoke":
            self.revoked.append(json.loads(request.content)["token"])
            return httpx.Response(self.revoke_status, json={})

        return httpx.Response(404)

    def api(self) -> AuthorizationApi:
        return AuthorizationApi(
            client=httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        )


class FakeWindowDriver(WindowDriver):
    """Window driver that records calls and lets tests play the user."""

    def __init__(self) -> None:
        self.opened: List[str] = []
        self.navigated: List[str] = []
        self.posted: List[Dict[str, Any]] = []
        self.close_calls = 0
        self.on_message: Optional[Callable[[Any], None]] = None
        self._closed = True

    async def open(self, url: str, options: PopupOptions, on_message) -> None:
        self.opened.append(url)
        self.on_message = on_message
        self._closed = False

    async def navigate(self, url: str) -> None:
        self.navigated.append(url)

    async def post_message(self, payload: Dict[str, Any]) -> None:
        self.posted.append(payload)

    async def close(self) -> None:
        self.close_calls += 1
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, data: Any) -> None:
        """Deliver a message from the window to the host."""
        if self.on_message is not None:
            self.on_message(data)

    def user_closes(self) -> None:
        self._closed = True


class FakeResolver:
    """Selection resolver returning canned records or raising."""

    def __init__(self, records: Optional[List[Dict[str, Any]]] = None, error: Optional[Exception] = None):
        self.records = records if records is not None else []
        self.error = error
        self.calls: List[tuple] = []

    async def resolve(self, domain: str, access_token: str, ids: List[Any]) -> List[Dict[str, Any]]:
        self.calls.append((domain, access_token, ids))
        if self.error is not None:
            raise self.error
        return self.records

    async def close(self) -> None:
        pass
