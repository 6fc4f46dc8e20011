"""HTTP client for the remote domain's authorization endpoints."""

from typing import Any, Dict, List, Optional
from urllib.parse import urlencode, urlsplit

import httpx

from ..exceptions import (
    AuthExchangeFailed,
    AuthRefreshFailed,
    AuthRequestFailed,
    AuthRevokeFailed,
)
from ..storage.base import Token
from .pkce import CODE_CHALLENGE_METHOD
from .retry import async_retry_with_backoff

SESSION_PATH = "/api/oauth/create/session/"
AUTHORIZE_PATH = "/api/oauth/authorize"
POLL_PATH = "/api/oauth/poll"
TOKEN_PATH = "/api/oauth/accesstoken"
REVOKE_PATH = "/api/oauth/revoke"
REDIRECT_PATH = "/connection/authenticator"


def normalize_domain(domain: str) -> str:
    """Strip scheme, path and trailing slashes from a user-supplied domain.

    Args:
        domain: Value such as ``x.example``, ``https://x.example/`` or ``x.example/path``

    Returns:
        Bare host name, e.g. ``x.example``
    """
    value = domain.strip()
    if "://" not in value:
        value = f"https://{value}"
    host = urlsplit(value).netloc
    if not host:
        raise ValueError(f"Invalid domain: {domain!r}")
    return host.lower()


def base_url(domain: str) -> str:
    return f"https://{domain}"


class AuthorizationApi:
    """Thin async wrapper around the session, poll, token and revoke endpoints."""

    def __init__(self, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None):
        """Initialize the authorization API client.

        Args:
            timeout: Request timeout in seconds
            client: Pre-configured HTTP client (tests inject a mock transport)
        """
        self.client = client or httpx.AsyncClient(timeout=timeout)

    @async_retry_with_backoff(
        max_retries=2,
        retryable_exceptions=(httpx.TransportError,),
    )
    async def _post_json(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = await self.client.post(url, json=payload)
        response.raise_for_status()
        return response.json()

    async def _post_form(self, url: str, data: Dict[str, str]) -> Dict[str, Any]:
        response = await self.client.post(
            url,
            data=data,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        response.raise_for_status()
        return response.json()

    def authorization_url(
        self,
        domain: str,
        client_id: str,
        scopes: List[str],
        code_challenge: str,
        session_id: str,
    ) -> str:
        """Build the URL the secondary window is navigated to."""
        params = {
            "response_type": "code",
            "client_id": client_id,
            "scope": " ".join(scopes),
            "code_challenge": code_challenge,
            "code_challenge_method": CODE_CHALLENGE_METHOD,
            "redirect_uri": REDIRECT_PATH,
            "state": session_id,
        }
        return f"{base_url(domain)}{AUTHORIZE_PATH}?{urlencode(params)}"

    async def create_session(self, domain: str) -> str:
        """Request a correlation session identifier.

        Raises:
            AuthRequestFailed: If the domain did not issue a session
        """
        try:
            data = await self._post_json(f"{base_url(domain)}{SESSION_PATH}", {})
            return str(data["data"]["key"])
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            raise AuthRequestFailed(
                f"Could not start an authorization session on {domain}: {type(e).__name__}"
            ) from e

    async def poll_session(self, domain: str, session_id: str) -> Optional[str]:
        """Query the session status once.

        Returns:
            The authorization code once issued, None while pending

        Raises:
            AuthRequestFailed: If the poll request fails
        """
        try:
            data = await self._post_json(
                f"{base_url(domain)}{POLL_PATH}", {"session_id": session_id}
            )
        except (httpx.HTTPError, ValueError) as e:
            raise AuthRequestFailed(
                f"Polling the authorization session failed: {type(e).__name__}"
            ) from e

        payload = data.get("payload") if isinstance(data, dict) else None
        if isinstance(payload, dict) and payload.get("code"):
            return str(payload["code"])
        return None

    async def exchange_code(
        self,
        domain: str,
        client_id: str,
        scopes: List[str],
        code: str,
        code_verifier: str,
    ) -> Token:
        """Exchange an authorization code for a token.

        Raises:
            AuthExchangeFailed: If the token endpoint rejects the code
        """
        try:
            data = await self._post_form(
                f"{base_url(domain)}{TOKEN_PATH}",
                {
                    "grant_type": "authorization_code",
                    "code": code,
                    "code_verifier": code_verifier,
                    "client_id": client_id,
                    "redirect_uri": REDIRECT_PATH,
                },
            )
            return self._token_from_response(data, domain, client_id, scopes)
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            raise AuthExchangeFailed(
                f"Exchanging the authorization code failed: {type(e).__name__}"
            ) from e

    async def refresh_token(self, token: Token) -> Token:
        """Exchange a refresh token for a new token.

        Raises:
            AuthRefreshFailed: If the token endpoint rejects the refresh token
        """
        try:
            data = await self._post_form(
                f"{base_url(token.domain)}{TOKEN_PATH}",
                {
                    "grant_type": "refresh_token",
                    "refresh_token": token.refresh_token,
                    "client_id": token.client_id,
                    "scope": " ".join(token.scopes),
                },
            )
            return self._token_from_response(
                data,
                token.domain,
                token.client_id,
                token.scopes,
                fallback_refresh_token=token.refresh_token,
            )
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            raise AuthRefreshFailed(
                f"Refreshing the token failed: {type(e).__name__}"
            ) from e

    async def revoke_token(self, token: Token) -> None:
        """Tell the remote domain the token is dead.

        Raises:
            AuthRevokeFailed: If the revoke request fails
        """
        try:
            response = await self.client.post(
                f"{base_url(token.domain)}{REVOKE_PATH}",
                json={"token": token.access_token},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise AuthRevokeFailed(f"Revoking the token failed: {type(e).__name__}") from e

    @staticmethod
    def _token_from_response(
        data: Dict[str, Any],
        domain: str,
        client_id: str,
        scopes: List[str],
        fallback_refresh_token: str = "",
    ) -> Token:
        return Token(
            token_type=data.get("token_type") or "Bearer",
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or fallback_refresh_token,
            expires_in=int(data["expires_in"]),
            domain=domain,
            client_id=client_id,
            scopes=list(scopes),
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
