"""Synchronous wrapper for FinderService for sync environments."""

import asyncio
from typing import Optional

from ..auth.flow import AuthConfig
from ..auth.window import PopupOptions
from ..config import Config
from ..storage.base import Token
from .service import FinderService


class SyncFinderService:
    """Synchronous wrapper around FinderService for scripts and sync frameworks.

    This class provides blocking methods that internally manage the asyncio event loop.
    The picker itself is event driven and stays on the async API.

    Example:
        ```python
        from asset_finder import AuthConfig, SyncFinderService

        service = SyncFinderService()
        token = service.authorize(AuthConfig(client_id="my-client"))
        print(f"Authorized against {token.domain}")

        service.logout(token)
        service.close()
        ```
    """

    def __init__(self, config: Optional[Config] = None):
        """Initialize synchronous finder service.

        Args:
            config: Configuration (defaults to environment configuration)
        """
        self._config = config
        self._loop = None
        self._service = None
        self._initialized = False

    def _ensure_initialized(self):
        """Ensure async components are initialized."""
        if not self._initialized:
            self._loop = asyncio.new_event_loop()
            self._service = FinderService(config=self._config)
            self._initialized = True

    def _run(self, coro):
        self._ensure_initialized()
        return self._loop.run_until_complete(coro)

    def authorize(self, auth_config: AuthConfig, popup_options: Optional[PopupOptions] = None) -> Token:
        """Authorize and store the token (blocks until the user finishes)."""
        return self._run(self._service.authorize(auth_config, popup_options))

    def get_token(self, client_id: str) -> Optional[Token]:
        return self._run(self._service.get_token(client_id))

    def refresh(self, token: Token) -> Token:
        return self._run(self._service.refresh(token))

    def revoke(self, token: Token) -> None:
        self._run(self._service.revoke(token))

    def logout(self, token: Token) -> None:
        self._run(self._service.logout(token))

    def close(self):
        """Close all async connections and clean up resources."""
        if self._service:
            self._loop.run_until_complete(self._service.close())
            self._loop.close()
            self._service = None
            self._initialized = False
