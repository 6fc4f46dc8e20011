"""Orchestrates authorization, credential storage and the picker."""

import logging
from typing import Optional

from ..auth.api import AuthorizationApi
from ..auth.browser import BrowserWindowDriver
from ..auth.flow import AuthConfig, Authenticator
from ..auth.window import PopupOptions, PopupWindow
from ..config import Config, get_config
from ..exceptions import FinderError
from ..picker.channel import MessageChannel
from ..picker.finder import AssetPicker, Hook, PickerOptions
from ..picker.frame import FrameContainer, Transport
from ..picker.resolver import AssetResolver
from ..storage.base import KeyValueStorage, Token
from ..storage.credentials import CredentialStore, get_storage, token_key

logger = logging.getLogger(__name__)

# Tokens are stored as expired this many seconds before the domain expires them
TOKEN_EXPIRY_MARGIN = 300


class FinderService:
    """Caller-facing entry point.

    Holds one token slot per client id in the credential store and at most one
    mounted picker at a time.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        api: Optional[AuthorizationApi] = None,
        window: Optional[PopupWindow] = None,
        resolver: Optional[AssetResolver] = None,
        storage: Optional[KeyValueStorage] = None,
        channel: Optional[MessageChannel] = None,
    ):
        """Initialize the finder service.

        Args:
            config: Configuration (defaults to environment configuration)
            api: Authorization endpoint client
            window: Secondary-window controller (defaults to the system browser)
            resolver: Asset resolver for picker selections
            storage: Credential backend (defaults to the checked global backend)
            channel: Host message channel for the picker
        """
        self.config = config or get_config()
        self.api = api or AuthorizationApi(timeout=self.config.http_timeout)
        self.window = window or PopupWindow(BrowserWindowDriver(port=self.config.relay_port))
        self.resolver = resolver or AssetResolver(timeout=self.config.http_timeout)
        self.channel = channel
        self.authenticator = Authenticator(
            api=self.api,
            window=self.window,
            domain_entry_url=self.config.domain_entry_url,
            timeout=self.config.auth_timeout,
            poll_interval=self.config.poll_interval,
        )
        self._storage = storage
        self._credentials: Optional[CredentialStore] = None
        self._picker: Optional[AssetPicker] = None

    async def _get_credentials(self) -> CredentialStore:
        if self._credentials is None:
            storage = self._storage or await get_storage(self.config)
            self._credentials = CredentialStore(storage)
        return self._credentials

    async def _store(self, token: Token) -> None:
        ttl_seconds = token.expires_in - TOKEN_EXPIRY_MARGIN
        if ttl_seconds <= 0:
            logger.warning(
                "Token for client %s expires in %ss, within the %ss margin; "
                "it will not be reused from storage",
                token.client_id,
                token.expires_in,
                TOKEN_EXPIRY_MARGIN,
            )
        credentials = await self._get_credentials()
        await credentials.set(token_key(token.client_id), token, ttl_seconds=ttl_seconds)

    async def authorize(
        self, auth_config: AuthConfig, popup_options: Optional[PopupOptions] = None
    ) -> Token:
        """Authorize through the secondary window and store the token.

        Raises:
            FinderError: If the attempt failed (already logged)
        """
        token = await self.authenticator.authorize(auth_config, popup_options)
        await self._store(token)
        return token

    async def get_token(self, client_id: str) -> Optional[Token]:
        """Return the stored, unexpired token for a client."""
        credentials = await self._get_credentials()
        return await credentials.get(token_key(client_id))

    async def refresh(self, token: Token) -> Token:
        """Refresh a token and replace the stored one."""
        new_token = await self.authenticator.refresh(token)
        await self._store(new_token)
        return new_token

    async def revoke(self, token: Token) -> None:
        """Revoke a token remotely. The stored copy is left alone."""
        await self.authenticator.revoke(token)

    async def evict(self, client_id: str) -> Optional[Token]:
        """Remove a client's stored token."""
        credentials = await self._get_credentials()
        return await credentials.pop(token_key(client_id))

    async def logout(self, token: Token) -> None:
        """Revoke a token and evict it from storage.

        Eviction happens even when the domain refuses the revocation; the
        failure is logged, not raised.
        """
        try:
            await self.revoke(token)
        except FinderError:
            # Logged by the authenticator; local logout still proceeds
            pass
        finally:
            await self.evict(token.client_id)
        logger.info("Logged out client %s", token.client_id)

    async def open_picker(
        self,
        auth_config: AuthConfig,
        parent: FrameContainer,
        options: Optional[PickerOptions] = None,
        popup_options: Optional[PopupOptions] = None,
        transport: Optional[Transport] = None,
    ) -> AssetPicker:
        """Mount the picker, authorizing first when no token is stored.

        Args:
            auth_config: Client to open the picker for
            parent: Container the frame is mounted into
            options: Selection settings
            popup_options: Placement hints used if authorization is needed
            transport: Carries posted payloads into the frame

        Returns:
            The mounted picker; subscribe with ``on_assets_chosen``/``on_cancel``
        """
        token = await self.get_token(auth_config.client_id)
        if token is None:
            token = await self.authorize(auth_config, popup_options)

        async def token_rejected() -> None:
            logger.warning("Token for client %s was rejected, evicting", token.client_id)
            await self.evict(token.client_id)

        return self.mount_picker(
            token,
            parent,
            options,
            on_token_rejected=token_rejected,
            transport=transport,
        )

    def mount_picker(
        self,
        token: Token,
        parent: FrameContainer,
        options: Optional[PickerOptions] = None,
        on_logout_requested: Optional[Hook] = None,
        on_token_rejected: Optional[Hook] = None,
        transport: Optional[Transport] = None,
    ) -> AssetPicker:
        """Mount a picker for an existing token, replacing any open one."""
        self.close_picker()

        async def default_logout() -> None:
            await self.logout(token)

        picker = AssetPicker(
            token,
            options or PickerOptions(),
            on_logout_requested=on_logout_requested or default_logout,
            resolver=self.resolver,
            channel=self.channel,
            transport=transport,
            on_token_rejected=on_token_rejected,
        )
        picker.mount(parent)
        self._picker = picker
        return picker

    def close_picker(self) -> None:
        """Close the current picker, if any."""
        picker, self._picker = self._picker, None
        if picker is not None:
            picker.close()

    async def close(self) -> None:
        """Close pickers, windows and connections."""
        self.close_picker()
        await self.window.close()
        await self.api.close()
        await self.resolver.close()
        if self._storage is not None:
            await self._storage.close()
