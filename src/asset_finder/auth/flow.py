"""PKCE authorization flow driven through the secondary window."""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..config import DEFAULT_SCOPES
from ..exceptions import (
    AuthAborted,
    AuthDomainTimeout,
    AuthPopupAlreadyOpen,
    AuthRequestFailed,
    AuthTimeout,
    FinderError,
)
from ..storage.base import Token
from .api import AuthorizationApi, normalize_domain
from .pkce import generate_pkce
from .race import first_completed
from .window import PopupOptions, PopupWindow

logger = logging.getLogger(__name__)


class AuthState(str, Enum):
    IDLE = "idle"
    DOMAIN_DISCOVERY = "domain_discovery"
    PKCE_CHALLENGE_COMPUTED = "pkce_challenge_computed"
    POPUP_NAVIGATED = "popup_navigated"
    SESSION_POLLING = "session_polling"
    CODE_EXCHANGE = "code_exchange"
    AUTHORIZED = "authorized"
    FAILED = "failed"


@dataclass
class AuthConfig:
    """What the caller wants to authorize."""

    client_id: str
    domain: Optional[str] = None
    scopes: List[str] = field(default_factory=lambda: list(DEFAULT_SCOPES))


@dataclass
class AuthorizationSession:
    """State of one authorization attempt. Never persisted."""

    session_id: str
    code_verifier: str = field(repr=False)
    authorization_url: str


class Authenticator:
    """Runs the authorization state machine.

    Every attempt ends in exactly one of ``AUTHORIZED`` or ``FAILED``. The
    window is closed in a single exit point for all outcomes, which also frees
    it for the next attempt.
    """

    def __init__(
        self,
        api: AuthorizationApi,
        window: PopupWindow,
        domain_entry_url: str,
        timeout: float = 300.0,
        poll_interval: float = 1.0,
    ):
        """Initialize the authenticator.

        Args:
            api: Client for the remote authorization endpoints
            window: Secondary-window controller
            domain_entry_url: Surface that asks the user for their domain
            timeout: Seconds each user-facing phase may take
            poll_interval: Seconds between session polls
        """
        self.api = api
        self.window = window
        self.domain_entry_url = domain_entry_url
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.state = AuthState.IDLE

    def _transition(self, state: AuthState) -> None:
        logger.debug("Authorization state %s -> %s", self.state.value, state.value)
        self.state = state

    async def authorize(
        self, auth_config: AuthConfig, popup_options: Optional[PopupOptions] = None
    ) -> Token:
        """Run one authorization attempt.

        Args:
            auth_config: Client id, optional domain and scopes
            popup_options: Placement hints for the secondary window

        Returns:
            Token issued by the remote domain

        Raises:
            FinderError: With a stable code describing why the attempt failed
        """
        if self.window.is_open:
            # Another attempt owns the window; leave its state alone
            error = AuthPopupAlreadyOpen("An authorization window is already open.")
            logger.error("%s: %s", error.code, error.message)
            raise error

        self.state = AuthState.IDLE
        opened = False
        try:
            domain = auth_config.domain
            if not domain:
                self._transition(AuthState.DOMAIN_DISCOVERY)
                await self.window.open(self.domain_entry_url, popup_options)
                opened = True
                domain = await self._await_domain()

            try:
                domain = normalize_domain(domain)
            except ValueError as e:
                raise AuthRequestFailed(str(e)) from e

            session = await self._start_session(domain, auth_config)

            if opened:
                await self.window.navigate_to(session.authorization_url)
            else:
                await self.window.open(session.authorization_url, popup_options)
                opened = True
            self._transition(AuthState.POPUP_NAVIGATED)

            code = await self._await_code(domain, session)

            self._transition(AuthState.CODE_EXCHANGE)
            token = await self.api.exchange_code(
                domain,
                auth_config.client_id,
                auth_config.scopes,
                code,
                session.code_verifier,
            )

            self._transition(AuthState.AUTHORIZED)
            logger.info("Authorized client %s against %s", auth_config.client_id, domain)
            return token
        except FinderError as error:
            self._transition(AuthState.FAILED)
            logger.error("%s: %s", error.code, error.message)
            if opened:
                await self.window.post_message({"domainError": error.message})
            raise
        except BaseException:
            self._transition(AuthState.FAILED)
            raise
        finally:
            if opened:
                await self.window.close()

    async def _await_domain(self) -> str:
        try:
            winner, value = await first_completed(
                {
                    "domain": self.window.domain_submitted.wait(),
                    "cancelled": self.window.auth_cancelled.wait(),
                    "aborted": self.window.auth_aborted.wait(),
                },
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise AuthDomainTimeout("No domain was entered in time.") from None

        if winner != "domain":
            raise AuthAborted("Domain selection was aborted by the user.")
        return value

    async def _start_session(self, domain: str, auth_config: AuthConfig) -> AuthorizationSession:
        code_verifier, code_challenge = generate_pkce()
        self._transition(AuthState.PKCE_CHALLENGE_COMPUTED)

        session_id = await self.api.create_session(domain)
        return AuthorizationSession(
            session_id=session_id,
            code_verifier=code_verifier,
            authorization_url=self.api.authorization_url(
                domain,
                auth_config.client_id,
                auth_config.scopes,
                code_challenge,
                session_id,
            ),
        )

    async def _poll(self, domain: str, session: AuthorizationSession) -> str:
        while True:
            code = await self.api.poll_session(domain, session.session_id)
            if code:
                return code
            await asyncio.sleep(self.poll_interval)

    async def _await_code(self, domain: str, session: AuthorizationSession) -> str:
        self._transition(AuthState.SESSION_POLLING)
        try:
            winner, value = await first_completed(
                {
                    "code": self._poll(domain, session),
                    "cancelled": self.window.auth_cancelled.wait(),
                    "aborted": self.window.auth_aborted.wait(),
                },
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise AuthTimeout("Authorization was not completed in time.") from None

        if winner != "code":
            raise AuthAborted("Authorization was aborted by the user.")
        return value

    async def refresh(self, token: Token) -> Token:
        """Exchange the refresh token for a new token, without any window."""
        try:
            return await self.api.refresh_token(token)
        except FinderError as error:
            logger.error("%s: %s", error.code, error.message)
            raise

    async def revoke(self, token: Token) -> None:
        """Tell the remote domain the token is dead. Does not touch storage."""
        try:
            await self.api.revoke_token(token)
        except FinderError as error:
            logger.error("%s: %s", error.code, error.message)
            raise
