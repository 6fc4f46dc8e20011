"""Secondary-window controller used by the authorization flow."""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..exceptions import AuthPopupAlreadyOpen

logger = logging.getLogger(__name__)

MessageHandler = Callable[[Any], None]

_UNSET = object()


@dataclass
class PopupOptions:
    """Placement hints for the secondary window."""

    title: str = "Authorize"
    width: int = 800
    height: int = 600
    top: Optional[int] = None
    left: Optional[int] = None


class Signal:
    """One-shot event: the first ``emit`` is delivered, later ones are ignored."""

    def __init__(self, name: str):
        self.name = name
        self._listeners: List[Callable[[Any], None]] = []
        self._value: Any = _UNSET

    @property
    def fired(self) -> bool:
        return self._value is not _UNSET

    def subscribe(self, listener: Callable[[Any], None]) -> Callable[[], None]:
        """Register a listener and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def emit(self, value: Any = None) -> bool:
        """Fire the signal.

        Returns:
            True if this call fired it, False if it had already fired
        """
        if self.fired:
            return False
        self._value = value
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            listener(value)
        return True

    async def wait(self) -> Any:
        """Wait until the signal fires and return its value.

        The listener is removed when the waiter is cancelled.
        """
        if self.fired:
            return self._value

        future = asyncio.get_running_loop().create_future()

        def on_fire(value: Any) -> None:
            if not future.done():
                future.set_result(value)

        unsubscribe = self.subscribe(on_fire)
        try:
            return await future
        finally:
            unsubscribe()


class WindowDriver(ABC):
    """Host integration that actually shows a detached window."""

    @abstractmethod
    async def open(self, url: str, options: PopupOptions, on_message: MessageHandler) -> None:
        """Show a new window at ``url``.

        Args:
            url: Initial location
            options: Placement hints
            on_message: Called with every payload the window sends to the host
        """
        pass

    @abstractmethod
    async def navigate(self, url: str) -> None:
        """Change the location of the open window."""
        pass

    @abstractmethod
    async def post_message(self, payload: Dict[str, Any]) -> None:
        """Deliver a payload to the window."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the window. Closing a closed window is a no-op."""
        pass

    @property
    @abstractmethod
    def closed(self) -> bool:
        """Whether the window is gone (closed by us or by the user)."""
        pass


class WindowState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"


class PopupWindow:
    """Owns at most one detached window and exposes its lifecycle as signals.

    Signals are recreated on every ``open`` so nothing from a previous window
    can reach a later attempt:

    - ``domain_submitted``: the domain-entry surface sent ``{"domain": ...}``
    - ``auth_succeeded``: the window sent ``{"success": true}``
    - ``auth_cancelled``: the user pressed cancel (``{"aborted": true}``)
    - ``auth_aborted``: the window was closed without completing
    """

    def __init__(self, driver: WindowDriver, watch_interval: float = 0.5):
        self.driver = driver
        self.watch_interval = watch_interval
        self.state = WindowState.CLOSED
        self._watcher: Optional[asyncio.Task] = None
        self._reset_signals()

    def _reset_signals(self) -> None:
        self.domain_submitted = Signal("domain_submitted")
        self.auth_succeeded = Signal("auth_succeeded")
        self.auth_cancelled = Signal("auth_cancelled")
        self.auth_aborted = Signal("auth_aborted")

    @property
    def is_open(self) -> bool:
        return self.state is WindowState.OPEN

    async def open(self, url: str, options: Optional[PopupOptions] = None) -> None:
        """Open the window.

        Raises:
            AuthPopupAlreadyOpen: If a window is already tracked as open
        """
        if self.is_open:
            raise AuthPopupAlreadyOpen("An authorization window is already open.")

        self.state = WindowState.OPEN
        self._reset_signals()
        try:
            await self.driver.open(url, options or PopupOptions(), self._handle_message)
        except BaseException:
            self.state = WindowState.CLOSED
            raise
        self._watcher = asyncio.ensure_future(self._watch_closed())

    async def navigate_to(self, url: str) -> None:
        """Move the open window to ``url`` without creating a new one."""
        if not self.is_open:
            raise RuntimeError("No authorization window is open")
        await self.driver.navigate(url)

    async def post_message(self, payload: Dict[str, Any]) -> None:
        """Best-effort delivery of a payload to the open window."""
        if not self.is_open or self.driver.closed:
            return
        try:
            await self.driver.post_message(payload)
        except Exception as e:
            logger.debug("Could not post message to authorization window: %s", e)

    async def close(self) -> None:
        """Close the window. Safe to call any number of times."""
        watcher, self._watcher = self._watcher, None
        try:
            if watcher is not None and not watcher.done():
                watcher.cancel()
                await asyncio.gather(watcher, return_exceptions=True)
            await self.driver.close()
        finally:
            self.state = WindowState.CLOSED

    def _handle_message(self, data: Any) -> None:
        if not self.is_open or not isinstance(data, dict):
            return

        if data.get("domain"):
            self.domain_submitted.emit(str(data["domain"]))
        elif data.get("success"):
            self.auth_succeeded.emit(True)
        elif data.get("aborted"):
            self.auth_cancelled.emit(True)
        else:
            logger.debug("Ignoring unrecognized authorization window message")

    async def _watch_closed(self) -> None:
        while not self.driver.closed:
            await asyncio.sleep(self.watch_interval)
        logger.info("Authorization window closed by the user")
        self.auth_aborted.emit(True)
