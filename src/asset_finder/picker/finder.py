"""Host side of the embedded picker's control protocol."""

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from ..exceptions import (
    WARN_UNKNOWN_EVENT,
    FinderError,
    PickerAlreadyMounted,
    SelectionResolutionFailed,
    TokenRejected,
)
from ..storage.base import Token
from .channel import MessageChannel, MessageEvent, get_message_channel
from .frame import EmbeddedFrame, FrameContainer, Transport
from .resolver import AssetResolver

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = 2.0

Hook = Callable[[], Union[None, Awaitable[None]]]


async def _call(callback: Callable[..., Any], *args: Any) -> None:
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


@dataclass
class Filter:
    """Restricts which assets the picker offers."""

    key: str
    values: List[str]
    inverted: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "values": list(self.values), "inverted": self.inverted}


@dataclass
class PickerOptions:
    allow_multi_select: bool = False
    auto_close: bool = False
    filters: List[Filter] = field(default_factory=list)


class AssetPicker:
    """Mounts the remote picker frame and speaks its message protocol.

    Frame to host messages (one per event, checked against the frame's content
    window and ``https://{token.domain}`` before anything else):

    - ``{"configurationRequested": true}``: reply with the configuration
    - ``{"assetsChosen": [{"id": ...}, ...]}``: resolve and deliver the selection
    - ``{"aborted": true}``: the user cancelled
    - ``{"logout": true}``: the user signed out inside the frame

    Messages from any other window or origin are ignored silently.
    """

    def __init__(
        self,
        token: Token,
        options: PickerOptions,
        on_logout_requested: Hook,
        resolver: AssetResolver,
        channel: Optional[MessageChannel] = None,
        transport: Optional[Transport] = None,
        on_token_rejected: Optional[Hook] = None,
    ):
        """Initialize the picker.

        Args:
            token: Token whose domain hosts the picker surface
            options: Selection settings pushed to the frame
            on_logout_requested: Must revoke and evict the stored token
            resolver: Fetches records for chosen identifiers
            channel: Host message channel (defaults to the global one)
            transport: Carries posted payloads into the frame
            on_token_rejected: Called when the domain rejects the token (HTTP 401)
        """
        self.token = token
        self.options = options
        self.on_logout_requested = on_logout_requested
        self.on_token_rejected = on_token_rejected
        self.resolver = resolver
        self.channel = channel or get_message_channel()
        self.frame = EmbeddedFrame(token.domain, transport)
        self.parent: Optional[FrameContainer] = None
        self._listeners: Dict[str, Callable[..., Any]] = {}
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def origin(self) -> str:
        return self.token.origin

    @property
    def mounted(self) -> bool:
        return self.parent is not None

    def on_assets_chosen(self, callback: Callable[[List[Dict[str, Any]]], Any]) -> "AssetPicker":
        self._listeners["assets_chosen"] = callback
        return self

    def on_cancel(self, callback: Callable[[], Any]) -> "AssetPicker":
        self._listeners["cancel"] = callback
        return self

    def mount(self, parent: FrameContainer) -> None:
        """Insert the frame into ``parent`` and start listening for messages.

        Raises:
            PickerAlreadyMounted: If the picker is already mounted
        """
        if self.mounted:
            raise PickerAlreadyMounted("Asset picker already mounted on a parent node.")

        unsubscribe = self.channel.subscribe(self._handle_message)
        try:
            parent.append_child(self.frame)
        except Exception:
            unsubscribe()
            raise
        self._unsubscribe = unsubscribe
        self.parent = parent

    def close(self) -> None:
        """Stop listening and detach the frame. Safe to call repeatedly."""
        try:
            if self._unsubscribe is not None:
                self._unsubscribe()
            if self.parent is not None:
                self.parent.remove_child(self.frame)
        except Exception as e:
            logger.error("ERR_FINDER_CLOSE: Error closing asset picker: %s", e)
        finally:
            self.parent = None
            self._unsubscribe = None

    async def _handle_message(self, event: MessageEvent) -> None:
        if (
            event.source is not self.frame.content_window
            or event.origin != self.origin
            or not self.mounted
        ):
            return

        data = event.data
        if isinstance(data, dict):
            if data.get("configurationRequested"):
                self._push_configuration()
                return

            if "assetsChosen" in data:
                await self._handle_assets_chosen(data["assetsChosen"])
                return

            if data.get("aborted"):
                await self._handle_cancel()
                return

            if data.get("logout"):
                await self._run_hook(self.on_logout_requested)
                await self._handle_cancel()
                return

        logger.warning("%s: Unknown event from the asset picker", WARN_UNKNOWN_EVENT)

    def _push_configuration(self) -> None:
        self.frame.content_window.post_message(
            {
                "version": PROTOCOL_VERSION,
                "token": self.token.access_token,
                "supports": {"cancel": True, "logout": True},
                "multiSelectionAllowed": self.options.allow_multi_select,
                "filters": [f.to_dict() for f in self.options.filters],
            },
            self.origin,
        )

    async def _handle_cancel(self) -> None:
        if self.options.auto_close:
            self.close()

        callback = self._listeners.get("cancel")
        if callback:
            await _call(callback)

    async def _handle_assets_chosen(self, assets: Any) -> None:
        try:
            ids = [asset["id"] for asset in assets]
            records = await self.resolver.resolve(
                self.token.domain, self.token.access_token, ids
            )
        except TokenRejected:
            await self._run_hook(self.on_token_rejected)
            return
        except FinderError:
            # Already logged where it was classified
            return
        except Exception as e:
            logger.error(
                "%s: Failed retrieving assets data: %s",
                SelectionResolutionFailed.code,
                type(e).__name__,
            )
            return

        if self.options.auto_close:
            self.close()

        callback = self._listeners.get("assets_chosen")
        if callback:
            await _call(callback, records)

    async def _run_hook(self, hook: Optional[Hook]) -> None:
        if hook is None:
            return
        try:
            await _call(hook)
        except FinderError:
            # Already logged where it was classified
            pass
        except Exception:
            logger.exception("Asset picker hook failed")
