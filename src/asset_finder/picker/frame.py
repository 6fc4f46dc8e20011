"""Embedded frame and the container it is mounted into."""

import logging
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)

APP_FINDER_TEMPLATE = "external-asset-chooser"
FRAME_NAME = "Asset Finder"

Transport = Callable[[Any, str], None]


class ContentWindow:
    """Window inside an embedded frame.

    The host integration supplies ``transport``, which carries posted payloads
    into the frame (for example through a webview bridge). Its identity is what
    incoming messages are matched against.
    """

    def __init__(self, transport: Optional[Transport] = None):
        self.transport = transport

    def post_message(self, data: Any, target_origin: str) -> None:
        if self.transport is None:
            logger.debug("No transport attached, dropping message for %s", target_origin)
            return
        self.transport(data, target_origin)


class EmbeddedFrame:
    """Frame pointed at the remote picker surface of one domain."""

    def __init__(self, domain: str, transport: Optional[Transport] = None):
        self.src = f"https://{domain}/{APP_FINDER_TEMPLATE}"
        self.name = FRAME_NAME
        self.sandbox = ("allow-same-origin", "allow-scripts")
        self.content_window = ContentWindow(transport)
        self.parent: Optional["FrameContainer"] = None


class FrameContainer:
    """Parent node that frames are attached to."""

    def __init__(self) -> None:
        self.children: List[EmbeddedFrame] = []

    def append_child(self, frame: EmbeddedFrame) -> None:
        self.children.append(frame)
        frame.parent = self

    def remove_child(self, frame: EmbeddedFrame) -> None:
        """Detach a frame.

        Raises:
            ValueError: If the frame is not a child of this container
        """
        self.children.remove(frame)
        frame.parent = None
