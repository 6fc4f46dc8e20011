"""Embedded asset picker and its control channel."""

from .channel import MessageChannel, MessageEvent, get_message_channel
from .finder import AssetPicker, Filter, PickerOptions
from .frame import ContentWindow, EmbeddedFrame, FrameContainer
from .resolver import AssetResolver

__all__ = [
    "MessageChannel",
    "MessageEvent",
    "get_message_channel",
    "AssetPicker",
    "Filter",
    "PickerOptions",
    "ContentWindow",
    "EmbeddedFrame",
    "FrameContainer",
    "AssetResolver",
]
