"""Delegated authorization: PKCE flow, remote endpoints and the secondary window."""

from .api import AuthorizationApi, normalize_domain
from .browser import BrowserWindowDriver
from .flow import AuthConfig, AuthState, Authenticator, AuthorizationSession
from .window import PopupOptions, PopupWindow, Signal, WindowDriver, WindowState

__all__ = [
    "AuthorizationApi",
    "normalize_domain",
    "BrowserWindowDriver",
    "AuthConfig",
    "AuthState",
    "Authenticator",
    "AuthorizationSession",
    "PopupOptions",
    "PopupWindow",
    "Signal",
    "WindowDriver",
    "WindowState",
]
