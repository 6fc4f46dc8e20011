"""Asset Finder: delegated authorization and an embedded asset picker.

Public API:
    - FinderService: Async entry point (authorize, refresh, revoke, picker)
    - SyncFinderService: Synchronous wrapper for scripts and sync frameworks
    - Authenticator: PKCE authorization flow through a secondary window
    - PopupWindow, BrowserWindowDriver: Secondary-window controller and driver
    - AssetPicker: Host side of the embedded picker protocol
    - CredentialStore: Token storage with per-item expiry
    - Token: Token data structure
    - FinderError: Base of all errors, each with a stable code
"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("asset-finder")
except PackageNotFoundError:
    # Package not installed, use development version
    __version__ = "0.0.0.dev"

# Core services
from .core import FinderService, SyncFinderService

# Authorization
from .auth import (
    AuthConfig,
    Authenticator,
    AuthState,
    BrowserWindowDriver,
    PopupOptions,
    PopupWindow,
    WindowDriver,
)

# Picker
from .picker import (
    AssetPicker,
    AssetResolver,
    Filter,
    FrameContainer,
    MessageChannel,
    MessageEvent,
    PickerOptions,
)

# Storage
from .storage import CredentialStore, Token, get_storage

# Errors
from .exceptions import (
    AuthAborted,
    AuthDomainTimeout,
    AuthExchangeFailed,
    AuthPopupAlreadyOpen,
    AuthTimeout,
    FinderError,
    PickerAlreadyMounted,
    SelectionEmpty,
    SelectionResolutionFailed,
    StorageUnavailable,
    TokenRejected,
)

# Configuration
from .config import Config

__all__ = [
    # Version
    "__version__",
    # Core services
    "FinderService",
    "SyncFinderService",
    # Authorization
    "AuthConfig",
    "Authenticator",
    "AuthState",
    "BrowserWindowDriver",
    "PopupOptions",
    "PopupWindow",
    "WindowDriver",
    # Picker
    "AssetPicker",
    "AssetResolver",
    "Filter",
    "FrameContainer",
    "MessageChannel",
    "MessageEvent",
    "PickerOptions",
    # Storage
    "CredentialStore",
    "Token",
    "get_storage",
    # Errors
    "AuthAborted",
    "AuthDomainTimeout",
    "AuthExchangeFailed",
    "AuthPopupAlreadyOpen",
    "AuthTimeout",
    "FinderError",
    "PickerAlreadyMounted",
    "SelectionEmpty",
    "SelectionResolutionFailed",
    "StorageUnavailable",
    "TokenRejected",
    # Configuration
    "Config",
]
