"""Exceptions raised by the authorization flow, picker and credential store.

Every error carries a stable machine-readable ``code`` next to its message.
Errors never log themselves: the layer that classifies a failure logs it once
and callers that receive a ``FinderError`` must not log it again.
"""

from typing import Optional

# Warning code for frame messages that match no known protocol event
WARN_UNKNOWN_EVENT = "WARN_FINDER_UNKNOWN_EVENT"


class FinderError(Exception):
    """Base exception for all asset-finder errors.

    Attributes:
        code: Stable machine-readable error code.
        message: Human-readable error description.
    """

    code = "ERR_FINDER"

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        if code:
            self.code = code
        self.message = message
        super().__init__(f"{self.code}: {message}")


class AuthPopupAlreadyOpen(FinderError):
    """Raised when an authorization window is already open."""

    code = "ERR_POPUP_OPEN"


class AuthTimeout(FinderError):
    """Raised when the user did not finish authorizing in time."""

    code = "ERR_AUTH_TIMEOUT"


class AuthDomainTimeout(AuthTimeout):
    """Raised when no domain was submitted in time."""

    code = "ERR_AUTH_DOMAIN_TIMEOUT"


class AuthAborted(FinderError):
    """Raised when the user closed or cancelled the authorization window."""

    code = "ERR_AUTH_ABORTED"


class AuthRequestFailed(FinderError):
    """Raised when session issuance or session polling fails."""

    code = "ERR_AUTH_REQUEST"


class AuthExchangeFailed(FinderError):
    """Raised when the authorization code could not be exchanged for a token."""

    code = "ERR_AUTH_EXCHANGE"


class AuthRefreshFailed(FinderError):
    """Raised when a refresh token could not be exchanged."""

    code = "ERR_AUTH_REFRESH"


class AuthRevokeFailed(FinderError):
    """Raised when the remote domain refused to revoke a token."""

    code = "ERR_AUTH_REVOKE"


class PickerAlreadyMounted(FinderError):
    """Raised when mounting a picker that is already mounted."""

    code = "ERR_ALREADY_MOUNTED"


class SelectionResolutionFailed(FinderError):
    """Raised when chosen assets could not be fetched."""

    code = "ERR_FINDER_ASSETS_SELECTION"


class SelectionEmpty(SelectionResolutionFailed):
    """Raised when the asset query returned no records."""

    code = "ERR_FINDER_ASSETS_REQUEST_EMPTY"


class TokenRejected(FinderError):
    """Raised when the remote domain answers 401 for an access token."""

    code = "ERR_TOKEN_REJECTED"


class StorageUnavailable(FinderError):
    """Raised when a storage backend fails its availability self-test."""

    code = "ERR_STORAGE_UNAVAILABLE"
