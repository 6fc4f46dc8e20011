"""Abstract base class for key/value storage."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Token:
    """Bearer token issued by a remote domain for one client."""

    token_type: str
    access_token: str = field(repr=False)
    refresh_token: str = field(repr=False)
    expires_in: int
    domain: str
    client_id: str
    scopes: List[str] = field(default_factory=list)

    @property
    def origin(self) -> str:
        """Origin every frame message for this token must come from."""
        return f"https://{self.domain}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token_type": self.token_type,
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_in": self.expires_in,
            "domain": self.domain,
            "client_id": self.client_id,
            "scopes": list(self.scopes),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Token":
        return cls(
            token_type=data["token_type"],
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            expires_in=int(data["expires_in"]),
            domain=data["domain"],
            client_id=data["client_id"],
            scopes=list(data.get("scopes") or []),
        )


class KeyValueStorage(ABC):
    """Abstract interface for a string key/value store."""

    @abstractmethod
    async def get_item(self, key: str) -> Optional[str]:
        """Retrieve a raw value.

        Args:
            key: Item key

        Returns:
            Stored string if found, None otherwise
        """
        pass

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        """Save or replace a raw value.

        Args:
            key: Item key
            value: String to store
        """
        pass

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        """Delete a value. Deleting a missing key is not an error.

        Args:
            key: Item key
        """
        pass

    async def close(self) -> None:
        """Close any open connections/resources."""
        pass
