"""Configuration management for Asset Finder."""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_SCOPES = ["basic:read"]
DEFAULT_DOMAIN_ENTRY_URL = "https://app.asset-finder.io/connect"


@dataclass
class Config:
    """Application configuration from environment variables."""

    # Authorization
    client_id: Optional[str] = None
    domain: Optional[str] = None
    scopes: List[str] = field(default_factory=lambda: list(DEFAULT_SCOPES))
    domain_entry_url: str = DEFAULT_DOMAIN_ENTRY_URL

    # Secondary window
    relay_port: int = 8765
    auth_timeout: float = 300.0
    poll_interval: float = 1.0

    # Network
    http_timeout: float = 30.0

    # Storage
    database_path: str = "./data/tokens.db"
    encryption_key: Optional[str] = None
    session_dir: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables with validation."""
        config_values = {
            "client_id": os.getenv("FINDER_CLIENT_ID") or None,
            "domain": os.getenv("FINDER_DOMAIN") or None,
            "domain_entry_url": os.getenv(
                "FINDER_DOMAIN_ENTRY_URL", DEFAULT_DOMAIN_ENTRY_URL
            ),
            "database_path": os.getenv("FINDER_DATABASE_PATH", "./data/tokens.db"),
            "encryption_key": os.getenv("ENCRYPTION_KEY") or None,
            "session_dir": os.getenv("FINDER_SESSION_DIR")
            or os.getenv("XDG_RUNTIME_DIR")
            or None,
        }

        scopes = os.getenv("FINDER_SCOPES")
        if scopes:
            config_values["scopes"] = scopes.split()

        numeric_vars = {
            "FINDER_RELAY_PORT": ("relay_port", int),
            "FINDER_AUTH_TIMEOUT": ("auth_timeout", float),
            "FINDER_POLL_INTERVAL": ("poll_interval", float),
            "FINDER_HTTP_TIMEOUT": ("http_timeout", float),
        }
        for env_var, (field_name, cast) in numeric_vars.items():
            value = os.getenv(env_var)
            if not value:
                continue
            try:
                config_values[field_name] = cast(value)
            except ValueError as e:
                raise ValueError(f"Invalid {env_var} value {value!r}: {e}") from e

        if config_values["encryption_key"]:
            _validate_encryption_key(config_values["encryption_key"])

        return cls(**config_values)


def _validate_encryption_key(key: str) -> None:
    """Durable storage needs 32 bytes of key material as 64 hex chars."""
    try:
        if len(bytes.fromhex(key)) != 32:
            raise ValueError(f"expected 64 hex characters, got {len(key)}")
    except ValueError as e:
        raise ValueError(
            f"Invalid ENCRYPTION_KEY: {e}. "
            "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
        ) from e


# Global config instance (lazy loaded)
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config
