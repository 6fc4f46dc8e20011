"""PKCE verifier/challenge generation (RFC 7636, S256)."""

import base64
import hashlib
import secrets
from typing import Tuple

CODE_CHALLENGE_METHOD = "S256"


def compute_challenge(code_verifier: str) -> str:
    """Derive the S256 code challenge for a verifier."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def generate_pkce() -> Tuple[str, str]:
    """Generate a PKCE code verifier and code challenge.

    Returns:
        Tuple of (code_verifier, code_challenge)
    """
    # 64 random bytes give an 86 character verifier, inside the 43-128 range
    code_verifier = secrets.token_urlsafe(64)
    return code_verifier, compute_challenge(code_verifier)
