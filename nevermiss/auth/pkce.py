"""PKCE (RFC 7636) helpers for the authorization-code flow."""

import base64
import hashlib
import secrets


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def generate_code_verifier() -> str:
    """Return a high-entropy verifier: 32 random bytes, base64url, unpadded."""
    return _b64url(secrets.token_bytes(32))


def generate_code_challenge(verifier: str) -> str:
    """Return the S256 challenge for a verifier."""
    return _b64url(hashlib.sha256(verifier.encode("ascii")).digest())
