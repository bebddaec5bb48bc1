"""PKCE (RFC 7636) helpers."""

import base64
import hashlib
import secrets
import uuid
from typing import Literal

ChallengeMethod = Literal["S256", "plain"]

VERIFIER_LENGTH = 128  # RFC 7636 maximum


def generate_state() -> str:
    """Opaque, unguessable correlation token for one authorization attempt."""
    return str(uuid.uuid4())


def generate_code_verifier(length: int = VERIFIER_LENGTH) -> str:
    """Random verifier using the unreserved URL-safe alphabet, 43-128 chars."""
    if not 43 <= length <= 128:
        msg = "PKCE code verifier must be between 43 and 128 characters"
        raise ValueError(msg)
    # token_urlsafe yields ~1.3 chars per byte
    return secrets.token_urlsafe(length)[:length]


def derive_code_challenge(verifier: str, method: ChallengeMethod = "S256") -> str:
    if method == "plain":
        return verifier
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
