"""Webhook Signatures — GitHub X-Hub-Signature-256 computation and verification.

Invariants:
    - Signature format is "sha256=" + lowercase hex HMAC-SHA256 of the raw body
    - Verification is constant-time (hmac.compare_digest)
    - Empty signature or secret never verifies; any header text (non-ASCII included)
      yields False, never an exception
"""

import hashlib
import hmac

SIGNATURE_PREFIX = "sha256="


def compute_signature(payload: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def signature_matches(payload: bytes, secret: str, signature: str | None) -> bool:
    """True when `signature` is the expected header value for payload/secret."""
    if not signature or not secret:
        return False
    # compare_digest rejects non-ASCII str; header bytes compare safely
    expected = compute_signature(payload, secret).encode("ascii")
    return hmac.compare_digest(expected, signature.encode("utf-8", "surrogateescape"))
