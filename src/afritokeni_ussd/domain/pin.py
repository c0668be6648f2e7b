"""PIN hashing. Only the salted PBKDF2 digest is ever stored.

The digest functions block for tens of milliseconds; async callers run them
in a worker thread.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets

PIN_LENGTH = 4
_ALGORITHM = "pbkdf2_sha256"
_ITERATIONS = 120_000


def is_well_formed(candidate: str) -> bool:
    return len(candidate) == PIN_LENGTH and candidate.isascii() and candidate.isdigit()


def hash_pin(pin: str, *, salt: str | None = None, iterations: int = _ITERATIONS) -> str:
    """Return ``pbkdf2_sha256$<iterations>$<salt>$<hex digest>``."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", pin.encode(), salt.encode(), iterations)
    return f"{_ALGORITHM}${iterations}${salt}${digest.hex()}"


def verify_pin(candidate: str, stored_hash: str) -> bool:
    """Constant-time comparison of a candidate PIN against a stored hash."""
    try:
        algorithm, iterations, salt, expected = stored_hash.split("$")
    except ValueError:
        return False
    if algorithm != _ALGORITHM:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", candidate.encode(), salt.encode(), int(iterations))
    return hmac.compare_digest(digest.hex(), expected)
