"""Short human-speakable codes read out between a user and an agent."""

from __future__ import annotations

import secrets
import string

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 6


def random_code(prefix: str, length: int = CODE_LENGTH) -> str:
    """Return ``<prefix>-XXXXXX`` drawn from uppercase letters and digits."""
    body = "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))
    return f"{prefix}-{body}"
