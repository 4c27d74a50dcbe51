"""Authentication challenge solver for the Hello/Identify handshake."""

from __future__ import annotations

import base64
import hashlib


def _sha256_b64(value: str) -> str:
    return base64.b64encode(hashlib.sha256(value.encode("utf-8")).digest()).decode("ascii")


def generate_auth(password: str, salt: str, challenge: str) -> str:
    """Return the Identify ``authentication`` string.

    ``secret = base64(sha256(password + salt))`` and the response is
    ``base64(sha256(secret + challenge))``.
    """

    secret = _sha256_b64(password + salt)
    return _sha256_b64(secret + challenge)
