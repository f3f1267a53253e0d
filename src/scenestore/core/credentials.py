"""Token generation and the default password hasher."""

from __future__ import annotations

import hmac
import logging
import secrets

import bcrypt

log = logging.getLogger(__name__)

__all__ = [
    "OPAQUE_KEY_LENGTH",
    "SECRET_HEX_LENGTH",
    "BcryptHasher",
    "digests_match",
    "generate_opaque_key",
    "generate_recovery_key",
    "generate_salt",
    "generate_session_key",
]

SECRET_HEX_LENGTH = 64  # CHAR(64) columns: salt, recovery_key, session_key
OPAQUE_KEY_LENGTH = 16  # CHAR(16) columns: media_key, project_key, scene_key


def _random_hex() -> str:
    return secrets.token_hex(SECRET_HEX_LENGTH // 2)


def generate_salt() -> str:
    return _random_hex()


def generate_recovery_key() -> str:
    return _random_hex()


def generate_session_key() -> str:
    return _random_hex()


def generate_opaque_key() -> str:
    """Return a 16-character URL-safe token for media/project/scene keys."""

    # 12 random bytes encode to exactly 16 base64 characters
    return secrets.token_urlsafe(12)


def digests_match(expected: str, candidate: str) -> bool:
    """Constant-time comparison of two digests or keys."""

    return hmac.compare_digest(expected.encode("utf-8"), candidate.encode("utf-8"))


class BcryptHasher:
    """bcrypt implementation of ``hash(password, salt) -> digest``.

    ``gensalt()`` yields the 29-character ``$2b$`` salt stored in the
    ``salt`` column; the digest is the 60-character modular-crypt string.
    """

    MIN_ROUNDS = 4
    MAX_ROUNDS = 31

    def __init__(self, rounds: int = 12):
        if not self.MIN_ROUNDS <= int(rounds) <= self.MAX_ROUNDS:
            raise ValueError(f"rounds must be between {self.MIN_ROUNDS} and {self.MAX_ROUNDS}")
        self.rounds = int(rounds)

    def gensalt(self) -> str:
        return bcrypt.gensalt(rounds=self.rounds).decode("ascii")

    def __call__(self, password: str, salt: str) -> str:
        # bcrypt only reads the first 72 bytes of the password
        secret = password.encode("utf-8")[:72]
        return bcrypt.hashpw(secret, salt.encode("ascii")).decode("ascii")

    def __repr__(self) -> str:
        return f"BcryptHasher(rounds={self.rounds})"
