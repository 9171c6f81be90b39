"""At-rest encryption for the X OAuth tokens kept on each user row.

A token that no longer decrypts (FERNET_KEY rotated, row tampered with) is
treated like a revoked grant: the user has to reconnect their X account.
"""

import logging

from cryptography.fernet import Fernet, InvalidToken

from bookspark.config import get_settings
from bookspark.errors import AuthError

logger = logging.getLogger(__name__)


def _get_fernet() -> Fernet:
    return Fernet(get_settings().fernet_key.encode())


def encrypt(plaintext: str) -> str:
    return _get_fernet().encrypt(plaintext.encode()).decode()


def encrypt_optional(plaintext: str | None) -> str | None:
    """X only returns a refresh token when offline.access was granted."""
    return encrypt(plaintext) if plaintext else None


def decrypt(ciphertext: str) -> str:
    """Return the stored token in clear. Raises AuthError if it cannot be decrypted."""
    try:
        return _get_fernet().decrypt(ciphertext.encode()).decode()
    except InvalidToken as e:
        logger.warning("Stored X token could not be decrypted")
        raise AuthError("Stored X token is unreadable, reconnect your X account") from e
