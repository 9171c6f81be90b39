"""Signed one-click links embedded in digest emails."""

import base64
import binascii
import hashlib
import hmac
import time
from dataclasses import dataclass
from urllib.parse import urlencode

from bookspark.config import Settings, get_settings
from bookspark.errors import AuthError, FormatError

ACTION_PATH = "/api/digest/action"
UNSUBSCRIBE_PATH = "/api/digest/unsubscribe"
UNSUBSCRIBE_PREFIX = "unsubscribe"


@dataclass(frozen=True)
class ActionToken:
    user_id: int
    bookmark_id: int
    action: str


def _b64encode(raw: str) -> str:
    return base64.urlsafe_b64encode(raw.encode()).decode().rstrip("=")


def _b64decode(token: str) -> str:
    # Accept both url-safe and standard alphabets, padded or not
    normalized = token.strip().replace("-", "+").replace("_", "/")
    normalized += "=" * (-len(normalized) % 4)
    try:
        return base64.b64decode(normalized, validate=True).decode()
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise FormatError("Invalid token format") from e


def encode_action_token(user_id: int, bookmark_id: int, action: str) -> str:
    return _b64encode(f"{user_id}:{bookmark_id}:{action}")


def decode_action_token(token: str) -> ActionToken:
    """Decode ``{userId}:{bookmarkId}:{action}``; anything else is a FormatError."""
    parts = _b64decode(token).split(":")
    if len(parts) != 3:
        raise FormatError("Invalid token format")
    user_id, bookmark_id, action = parts
    try:
        return ActionToken(int(user_id), int(bookmark_id), action)
    except ValueError as e:
        raise FormatError("Invalid token format") from e


def encode_unsubscribe_token(user_id: int, timestamp: int | None = None) -> str:
    ts = int(time.time() * 1000) if timestamp is None else timestamp
    return _b64encode(f"{UNSUBSCRIBE_PREFIX}:{user_id}:{ts}")


def decode_unsubscribe_token(token: str) -> int:
    """Return the user id carried by an unsubscribe token."""
    parts = _b64decode(token).split(":")
    if len(parts) != 3 or parts[0] != UNSUBSCRIBE_PREFIX:
        raise FormatError("Invalid token format")
    try:
        return int(parts[1])
    except ValueError as e:
        raise FormatError("Invalid token format") from e


def sign(token: str, exp: int, settings: Settings | None = None) -> str:
    secret = (settings or get_settings()).secret_key.encode()
    return hmac.new(secret, f"{token}.{exp}".encode(), hashlib.sha256).hexdigest()


def verify(token: str, exp: int | None, sig: str | None, settings: Settings | None = None, now: float | None = None) -> None:
    """Raise AuthError unless ``sig`` matches and ``exp`` has not passed."""
    if exp is None or not sig:
        raise AuthError("Missing link signature")
    if not hmac.compare_digest(sign(token, exp, settings), sig):
        raise AuthError("Invalid link signature")
    if exp < (time.time() if now is None else now):
        raise AuthError("This link has expired")


def _signed_url(path: str, token: str, settings: Settings, now: float | None) -> str:
    issued = time.time() if now is None else now
    exp = int(issued + settings.action_link_ttl_days * 86400)
    query = urlencode({"token": token, "exp": exp, "sig": sign(token, exp, settings)})
    return f"{settings.app_url.rstrip('/')}{path}?{query}"


def build_action_url(
    user_id: int,
    bookmark_id: int,
    action: str,
    settings: Settings | None = None,
    now: float | None = None,
) -> str:
    settings = settings or get_settings()
    return _signed_url(ACTION_PATH, encode_action_token(user_id, bookmark_id, action), settings, now)


def build_unsubscribe_url(user_id: int, settings: Settings | None = None, now: float | None = None) -> str:
    settings = settings or get_settings()
    return _signed_url(UNSUBSCRIBE_PATH, encode_unsubscribe_token(user_id), settings, now)
