"""Shared utility functions for BookSpark."""

import logging
from datetime import datetime, UTC
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)


def now_utc() -> datetime:
    """Get current UTC time (timezone-aware)."""
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on round-trip)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def resolve_timezone(name: str | None) -> ZoneInfo:
    """Return the ZoneInfo for ``name``, falling back to UTC for unknown zones."""
    try:
        return ZoneInfo(name or "UTC")
    except (KeyError, ValueError) as e:
        logger.warning("Invalid timezone '%s', falling back to UTC: %s", name, e)
        return ZoneInfo("UTC")


def truncate(text: str, limit: int, suffix: str = "...") -> str:
    """Cut ``text`` to ``limit`` characters, appending ``suffix`` only when cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + suffix


def parse_timestamp(timestamp_str: str | None) -> datetime | None:
    """
    Parse an ISO timestamp string to datetime.

    Args:
        timestamp_str: ISO format timestamp string (X uses a trailing "Z").

    Returns:
        Parsed datetime or None if parsing fails.
    """
    if not timestamp_str:
        return None

    try:
        return datetime.fromisoformat(timestamp_str.replace("Z", "+00:00"))
    except ValueError as e:
        logger.debug("Failed to parse timestamp '%s': %s", timestamp_str, e)
        return None


def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the application.

    Args:
        level: Root log level name (DEBUG, INFO, WARNING, ...).
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Quiet down noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
