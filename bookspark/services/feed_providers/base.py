"""BookmarkProvider protocol: common interface for fetching saved posts."""

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass
class BookmarkBatch:
    """Raw saved posts plus the authors and media they reference, keyed by id."""

    posts: list[dict[str, Any]] = field(default_factory=list)
    users: dict[str, dict[str, Any]] = field(default_factory=dict)
    media: dict[str, dict[str, Any]] = field(default_factory=dict)

    def extend(self, payload: dict[str, Any]) -> None:
        """Merge one X API v2 response page into the batch."""
        self.posts.extend(payload.get("data") or [])
        includes = payload.get("includes") or {}
        for u in includes.get("users", []):
            self.users[u["id"]] = u
        for m in includes.get("media", []):
            self.media[m["media_key"]] = m


class BookmarkProvider(Protocol):
    """Protocol for saved-post sources (X API, test fakes)."""

    async def fetch_bookmarks(self, user_id: int, max_results: int = 100) -> BookmarkBatch:
        """Fetch up to ``max_results`` of the user's most recent saved posts.

        Raises AuthError when the user has no usable token and UpstreamError
        when the remote API call fails.
        """
        ...
