"""Small shared helpers."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current UTC time as a naive datetime (the storage convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_github_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO 8601 timestamp as returned by the GitHub API.

    Aware values are normalized to naive UTC.
    """
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
