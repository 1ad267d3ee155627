from datetime import datetime, timezone

MINUTE = 60
HOUR = 3600
DAY = 86400


def format_elapsed(seconds: float) -> str:
    """Tiered elapsed time: minutes under an hour, then hours, then days."""
    seconds = max(0.0, seconds)
    if seconds < HOUR:
        return f"{int(seconds // MINUTE)}m"
    if seconds < DAY:
        hours = int(seconds // HOUR)
        mins = int((seconds % HOUR) // MINUTE)
        return f"{hours}h {mins}m" if mins else f"{hours}h"
    days = int(seconds // DAY)
    hours = int((seconds % DAY) // HOUR)
    return f"{days}d {hours}h" if hours else f"{days}d"


def parse_timestamp(value) -> datetime | None:
    """Parse an ISO 8601 timestamp (trailing Z allowed). Naive values are UTC."""
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def iso(dt: datetime) -> str:
    """Render as UTC ISO 8601 with millisecond precision and a Z suffix."""
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
