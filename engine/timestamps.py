from __future__ import annotations

import re
from datetime import datetime, timezone

# SoundCloud's legacy API reports "2019/04/01 18:22:31 +0000".
_SLASHED_RE = re.compile(r"^(\d{4})/(\d{2})/(\d{2}) (\d{2}):(\d{2}):(\d{2})(?: ([+-]\d{4}))?$")
# Spotify release dates come with day, month or year precision.
_PARTIAL_DATE_RE = re.compile(r"^(\d{4})(?:-(\d{2}))?(?:-(\d{2}))?$")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value) -> datetime | None:
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    match = _SLASHED_RE.match(text)
    if match:
        year, month, day, hour, minute, second, offset = match.groups()
        offset = offset or "+0000"
        text = f"{year}-{month}-{day}T{hour}:{minute}:{second}{offset[:3]}:{offset[3:]}"
    else:
        match = _PARTIAL_DATE_RE.match(text)
        if match:
            year, month, day = match.groups()
            # Spotify reports "0000" for some catalog entries.
            try:
                return datetime(int(year), int(month or 1), int(day or 1), tzinfo=timezone.utc)
            except ValueError:
                return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_iso8601(value) -> str:
    """Normalize a provider date to ``YYYY-MM-DDTHH:MM:SSZ``; ``""`` when unknown."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return ""
    return parsed.replace(microsecond=0).strftime("%Y-%m-%dT%H:%M:%SZ")
