import re
from typing import Optional
from urllib.parse import urlparse


# YouTube ids are exactly 11 url-safe base64 characters.
_ID = r"([A-Za-z0-9_-]{11})(?![A-Za-z0-9_-])"

_VIDEO_ID_PATTERNS = [
    re.compile(r"(?:youtube\.com/watch\?(?:[^#\s]*&)?v=|youtu\.be/)" + _ID),
    re.compile(r"youtube\.com/embed/" + _ID),
    re.compile(r"youtube\.com/v/" + _ID),
    re.compile(r"youtube\.com/shorts/" + _ID),
]


def format_duration(seconds: Optional[float]) -> str:
    """Render seconds as ``m:ss``. Minutes keep counting past the hour."""
    total = int(seconds or 0)
    if total < 0:
        total = 0
    mins, secs = divmod(total, 60)
    return f"{mins}:{secs:02d}"


def extract_video_id(url: str) -> Optional[str]:
    if not url:
        return None
    for pattern in _VIDEO_ID_PATTERNS:
        match = pattern.search(url)
        if match and match.group(1):
            return match.group(1)
    return None


def is_http_url(value: str) -> bool:
    if not value or not isinstance(value, str):
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
