from typing import Any, Dict, Optional

from yt_dlp import YoutubeDL
from yt_dlp.utils import DownloadError, ExtractorError

from songgrab.errors import ProviderUnavailableError
from songgrab.providers.base import SearchProvider
from songgrab.utils.logging import get_logger


logger = get_logger(__name__)

WATCH_URL = "https://www.youtube.com/watch?v={}"
THUMBNAIL_URL = "https://i.ytimg.com/vi/{}/hqdefault.jpg"

# Extractor messages that mean the video does not exist for us, as opposed
# to the provider being unreachable.
_MISSING_MARKERS = (
    "video unavailable",
    "private video",
    "has been removed",
    "does not exist",
    "not available",
    "incomplete youtube id",
    "unsupported url",
)


def _thumbnail(entry: Dict[str, Any], video_id: str) -> str:
    thumb = entry.get("thumbnail")
    if isinstance(thumb, str) and thumb:
        return thumb
    thumbs = entry.get("thumbnails")
    if isinstance(thumbs, list):
        for item in reversed(thumbs):
            if isinstance(item, dict) and item.get("url"):
                return item["url"]
    return THUMBNAIL_URL.format(video_id)


def _normalize(entry: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    video_id = entry.get("id")
    if not isinstance(video_id, str) or not video_id.strip():
        return None
    video_id = video_id.strip()
    return {
        "id": video_id,
        "title": entry.get("title") or "",
        "thumbnail": _thumbnail(entry, video_id),
        "duration": entry.get("duration") or 0,
        "url": entry.get("webpage_url") or WATCH_URL.format(video_id),
        "author": entry.get("uploader") or entry.get("channel") or "Unknown",
    }


class YtDlpSearchProvider(SearchProvider):
    def __init__(self, socket_timeout: float = 10.0) -> None:
        self.opts: Dict[str, Any] = {
            "skip_download": True,
            "quiet": True,
            "no_warnings": True,
            "noplaylist": True,
            "cachedir": False,
            "socket_timeout": socket_timeout,
        }

    def _extract(self, target: str, **extra: Any) -> Optional[Dict[str, Any]]:
        try:
            with YoutubeDL({**self.opts, **extra}) as ydl:
                info = ydl.extract_info(target, download=False)
        except (DownloadError, ExtractorError) as exc:
            text = str(exc).lower()
            if any(marker in text for marker in _MISSING_MARKERS):
                logger.info("yt-dlp found nothing for %s", target)
                return None
            logger.exception("yt-dlp extraction failed for %s", target)
            raise ProviderUnavailableError("Search provider failed") from exc
        return info if isinstance(info, dict) else None

    def search(self, query: str) -> Optional[Dict[str, Any]]:
        if not query:
            return None
        info = self._extract(f"ytsearch1:{query}", extract_flat="in_playlist")
        entries = (info or {}).get("entries") or []
        for entry in entries:
            if isinstance(entry, dict):
                result = _normalize(entry)
                if result:
                    return result
        return None

    def lookup(self, video_id: str) -> Optional[Dict[str, Any]]:
        info = self._extract(WATCH_URL.format(video_id))
        return _normalize(info) if info else None
