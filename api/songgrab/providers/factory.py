from songgrab.config import settings
from songgrab.providers.base import SearchProvider
from songgrab.providers.ytdlp_provider import YtDlpSearchProvider


def get_search_provider(name: str = "") -> SearchProvider:
    name = (name or settings.search_provider or "ytdlp").lower()
    if name in ("ytdlp", "yt-dlp", "youtube"):
        return YtDlpSearchProvider()
    raise ValueError(f"Unknown search provider: {name}")
