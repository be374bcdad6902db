import asyncio
from typing import Any, Dict, Optional

from songgrab.errors import InvalidQueryError, InvalidUrlError, NotFoundError
from songgrab.models import VideoMetadata
from songgrab.providers.base import SearchProvider
from songgrab.utils.logging import get_logger
from songgrab.utils.text import extract_video_id


logger = get_logger(__name__)


def _to_metadata(raw: Dict[str, Any]) -> VideoMetadata:
    try:
        duration = int(raw.get("duration") or 0)
    except (TypeError, ValueError):
        duration = 0
    return VideoMetadata(
        title=raw.get("title") or "",
        thumbnail_url=raw.get("thumbnail"),
        duration_seconds=duration,
        canonical_url=raw.get("url") or "",
        video_id=raw["id"],
        author=raw.get("author") or "Unknown",
    )


class SearchResolver:
    def __init__(self, provider: SearchProvider) -> None:
        self.provider = provider

    async def resolve_by_text(self, query: str) -> VideoMetadata:
        query = (query or "").strip()
        if not query:
            raise InvalidQueryError()
        logger.info("search by text", extra={"query": query})
        raw: Optional[Dict[str, Any]] = await asyncio.to_thread(self.provider.search, query)
        if not raw:
            raise NotFoundError(f"No results for {query!r}")
        return _to_metadata(raw)

    async def resolve_by_url(self, url: str) -> VideoMetadata:
        video_id = extract_video_id((url or "").strip())
        if not video_id:
            raise InvalidUrlError()
        logger.info("search by url", extra={"url": url, "video_id": video_id})
        raw = await asyncio.to_thread(self.provider.lookup, video_id)
        if not raw:
            raise NotFoundError()
        return _to_metadata(raw)
