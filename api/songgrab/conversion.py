"""Client for the external conversion service.

The provider transcodes asynchronously: ``download.php`` accepts a job and
returns its id, ``progress.php`` reports progress on a 0-1000 scale until the
job finishes. There is no push channel, so the client polls on a fixed
interval with an attempt ceiling.
"""
import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import requests

from songgrab.config import settings
from songgrab.errors import (
    ConversionError,
    InvalidUrlError,
    JobStateError,
    PollTimeoutError,
    ProviderUnavailableError,
    SubmissionError,
)
from songgrab.models import (
    Completed,
    ConversionJob,
    ConversionRequest,
    DownloadResult,
    Failed,
    MediaFormat,
    Polling,
    Submitted,
    TimedOut,
)
from songgrab.utils.http import build_session, get_json
from songgrab.utils.logging import get_logger
from songgrab.utils.text import is_http_url


logger = get_logger(__name__)

PROGRESS_DONE = 1000

Sleep = Callable[[float], Awaitable[Any]]


def _provider_message(data: Dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _progress_value(data: Dict[str, Any]) -> int:
    try:
        return int(data.get("progress") or 0)
    except (TypeError, ValueError):
        return 0


class ConversionClient:
    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://p.oceansaver.in/ajax",
        poll_interval: float = 5.0,
        max_attempts: int = 60,
        request_timeout: Optional[float] = 20.0,
        session: Optional[requests.Session] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.request_timeout = request_timeout
        self._owns_session = session is None
        self.session = session if session is not None else build_session(settings.http_user_agent)
        self._sleep = sleep

    @classmethod
    def from_settings(cls) -> "ConversionClient":
        return cls(
            api_key=settings.converter_api_key,
            base_url=settings.converter_base_url,
            poll_interval=settings.converter_poll_interval,
            max_attempts=settings.converter_max_attempts,
            request_timeout=settings.converter_http_timeout,
        )

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    async def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        # requests is blocking; the await is also where cancellation lands
        return await asyncio.to_thread(
            get_json, self.session, f"{self.base_url}/{path}", params, self.request_timeout
        )

    async def submit(self, source_url: str, format: Union[MediaFormat, str]) -> ConversionJob:
        if not self.api_key:
            raise SubmissionError("Conversion API key is not configured")
        if not is_http_url(source_url):
            raise InvalidUrlError(f"Not a valid media URL: {source_url!r}")
        try:
            media_format = MediaFormat(format)
        except ValueError as exc:
            raise SubmissionError(f"Unsupported format: {format!r}") from exc

        request = ConversionRequest(source_url=source_url.strip(), format=media_format)
        data = await self._get(
            "download.php",
            {"format": media_format.value, "url": request.source_url, "api": self.api_key},
        )
        job_id = data.get("id")
        if not data.get("success") or not job_id:
            message = _provider_message(data, "message", "error", "text") or "Failed to fetch video details"
            logger.warning("conversion rejected url=%s: %s", request.source_url, message)
            raise SubmissionError(message)

        info = data.get("info") or {}
        job = ConversionJob(
            job_id=str(job_id),
            request=request,
            title=data.get("title") or "",
            thumbnail_url=info.get("image") if isinstance(info, dict) else None,
        )
        logger.info("conversion submitted", extra={"job_id": job.job_id, "url": job.source_url, "format": media_format.value})
        return job

    async def poll(self, job: ConversionJob) -> Completed:
        if job.state.terminal:
            raise JobStateError(f"Job {job.job_id} already finished as {type(job.state).__name__.lower()}")
        if not isinstance(job.state, Submitted):
            raise JobStateError(f"Job {job.job_id} is already being polled")
        job.state = Polling()

        try:
            for attempt in range(1, self.max_attempts + 1):
                data = await self._get("progress.php", {"id": job.job_id})
                progress = _progress_value(data)

                if data.get("success") and progress == PROGRESS_DONE:
                    final_url = data.get("download_url")
                    if not final_url:
                        raise ConversionError("Conversion finished without a download URL")
                    job.state = Completed(final_url=final_url, title=job.title, thumbnail_url=job.thumbnail_url)
                    logger.info("conversion completed", extra={"job_id": job.job_id, "attempt": attempt})
                    return job.state

                failure = _provider_message(data, "error", "message")
                if "success" in data and not data["success"] and failure:
                    raise ConversionError(failure)

                job.state = Polling(attempt=attempt, progress=progress)
                logger.debug("conversion in progress", extra={"job_id": job.job_id, "attempt": attempt, "progress": progress})
                await self._sleep(self.poll_interval)
        except ConversionError as exc:
            job.state = Failed(reason=exc.message)
            logger.warning("conversion failed", extra={"job_id": job.job_id, "reason": exc.message})
            raise
        except ProviderUnavailableError as exc:
            job.state = Failed(reason=exc.message)
            raise
        except asyncio.CancelledError:
            job.state = Failed(reason="cancelled")
            logger.info("conversion polling cancelled", extra={"job_id": job.job_id})
            raise

        job.state = TimedOut(attempts=self.max_attempts)
        logger.warning("conversion timed out", extra={"job_id": job.job_id, "attempt": self.max_attempts})
        raise PollTimeoutError()

    async def download(self, source_url: str, format: Union[MediaFormat, str]) -> DownloadResult:
        job = await self.submit(source_url, format)
        completed = await self.poll(job)
        return DownloadResult(
            title=completed.title,
            download_url=completed.final_url,
            thumbnail=completed.thumbnail_url,
            source_url=job.source_url,
            format=job.format,
        )
