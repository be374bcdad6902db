import asyncio
import contextlib
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Dict, Iterator, Union

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from songgrab.config import settings
from songgrab.conversion import ConversionClient
from songgrab.errors import ClientDisconnectedError, PollTimeoutError, SongGrabError
from songgrab.models import MediaFormat, VideoMetadata
from songgrab.providers.factory import get_search_provider
from songgrab.schemas import (
    DownloadData,
    DownloadRequest,
    DownloadResponse,
    ErrorResponse,
    SearchRequest,
    SearchUrlRequest,
    VideoData,
    VideoResponse,
)
from songgrab.search import SearchResolver
from songgrab.utils.logging import configure_json_logging, get_logger


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_json_logging(settings.log_level)
    if not settings.converter_api_key:
        logger.warning("CONVERTER_API_KEY is not set; downloads will be rejected")
    yield


app = FastAPI(title="SongGrab API", version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origins.split(",")],
    allow_credentials=False,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

ERROR_RESPONSES: Dict[Union[int, str], Dict[str, Any]] = {
    code: {"model": ErrorResponse} for code in (400, 404, 405, 499, 502, 503, 504)
}


def _error(status_code: int, message: str, headers: Any = None) -> JSONResponse:
    body = ErrorResponse(error=message).model_dump()
    return JSONResponse(body, status_code=status_code, headers=headers)


@app.exception_handler(SongGrabError)
async def handle_songgrab_error(request: Request, exc: SongGrabError) -> JSONResponse:
    log = logger.warning if exc.status_code >= 500 else logger.info
    log("%s %s failed: %s", request.method, request.url.path, exc.message, extra={"error_type": type(exc).__name__})
    return _error(exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = "Method not allowed" if exc.status_code == 405 else str(exc.detail)
    return _error(exc.status_code, message, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    field = ".".join(str(part) for part in errors[0].get("loc", ())[1:]) if errors else ""
    return _error(400, f"Invalid request field: {field}" if field else "Invalid request body")


def get_conversion_client() -> Iterator[ConversionClient]:
    client = ConversionClient.from_settings()
    try:
        yield client
    finally:
        client.close()


def get_search_resolver() -> SearchResolver:
    return SearchResolver(get_search_provider())


async def _run_until_disconnect(request: Request, work: Awaitable[Any]) -> Any:
    """Await ``work`` as a task, cancelling it on client disconnect or deadline."""
    task = asyncio.ensure_future(work)
    loop = asyncio.get_running_loop()
    deadline = loop.time() + settings.download_deadline_seconds
    try:
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise PollTimeoutError()
            done, _ = await asyncio.wait({task}, timeout=min(settings.disconnect_check_seconds, remaining))
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info("client disconnected, cancelling %s", request.url.path)
                raise ClientDisconnectedError()
    finally:
        if not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError, SongGrabError):
                await task


def _video_response(meta: VideoMetadata) -> VideoResponse:
    return VideoResponse(
        data=VideoData(
            title=meta.title,
            thumbnail=meta.thumbnail_url,
            duration=meta.duration,
            url=meta.canonical_url,
            videoId=meta.video_id,
            author=meta.author,
        )
    )


@app.options("/api/{path:path}", include_in_schema=False)
def preflight(path: str) -> Response:
    # answers OPTIONS without the Origin headers CORSMiddleware needs
    return Response(status_code=200, headers=CORS_HEADERS)


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.post("/api/search", response_model=VideoResponse, responses=ERROR_RESPONSES)
async def search(req: SearchRequest, resolver: SearchResolver = Depends(get_search_resolver)) -> VideoResponse:
    meta = await resolver.resolve_by_text(req.query)
    logger.info("search found %s", meta.title, extra={"video_id": meta.video_id})
    return _video_response(meta)


@app.post("/api/search-url", response_model=VideoResponse, responses=ERROR_RESPONSES)
async def search_url(req: SearchUrlRequest, resolver: SearchResolver = Depends(get_search_resolver)) -> VideoResponse:
    meta = await resolver.resolve_by_url(req.url)
    logger.info("search-url found %s", meta.title, extra={"video_id": meta.video_id})
    return _video_response(meta)


@app.post("/api/download", response_model=DownloadResponse, responses=ERROR_RESPONSES)
async def download(
    req: DownloadRequest,
    request: Request,
    client: ConversionClient = Depends(get_conversion_client),
) -> DownloadResponse:
    logger.info("download requested", extra={"url": req.url, "format": req.format})
    result = await _run_until_disconnect(request, client.download(req.url, req.format))
    logger.info("download ready %s", result.title, extra={"url": req.url, "format": req.format})
    return DownloadResponse(
        data=DownloadData(
            title=result.title,
            downloadUrl=result.download_url,
            thumbnail=result.thumbnail,
            videoUrl=result.source_url,
            format=result.format.value,
            audioUrl=result.download_url if result.format is MediaFormat.AUDIO else None,
        )
    )


if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run("songgrab.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
