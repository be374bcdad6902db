import asyncio

import pytest
from fastapi.testclient import TestClient

from conftest import FakeConverterSession, RecordingSleep, accepted
from songgrab import main as main_module
from songgrab.conversion import ConversionClient
from songgrab.errors import ClientDisconnectedError, InvalidUrlError, NotFoundError, ProviderUnavailableError
from songgrab.models import VideoMetadata
from songgrab.search import SearchResolver
from songgrab.utils.text import extract_video_id


META = VideoMetadata(
    title="Never Gonna Give You Up",
    thumbnail_url="https://i.ytimg.com/vi/dQw4w9WgXcQ/hqdefault.jpg",
    duration_seconds=213,
    canonical_url="https://www.youtube.com/watch?v=dQw4w9WgXcQ",
    video_id="dQw4w9WgXcQ",
    author="Rick Astley",
)


class StubResolver(SearchResolver):
    def __init__(self, error=None):
        self.error = error

    async def resolve_by_text(self, query):
        if self.error:
            raise self.error
        return META

    async def resolve_by_url(self, url):
        # keep the real local URL validation
        if not extract_video_id(url):
            raise InvalidUrlError()
        if self.error:
            raise self.error
        return META


def _build_client(resolver=None, session=None) -> TestClient:
    app = main_module.app
    app.dependency_overrides.clear()
    if resolver is not None:
        app.dependency_overrides[main_module.get_search_resolver] = lambda: resolver
    if session is not None:
        app.dependency_overrides[main_module.get_conversion_client] = lambda: ConversionClient(
            api_key="test-key",
            base_url="https://converter.example/ajax",
            session=session,
            sleep=RecordingSleep(),
        )
    return TestClient(app)


@pytest.fixture(autouse=True)
def _clear_overrides():
    yield
    main_module.app.dependency_overrides.clear()


def test_search_returns_video_envelope():
    client = _build_client(resolver=StubResolver())
    resp = client.post("/api/search", json={"query": "rick astley"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["data"] == {
        "title": META.title,
        "thumbnail": META.thumbnail_url,
        "duration": "3:33",
        "url": META.canonical_url,
        "videoId": "dQw4w9WgXcQ",
        "author": "Rick Astley",
    }


def test_search_url_invalid_vs_not_found():
    client = _build_client(resolver=StubResolver(error=NotFoundError()))

    invalid = client.post("/api/search-url", json={"url": "https://vimeo.com/1"})
    missing = client.post("/api/search-url", json={"url": "https://youtu.be/dQw4w9WgXcQ"})

    assert invalid.status_code == 400
    assert invalid.json() == {"success": False, "error": "Invalid YouTube URL"}
    assert missing.status_code == 404
    assert missing.json()["success"] is False


def test_empty_url_is_bad_request():
    client = _build_client(resolver=StubResolver())
    resp = client.post("/api/search-url", json={"url": ""})

    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_provider_outage_is_503():
    client = _build_client(resolver=StubResolver(error=ProviderUnavailableError()))
    resp = client.post("/api/search", json={"query": "x"})

    assert resp.status_code == 503


def test_download_mp3_includes_preview_url():
    session = FakeConverterSession(
        accepted("job-9", "Never Gonna Give You Up"),
        [{"success": 1, "progress": 400}, {"success": 1, "progress": 1000, "download_url": "https://cdn.example/x.mp3"}],
    )
    client = _build_client(session=session)
    resp = client.post("/api/download", json={"url": META.canonical_url})

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["title"] == "Never Gonna Give You Up"
    assert data["downloadUrl"] == "https://cdn.example/x.mp3"
    assert data["audioUrl"] == "https://cdn.example/x.mp3"
    assert data["thumbnail"] == "https://img.example/job-9.jpg"
    assert data["videoUrl"] == META.canonical_url
    assert data["format"] == "mp3"


def test_download_mp4_has_no_preview_url():
    session = FakeConverterSession(accepted(), [{"success": 1, "progress": 1000, "download_url": "https://cdn.example/x.mp4"}])
    client = _build_client(session=session)
    resp = client.post("/api/download", json={"url": META.canonical_url, "format": "mp4"})

    assert resp.status_code == 200
    assert resp.json()["data"]["audioUrl"] is None
    assert session.calls[0]["params"]["format"] == "mp4"


def test_download_rejects_unknown_format():
    session = FakeConverterSession(accepted())
    client = _build_client(session=session)
    resp = client.post("/api/download", json={"url": META.canonical_url, "format": "wav"})

    assert resp.status_code == 400
    assert session.calls == []


def test_download_timeout_maps_to_504():
    session = FakeConverterSession(accepted(), [{"success": 1, "progress": 1}])
    client = _build_client(session=session)
    resp = client.post("/api/download", json={"url": META.canonical_url})

    assert resp.status_code == 504
    assert resp.json()["success"] is False
    assert session.progress_calls == 60


def test_download_rejected_submission_maps_to_502():
    session = FakeConverterSession({"success": False})
    client = _build_client(session=session)
    resp = client.post("/api/download", json={"url": META.canonical_url})

    assert resp.status_code == 502
    assert resp.json()["error"] == "Failed to fetch video details"


def test_get_is_method_not_allowed():
    client = _build_client(resolver=StubResolver())
    resp = client.get("/api/download")

    assert resp.status_code == 405
    assert resp.json() == {"success": False, "error": "Method not allowed"}


def test_preflight_gets_cors_headers():
    client = _build_client(resolver=StubResolver())
    resp = client.options(
        "/api/search",
        headers={
            "Origin": "https://songs.example",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )

    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "*"
    assert "POST" in resp.headers["access-control-allow-methods"]


def test_health():
    assert _build_client().get("/health").json() == {"status": "ok"}


def test_download_deadline_cancels_polling(monkeypatch):
    monkeypatch.setattr(main_module.settings, "download_deadline_seconds", 0.2)
    monkeypatch.setattr(main_module.settings, "disconnect_check_seconds", 0.05)
    session = FakeConverterSession(accepted(), [{"success": 1, "progress": 1}])
    main_module.app.dependency_overrides[main_module.get_conversion_client] = lambda: ConversionClient(
        api_key="test-key",
        base_url="https://converter.example/ajax",
        poll_interval=0.05,
        session=session,
    )
    resp = TestClient(main_module.app).post("/api/download", json={"url": META.canonical_url})

    assert resp.status_code == 504
    assert 1 <= session.progress_calls < 60


def test_client_disconnect_cancels_work(monkeypatch):
    monkeypatch.setattr(main_module.settings, "disconnect_check_seconds", 0.01)

    class GoneRequest:
        class url:
            path = "/api/download"

        async def is_disconnected(self):
            return True

    cancelled = []

    async def slow():
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.append(True)
            raise

    async def run():
        with pytest.raises(ClientDisconnectedError):
            await main_module._run_until_disconnect(GoneRequest(), slow())

    asyncio.run(run())
    assert cancelled == [True]


@pytest.mark.parametrize("path", ["/api/download", "/api/search", "/api/search-url"])
def test_bare_options_is_answered(path):
    resp = _build_client().options(path)

    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "*"
    assert resp.headers["access-control-allow-methods"] == "POST, OPTIONS"
    assert resp.headers["access-control-allow-headers"] == "Content-Type"


def test_error_envelope_is_documented():
    schema = main_module.app.openapi()
    responses = schema["paths"]["/api/download"]["post"]["responses"]

    assert {"400", "502", "503", "504"} <= set(responses)
    assert responses["504"]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorResponse")
