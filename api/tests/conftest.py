from typing import Any, Dict, List, Optional

import pytest
import requests


class FakeResponse:
    def __init__(self, payload: Any, status_code: int = 200) -> None:
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self) -> Any:
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeConverterSession:
    """Scripted stand-in for requests.Session talking to the conversion API.

    ``progress`` is consumed in order; the last entry repeats forever.
    """

    def __init__(self, submit: Dict[str, Any], progress: Optional[List[Dict[str, Any]]] = None) -> None:
        self.submit_payload = submit
        self.progress = list(progress or [])
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    @property
    def progress_calls(self) -> int:
        return sum(1 for call in self.calls if call["url"].endswith("/progress.php"))

    def get(self, url: str, params: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None) -> FakeResponse:
        self.calls.append({"url": url, "params": dict(params or {}), "timeout": timeout})
        if url.endswith("/download.php"):
            return FakeResponse(self.submit_payload)
        if len(self.progress) > 1:
            return FakeResponse(self.progress.pop(0))
        return FakeResponse(self.progress[0] if self.progress else {"success": 1, "progress": 0})

    def close(self) -> None:
        self.closed = True


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def accepted(job_id: str = "job-1", title: str = "Song Title") -> Dict[str, Any]:
    return {"success": True, "id": job_id, "title": title, "info": {"image": f"https://img.example/{job_id}.jpg"}}


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()
