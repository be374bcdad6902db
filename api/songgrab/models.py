from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from songgrab.utils.text import format_duration


class MediaFormat(str, Enum):
    """Output kinds accepted by the conversion provider; values are sent as-is."""

    AUDIO = "mp3"
    VIDEO = "mp4"


@dataclass(frozen=True)
class ConversionRequest:
    source_url: str
    format: MediaFormat


# --- job states -------------------------------------------------------------


@dataclass(frozen=True)
class Submitted:
    terminal = False


@dataclass(frozen=True)
class Polling:
    attempt: int = 0
    progress: int = 0
    terminal = False


@dataclass(frozen=True)
class Completed:
    final_url: str
    title: str
    thumbnail_url: Optional[str] = None
    terminal = True


@dataclass(frozen=True)
class Failed:
    reason: str
    terminal = True


@dataclass(frozen=True)
class TimedOut:
    attempts: int
    terminal = True


JobState = Union[Submitted, Polling, Completed, Failed, TimedOut]


@dataclass
class ConversionJob:
    job_id: str
    request: ConversionRequest
    title: str = ""
    thumbnail_url: Optional[str] = None
    state: JobState = field(default_factory=Submitted)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def source_url(self) -> str:
        return self.request.source_url

    @property
    def format(self) -> MediaFormat:
        return self.request.format


@dataclass(frozen=True)
class DownloadResult:
    title: str
    download_url: str
    thumbnail: Optional[str]
    source_url: str
    format: MediaFormat


@dataclass(frozen=True)
class VideoMetadata:
    title: str
    thumbnail_url: Optional[str]
    duration_seconds: int
    canonical_url: str
    video_id: str
    author: str = "Unknown"

    @property
    def duration(self) -> str:
        return format_duration(self.duration_seconds)
