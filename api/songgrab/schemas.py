from pydantic import BaseModel, Field
from typing import Optional, Literal


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)


class SearchUrlRequest(BaseModel):
    url: str = Field(min_length=1)


class DownloadRequest(BaseModel):
    url: str = Field(min_length=1)
    format: Literal["mp3", "mp4"] = "mp3"


class VideoData(BaseModel):
    title: str
    thumbnail: Optional[str] = None
    duration: str
    url: str
    videoId: str
    author: str


class DownloadData(BaseModel):
    title: str
    downloadUrl: str
    thumbnail: Optional[str] = None
    videoUrl: str
    format: Literal["mp3", "mp4"]
    audioUrl: Optional[str] = None


class VideoResponse(BaseModel):
    success: bool = True
    data: VideoData


class DownloadResponse(BaseModel):
    success: bool = True
    data: DownloadData


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
