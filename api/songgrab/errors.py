class SongGrabError(Exception):
    """Base class for errors surfaced to API callers.

    ``status_code`` is the HTTP status the API answers with and ``message``
    the text placed in the error envelope.
    """

    status_code = 500
    default_message = "Unexpected error"

    def __init__(self, message: str = "") -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidUrlError(SongGrabError):
    status_code = 400
    default_message = "Invalid YouTube URL"


class InvalidQueryError(SongGrabError):
    status_code = 400
    default_message = "Search query must not be empty"


class NotFoundError(SongGrabError):
    status_code = 404
    default_message = "Video not found"


class JobStateError(SongGrabError):
    status_code = 409
    default_message = "Job is not in a pollable state"


class SubmissionError(SongGrabError):
    status_code = 502
    default_message = "Conversion request was rejected"


class ConversionError(SongGrabError):
    status_code = 502
    default_message = "Conversion failed"


class ProviderUnavailableError(SongGrabError):
    status_code = 503
    default_message = "Upstream provider is unavailable"


class PollTimeoutError(SongGrabError, TimeoutError):
    status_code = 504
    default_message = "Timeout: conversion took too long"


class ClientDisconnectedError(SongGrabError):
    status_code = 499
    default_message = "Client closed the request"
