from __future__ import annotations


class ListenifyError(Exception):
    """Base error carrying the HTTP status the transport layer should answer with."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"error": self.message}


class MissingInputError(ListenifyError):
    status_code = 400


class InvalidInputError(ListenifyError):
    status_code = 400


class NotAuthenticatedError(ListenifyError):
    status_code = 401

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class UpstreamServiceError(ListenifyError):
    """Spotify or the LLM provider failed; keeps the upstream status when it is an HTTP error."""

    status_code = 502


class ChatUnavailableError(ListenifyError):
    status_code = 503
