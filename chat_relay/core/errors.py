# chat_relay/core/errors.py

from typing import Optional
from fastapi.responses import JSONResponse

from chat_relay.models.chat_models import ErrorBody


class RelayError(Exception):
    """Base error with the HTTP status and body it maps to."""

    http_status = 500

    def __init__(self, message: str, details: Optional[str] = None, http_status: Optional[int] = None):
        self.message = message
        self.details = details
        if http_status is not None:
            self.http_status = http_status
        super().__init__(message)

    def to_response(self) -> JSONResponse:
        body = ErrorBody(error=self.message, details=self.details)
        return JSONResponse(status_code=self.http_status, content=body.model_dump(exclude_none=True))


class ClientInputError(RelayError):
    """The request cannot be sent upstream as it stands (e.g. missing API key)."""

    http_status = 400


class UpstreamError(RelayError):
    """The upstream answered with a non-success status or without a body."""


class ProviderError(RelayError):
    """The native provider call failed or did not return a stream."""
