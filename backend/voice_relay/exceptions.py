"""Error types raised while relaying a transcription request."""
from __future__ import annotations


class RelayError(Exception):
    """Base class for errors that map onto a client-facing HTTP response."""

    status_code = 500
    default_message = "Server error."

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.cause = cause
        super().__init__(self.message)


class ConfigurationError(RelayError):
    """Raised when the deployment lacks required configuration."""

    status_code = 500


class ClientInputError(RelayError):
    """Raised when the caller sent a request the relay cannot use."""

    status_code = 400
    default_message = "Bad request."


class PayloadTooLargeError(ClientInputError):
    default_message = "Payload too large"


class InvalidJSONError(ClientInputError):
    default_message = "Invalid JSON"


class UpstreamError(RelayError):
    """Raised when the transcription provider rejects or garbles a request."""

    status_code = 502
    default_message = "Transcription failed."


class TransportError(RelayError):
    """Raised on network failures while talking to the client or provider."""

    status_code = 502
    default_message = "Transcription failed."


class ClientDisconnectedError(TransportError):
    """Raised when the caller hangs up before the response is ready."""

    status_code = 499
    default_message = "Client closed request."
