"""Engine exception definitions.

Custom exception hierarchy for stream, protocol, and caller-misuse failures.
"""


class EngineError(Exception):
    """Base exception for narration engine operations."""

    pass


class TransportError(EngineError):
    """Stream could not be opened or was interrupted mid-flight.

    Attributes:
        is_retryable: Whether opening the stream again may succeed.
        status_code: HTTP status code if applicable.
    """

    def __init__(
        self,
        message: str,
        is_retryable: bool = False,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.is_retryable = is_retryable
        self.status_code = status_code


class StreamTimeoutError(TransportError):
    """No data arrived within the configured idle timeout.

    Attributes:
        timeout: Seconds waited before giving up.
    """

    def __init__(self, message: str = "Stream stalled", timeout: float | None = None) -> None:
        super().__init__(message, is_retryable=True)
        self.timeout = timeout


class MalformedEventError(EngineError):
    """A single stream line could not be decoded.

    Never surfaced to callers; the reader logs it and moves on.

    Attributes:
        raw_line: The line that failed to parse.
    """

    def __init__(self, message: str, raw_line: str | None = None) -> None:
        super().__init__(message)
        self.raw_line = raw_line


class ProtocolError(EngineError):
    """The collaborator sent an `error` event."""

    pass


class StateError(EngineError):
    """Caller misuse, e.g. seeking a destroyed timeline or double send."""

    pass
