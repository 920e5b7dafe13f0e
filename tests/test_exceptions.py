"""Tests for engine exceptions."""

from narration_engine.exceptions import (
    EngineError,
    MalformedEventError,
    ProtocolError,
    StateError,
    StreamTimeoutError,
    TransportError,
)


class TestEngineError:
    """Tests for base EngineError."""

    def test_engine_error_is_exception(self):
        """Test that EngineError is an Exception."""
        assert isinstance(EngineError("x"), Exception)

    def test_subclasses(self):
        """Test every engine error derives from EngineError."""
        for error in (
            TransportError("t"),
            StreamTimeoutError(),
            MalformedEventError("m"),
            ProtocolError("p"),
            StateError("s"),
        ):
            assert isinstance(error, EngineError)


class TestTransportError:
    """Tests for TransportError."""

    def test_defaults(self):
        """Test default transport error."""
        error = TransportError("Connection refused")
        assert str(error) == "Connection refused"
        assert error.is_retryable is False
        assert error.status_code is None

    def test_with_status_code(self):
        """Test transport error with status code."""
        error = TransportError("Server error", is_retryable=True, status_code=503)
        assert error.is_retryable is True
        assert error.status_code == 503


class TestStreamTimeoutError:
    """Tests for StreamTimeoutError."""

    def test_defaults(self):
        """Test a timeout is a retryable transport error."""
        error = StreamTimeoutError()
        assert str(error) == "Stream stalled"
        assert isinstance(error, TransportError)
        assert error.is_retryable is True
        assert error.timeout is None

    def test_with_timeout(self):
        """Test the configured timeout is kept."""
        assert StreamTimeoutError("No data for 5s", timeout=5.0).timeout == 5.0


class TestMalformedEventError:
    """Tests for MalformedEventError."""

    def test_raw_line(self):
        """Test the offending line is kept."""
        error = MalformedEventError("Invalid JSON", raw_line="data: {")
        assert error.raw_line == "data: {"
