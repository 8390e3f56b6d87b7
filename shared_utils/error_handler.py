"""
Structured error handling and response formatting.
Provides consistent error responses with error codes and context.

Analysis failures fall into three groups:
    fatal       -- AudioDecodeError, ChunkTooLargeError, TranscriptionError,
                   ResponseParseError, ConfigurationError (missing API key)
    degraded    -- a dropped extraction chunk, logged only
    best-effort -- history save failures, reported as SaveResult(status="error")
"""

from typing import Optional, Dict, Any
import logging

from shared_utils.constants import ErrorCode, LogScope
from shared_utils.logging_utils import get_scoped_logger


class AppException(Exception):
    """Base exception for application errors."""

    def __init__(
        self,
        error_code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        http_status: int = 500
    ):
        self.error_code = error_code
        self.message = message
        self.context = context or {}
        self.http_status = http_status
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to response dictionary."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "context": self.context
            }
        }


class ValidationError(AppException):
    """Validation/input error."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            error_code=ErrorCode.INVALID_INPUT.value,
            message=message,
            context=context,
            http_status=400
        )


class ConfigurationError(AppException):
    """Configuration error."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            error_code=ErrorCode.INVALID_CONFIG.value,
            message=message,
            context=context,
            http_status=500
        )


class ModelError(AppException):
    """Model availability or invocation error (non-2xx from the completion endpoint)."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = {**(context or {})}
        if status_code is not None:
            ctx["status_code"] = status_code
        self.status_code = status_code
        super().__init__(
            error_code=ErrorCode.MODEL_NOT_AVAILABLE.value,
            message=message,
            context=ctx,
            http_status=503
        )


class ExternalServiceError(AppException):
    """External service unavailable error."""

    def __init__(self, service: str, message: str, context: Optional[Dict[str, Any]] = None):
        full_message = f"{service} unavailable: {message}"
        super().__init__(
            error_code=ErrorCode.EXTERNAL_SERVICE_ERROR.value,
            message=full_message,
            context={**(context or {}), "service": service},
            http_status=503
        )


class AnalysisError(AppException):
    """Fatal analysis pipeline error. Subclasses name the failing stage."""

    def __init__(
        self,
        message: str,
        error_code: str = ErrorCode.ANALYSIS_FAILED.value,
        context: Optional[Dict[str, Any]] = None,
        http_status: int = 500,
    ):
        super().__init__(
            error_code=error_code,
            message=message,
            context=context,
            http_status=http_status,
        )


class AudioDecodeError(AnalysisError):
    """The source container/codec could not be decoded."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.AUDIO_DECODE_FAILED.value,
            context=context,
            http_status=400,
        )


class ChunkTooLargeError(AnalysisError):
    """An encoded chunk still exceeds the upload byte budget."""

    def __init__(self, size_bytes: int, max_bytes: int, chunk_index: int):
        super().__init__(
            message=(
                f"Audio chunk {chunk_index} is {size_bytes} bytes after compression "
                f"(limit {max_bytes} bytes)"
            ),
            error_code=ErrorCode.CHUNK_TOO_LARGE.value,
            context={
                "size_bytes": size_bytes,
                "max_bytes": max_bytes,
                "chunk_index": chunk_index,
            },
            http_status=413,
        )


class TranscriptionError(AnalysisError):
    """A transcription call failed. Keeps the transcript of finished chunks."""

    def __init__(
        self,
        message: str,
        partial_transcript: str = "",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.partial_transcript = partial_transcript
        super().__init__(
            message=message,
            error_code=ErrorCode.TRANSCRIPTION_FAILED.value,
            context=context,
            http_status=502,
        )


class ResponseParseError(AnalysisError):
    """A completion could not be parsed as JSON after every repair step."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.PARSING_FAILED.value,
            context=context,
            http_status=502,
        )


def log_exception(
    exc: Exception,
    scope: str = LogScope.ERROR_HANDLER,
    logger: Optional[logging.Logger] = None
) -> None:
    """Log an exception with its error code and cause.

    A TranscriptionError also reports how much transcript survived.
    """
    if logger is None:
        logger = get_scoped_logger(scope)

    cause = exc.__cause__
    fields: Dict[str, Any] = {}
    if cause is not None:
        fields["cause_type"] = type(cause).__name__

    if isinstance(exc, AppException):
        if isinstance(exc, TranscriptionError):
            fields["partial_chars"] = len(exc.partial_transcript)
        logger.error(
            "app_exception",
            error_code=exc.error_code,
            message=exc.message,
            http_status=exc.http_status,
            context=exc.context,
            **fields
        )
    else:
        logger.error(
            "unexpected_exception",
            error_type=type(exc).__name__,
            message=str(exc),
            exc_info=True,
            **fields
        )


def handle_error(
    exc: Exception,
    scope: str = LogScope.ERROR_HANDLER,
    default_error_code: str = ErrorCode.ANALYSIS_FAILED.value
) -> Dict[str, Any]:
    """Handle exception and return structured error response.

    Args:
        exc: Exception to handle
        scope: Log scope
        default_error_code: Default error code for non-AppException errors

    Returns:
        Structured error response dictionary
    """
    log_exception(exc, scope)

    if isinstance(exc, AppException):
        return exc.to_dict()
    return {
        "error": {
            "code": default_error_code,
            "message": f"An unexpected error occurred: {str(exc)}",
            "context": {"error_type": type(exc).__name__}
        }
    }
