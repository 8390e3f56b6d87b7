"""
Constants management.
Centralized configuration for all magic values, model IDs, and defaults.
"""

from enum import Enum
from typing import Final, Tuple


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    # Short aliases accepted by Settings
    DEV = "dev"
    STAGE = "stage"
    PROD = "prod"


class LLMProvider(str, Enum):
    """Supported completion providers."""
    GEMINI = "gemini"


# Model IDs
class ModelIDs:
    """Centralized model identifiers."""
    GEMINI_FLASH: Final[str] = "gemini-1.5-flash"


# Default values
class Defaults:
    """Defaults shared by config, services and clients."""
    GEMINI_API_BASE: Final[str] = "https://generativelanguage.googleapis.com/v1beta"
    MAX_OUTPUT_TOKENS: Final[int] = 8192
    REQUEST_TIMEOUT: Final[float] = 300.0  # long audio chunks take minutes
    LOG_LEVEL: Final[str] = "INFO"
    AWS_REGION: Final[str] = "ap-northeast-1"

    # Audio chunking
    AUDIO_CHUNK_SECONDS: Final[float] = 600.0
    AUDIO_MAX_CHUNK_BYTES: Final[int] = 4 * 1024 * 1024
    AUDIO_TARGET_SAMPLE_RATE: Final[int] = 16000
    AUDIO_MP3_COMPRESSION_LEVEL: Final[float] = 0.9
    AUDIO_MIME_TYPE: Final[str] = "audio/mpeg"
    DURATION_EPSILON: Final[float] = 1e-6

    # Text chunking
    TEXT_CHUNK_CHARS: Final[int] = 12000

    # Speakers
    OPERATOR_ROSTER: Final[str] = "Kaneko"
    CUSTOMER_LABEL: Final[str] = "Customer"

    ALLOWED_AUDIO_EXTENSIONS: Final[Tuple[str, ...]] = (
        "mp3", "wav", "m4a", "flac", "ogg", "webm", "aac",
    )


class SentimentLabel(str, Enum):
    """Overall conversation tone."""
    POSITIVE = "Positive"
    NEUTRAL = "Neutral"
    NEGATIVE = "Negative"


class SentimentThresholds:
    """Score boundaries for sentiment classification (inclusive)."""
    POSITIVE: Final[float] = 0.6
    NEGATIVE: Final[float] = 0.4


# Summary template. Order is part of the contract with the synthesis prompt
# and with HistoryRecord field extraction.
class SummaryLabels:
    """Bracketed labels used for the structured summary lines."""
    ORGANIZATION: Final[str] = "[Organization]"
    CONTACT: Final[str] = "[Contact]"
    DATETIME: Final[str] = "[Date/Time]"
    DURATION: Final[str] = "[Duration]"
    FILE: Final[str] = "[File]"
    PRODUCTS: Final[str] = "[Products]"
    PURPOSE: Final[str] = "[Purpose]"
    BACKGROUND: Final[str] = "[Background]"
    ACTIONS_TAKEN: Final[str] = "[Actions Taken]"
    NEXT_STEPS: Final[str] = "[Next Steps]"

    ORDER: Final[Tuple[str, ...]] = (
        ORGANIZATION,
        CONTACT,
        DATETIME,
        DURATION,
        FILE,
        PRODUCTS,
        PURPOSE,
        BACKGROUND,
        ACTIONS_TAKEN,
        NEXT_STEPS,
    )


# Logging scopes
class LogScope:
    """Standardized logging scope names."""
    CONFIG = "config_loader"
    API = "api"
    PARSER = "response_parser"
    VALIDATION = "validation"
    ERROR_HANDLER = "error_handler"
    PROVIDER = "provider"
    AUDIO = "audio_chunker"
    TRANSCRIPTION = "transcription"
    SUMMARIZATION = "summarization"
    ANALYSIS = "analysis"
    WORKER = "worker"
    ADAPTER = "adapter"


# API endpoints and paths
class APIEndpoints:
    """API route definitions."""
    HEALTH = "/health"
    ANALYZE = "/api/v1/analyze"
    HISTORY = "/api/v1/history"
    HISTORY_SUMMARY = "/api/v1/history/summary"


# Error codes
class ErrorCode(str, Enum):
    """Standardized error codes for consistency."""
    INVALID_CONFIG = "INVALID_CONFIG"
    INVALID_INPUT = "INVALID_INPUT"
    MODEL_NOT_AVAILABLE = "MODEL_NOT_AVAILABLE"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    AUDIO_DECODE_FAILED = "AUDIO_DECODE_FAILED"
    CHUNK_TOO_LARGE = "CHUNK_TOO_LARGE"
    TRANSCRIPTION_FAILED = "TRANSCRIPTION_FAILED"
    PARSING_FAILED = "PARSING_FAILED"
    ANALYSIS_FAILED = "ANALYSIS_FAILED"
