from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from functools import lru_cache
from typing import List, Optional
import json

import boto3

from shared_utils.constants import Defaults, ModelIDs, LogScope
from shared_utils.logging_utils import get_scoped_logger

logger = get_scoped_logger(LogScope.CONFIG)

_ENVIRONMENT_ALIASES = {
    "dev": "development",
    "stage": "staging",
    "prod": "production",
}


def get_secret_from_aws(secret_name: str, region: str = Defaults.AWS_REGION) -> str:
    """Fetch the Gemini API key from AWS Secrets Manager.

    Args:
        secret_name: Name of the secret in Secrets Manager
        region: AWS region

    Returns:
        Secret value or empty string if fetch fails
    """
    try:
        client = boto3.client("secretsmanager", region_name=region)
        response = client.get_secret_value(SecretId=secret_name)
        if "SecretString" in response:
            secret = json.loads(response["SecretString"])
            return secret.get("gemini_api_key", "")
        return ""
    except Exception as e:
        logger.warning("secret_fetch_failed", secret_name=secret_name, error=str(e))
        return ""


class Settings(BaseSettings):
    """Application configuration with environment variable precedence.

    Precedence: 1) Environment Variables > 2) .env file > 3) Class defaults

    A Settings instance is built once at process start and handed to the
    pipeline; nothing reads configuration from ambient state after that.
    """
    # Application metadata
    app_name: str = "Voice Memo Intelligence"
    app_version: str = "2.0.0"
    app_description: str = "Transcription and structured summaries for recorded calls"
    environment: str = "development"
    log_level: str = Defaults.LOG_LEVEL

    # API
    api_port: int = 8000

    # Completion endpoint
    gemini_api_key: Optional[str] = None
    gemini_secret_name: Optional[str] = None
    gemini_model: str = ModelIDs.GEMINI_FLASH
    gemini_api_base: str = Defaults.GEMINI_API_BASE
    max_output_tokens: int = Defaults.MAX_OUTPUT_TOKENS
    request_timeout: float = Defaults.REQUEST_TIMEOUT
    aws_region: str = Defaults.AWS_REGION

    # History webhook (empty -> in-memory store)
    history_webhook_url: Optional[str] = None

    # Audio chunking
    audio_chunk_seconds: float = Defaults.AUDIO_CHUNK_SECONDS
    audio_max_chunk_bytes: int = Defaults.AUDIO_MAX_CHUNK_BYTES
    audio_target_sample_rate: int = Defaults.AUDIO_TARGET_SAMPLE_RATE
    audio_mp3_compression_level: float = Defaults.AUDIO_MP3_COMPRESSION_LEVEL

    # Summarization
    text_chunk_chars: int = Defaults.TEXT_CHUNK_CHARS

    # Speakers
    operator_roster: str = Defaults.OPERATOR_ROSTER  # comma-separated names
    customer_label: str = Defaults.CUSTOMER_LABEL

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is recognized (short aliases accepted)."""
        value = _ENVIRONMENT_ALIASES.get(v.lower(), v.lower())
        valid_envs = {"development", "staging", "production"}
        if value not in valid_envs:
            raise ValueError(f"environment must be one of {valid_envs}, got {v}")
        return value

    @field_validator('audio_chunk_seconds', 'request_timeout')
    @classmethod
    def validate_positive_float(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("value must be > 0")
        return v

    @field_validator('audio_max_chunk_bytes', 'text_chunk_chars', 'max_output_tokens',
                     'audio_target_sample_rate')
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("value must be > 0")
        return v

    @property
    def roster(self) -> List[str]:
        """Known operator names, in configured order."""
        return [name.strip() for name in self.operator_roster.split(",") if name.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Load and cache application settings.

    If GEMINI_SECRET_NAME is provided and no key is set directly, fetches the
    API key from AWS Secrets Manager.

    Returns:
        Validated Settings instance
    """
    settings = Settings()

    if not settings.gemini_api_key and settings.gemini_secret_name:
        secret_key = get_secret_from_aws(settings.gemini_secret_name, settings.aws_region)
        if secret_key:
            settings.gemini_api_key = secret_key
            logger.debug("fetched_gemini_key_from_secrets_manager")

    logger.info(
        "configuration_loaded",
        environment=settings.environment,
        gemini_model=settings.gemini_model,
        api_key_configured=bool(settings.gemini_api_key),
        history_webhook_configured=bool(settings.history_webhook_url),
        operator_roster=settings.roster,
    )

    return settings
