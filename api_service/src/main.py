"""
FastAPI backend for Voice Memo Intelligence.

Endpoints:
    GET  /health                     - Health check
    POST /api/v1/analyze             - Analyse an uploaded recording
    GET  /api/v1/history             - List saved analyses
    POST /api/v1/history             - Save or update a flat history record
    PUT  /api/v1/history/summary     - Edit the summary lines of a result and re-save
"""

import os
import tempfile
from typing import List

from fastapi import FastAPI, UploadFile, File, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
import uvicorn

from domain.models import AnalysisResult, HistoryRecord
from shared_utils.config_loader import get_settings
from shared_utils.logging_utils import ContextualLogger
from shared_utils.constants import Defaults, LogScope, APIEndpoints
from shared_utils.error_handler import (
    AppException, ValidationError, handle_error
)
from shared_utils.validation import InputValidator
from shared_utils.di_container import get_di_container


# ---------------------------------------------------------------------------
# Application bootstrap
# ---------------------------------------------------------------------------

settings = get_settings()
logger = ContextualLogger(scope=LogScope.API)

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=settings.app_description,
)

limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

logger.info(
    "api_initialized",
    environment=settings.environment,
    api_key_configured=bool(settings.gemini_api_key),
)


class SummaryUpdateRequest(BaseModel):
    """Body of PUT /api/v1/history/summary."""
    result: AnalysisResult
    summary: List[str]


def _error_response(e: Exception, event: str) -> JSONResponse:
    if isinstance(e, AppException):
        logger.warning(event, error_code=e.error_code, message=e.message)
        return JSONResponse(status_code=e.http_status, content=e.to_dict())
    error_response = handle_error(e, scope=LogScope.API)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response,
    )


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@app.get(APIEndpoints.HEALTH)
def health_check() -> dict:
    """Health check endpoint."""
    logger.debug("health_check_requested")
    return {
        "status": "healthy",
        "environment": settings.environment,
        "model": settings.gemini_model,
        "api_key_configured": bool(settings.gemini_api_key),
        "history_webhook_configured": bool(settings.history_webhook_url),
    }


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

@app.post(APIEndpoints.ANALYZE)
@limiter.limit("10/minute")
def analyze_recording(
    request: Request,
    file: UploadFile = File(...),
    save: bool = False,
) -> JSONResponse:
    """Run the full pipeline on an uploaded recording.

    The upload is spooled to a temporary file; the original filename is kept
    for the date/time and ``[File]`` fields. Blocking: the response is sent
    once the analysis is complete.
    """
    tmp_path = ""
    try:
        filename = InputValidator.sanitize_filename(file.filename or "")
        InputValidator.validate_file_extension(filename, Defaults.ALLOWED_AUDIO_EXTENSIONS)
        extension = filename.rsplit(".", 1)[1].lower()

        content = file.file.read()
        if not content:
            raise ValidationError("File is empty", context={"filename": filename})

        logger.info("analyze_requested", filename=filename, size_bytes=len(content), save=save)

        with tempfile.NamedTemporaryFile(suffix=f".{extension}", delete=False) as tmp:
            tmp.write(content)
            tmp_path = tmp.name

        service = get_di_container().get_analysis_service()
        result = service.analyze(tmp_path, filename=filename, save=save)

        return JSONResponse(
            content={
                "result": result.model_dump(by_alias=True),
                "segments": [s.model_dump() for s in service.segments(result)],
            }
        )

    except Exception as e:
        return _error_response(e, "analyze_error")
    finally:
        if tmp_path and os.path.exists(tmp_path):
            os.remove(tmp_path)


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------

@app.get(APIEndpoints.HISTORY)
@limiter.limit("30/minute")
def list_history(request: Request) -> JSONResponse:
    """List records from the history store."""
    try:
        records = get_di_container().get_history_store().list_records()
        return JSONResponse(content=[r.to_payload() for r in records])
    except Exception as e:
        return _error_response(e, "history_list_error")


@app.post(APIEndpoints.HISTORY)
@limiter.limit("30/minute")
def save_history_record(request: Request, record: HistoryRecord) -> JSONResponse:
    """Save a flat record; a record carrying ``id`` is updated in place."""
    try:
        store = get_di_container().get_history_store()
        saved = store.save_record(record)
        code = status.HTTP_200_OK if saved.ok else status.HTTP_502_BAD_GATEWAY
        return JSONResponse(status_code=code, content=saved.model_dump(by_alias=True))
    except Exception as e:
        return _error_response(e, "history_save_error")


@app.put(APIEndpoints.HISTORY_SUMMARY)
@limiter.limit("30/minute")
def update_summary(request: Request, body: SummaryUpdateRequest) -> JSONResponse:
    """Rewrite the summary lines of a result and re-save it to history."""
    try:
        service = get_di_container().get_analysis_service()
        result, saved = service.update_summary(body.result, body.summary)
        return JSONResponse(
            content={
                "result": result.model_dump(by_alias=True),
                "save": saved.model_dump(by_alias=True),
            }
        )
    except Exception as e:
        return _error_response(e, "summary_update_error")


if __name__ == "__main__":
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=settings.api_port,
        log_level="info"
    )
