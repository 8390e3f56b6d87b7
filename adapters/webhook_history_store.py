"""
Webhook-backed history store adapter.

Implements HistoryStorePort against a spreadsheet web app: GET returns a JSON
array of flat records, POST stores one record (or updates it in place when the
payload carries ``id``) and replies ``{status, message?, docId?}``.
"""

from __future__ import annotations

from typing import Any, List, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from domain.models import HistoryRecord, SaveResult
from shared_utils.constants import Defaults, LogScope
from shared_utils.error_handler import ExternalServiceError
from shared_utils.logging_utils import get_scoped_logger


logger = get_scoped_logger(LogScope.ADAPTER)

SERVICE_NAME = "HistoryWebhook"


class WebhookHistoryStoreAdapter:
    """httpx implementation of HistoryStorePort.

    Script-hosted web apps answer with a redirect to the real content URL,
    so redirects are always followed.
    """

    def __init__(
        self,
        webhook_url: str,
        timeout: float = Defaults.REQUEST_TIMEOUT,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        if not webhook_url:
            raise ValueError("webhook_url is required")
        self._url = webhook_url
        self._client = http_client or httpx.Client(timeout=timeout, follow_redirects=True)

    # ------------------------------------------------------------------
    # HistoryStorePort implementation
    # ------------------------------------------------------------------

    def list_records(self) -> List[HistoryRecord]:
        """Fetch every stored record."""
        body = self._request("GET")
        if isinstance(body, dict):
            body = body.get("records", body.get("data"))
        if not isinstance(body, list):
            raise ExternalServiceError(
                SERVICE_NAME,
                "History webhook did not return a JSON array",
                context={"type": type(body).__name__},
            )

        records: List[HistoryRecord] = []
        for item in body:
            try:
                records.append(HistoryRecord.model_validate(item))
            except PydanticValidationError as exc:
                logger.warning("history_record_skipped", error=str(exc))
        logger.info("history_records_listed", count=len(records))
        return records

    def save_record(self, record: HistoryRecord) -> SaveResult:
        """POST *record*; ``record.id`` selects update-in-place."""
        body = self._request("POST", json=record.to_payload())
        try:
            result = SaveResult.model_validate(body)
        except PydanticValidationError as exc:
            raise ExternalServiceError(
                SERVICE_NAME,
                f"Unexpected save response: {exc}",
                context={"body": str(body)[:200]},
            ) from exc
        logger.info(
            "history_record_saved",
            status=result.status,
            doc_id=result.doc_id,
            update=record.id is not None,
        )
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _request(self, method: str, **kwargs) -> Any:
        try:
            response = self._client.request(method, self._url, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("history_webhook_unreachable", method=method, error=str(exc))
            raise ExternalServiceError(SERVICE_NAME, f"Request failed: {exc}") from exc

        if response.status_code >= 400:
            logger.error(
                "history_webhook_error",
                method=method,
                status_code=response.status_code,
            )
            raise ExternalServiceError(
                SERVICE_NAME,
                f"HTTP {response.status_code}: {response.text[:500]}",
                context={"status_code": response.status_code},
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ExternalServiceError(
                SERVICE_NAME,
                "Response is not valid JSON",
                context={"body": response.text[:200]},
            ) from exc
