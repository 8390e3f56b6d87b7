"""
In-memory history store adapter for local development.

Implements HistoryStorePort with a plain dict. Used when no webhook URL is
configured. Records are lost on restart.
"""

from __future__ import annotations

import uuid
from typing import Dict, List

from domain.models import HistoryRecord, SaveResult
from shared_utils.constants import LogScope
from shared_utils.logging_utils import get_scoped_logger


logger = get_scoped_logger(LogScope.ADAPTER)


class InMemoryHistoryStoreAdapter:
    """Dict-backed HistoryStorePort, keyed by record id in insertion order."""

    def __init__(self) -> None:
        self._records: Dict[str, HistoryRecord] = {}

    def list_records(self) -> List[HistoryRecord]:
        return list(self._records.values())

    def save_record(self, record: HistoryRecord) -> SaveResult:
        if record.id and record.id not in self._records:
            return SaveResult(status="error", message=f"Unknown record id: {record.id}")

        doc_id = record.id or uuid.uuid4().hex
        self._records[doc_id] = record.model_copy(update={"id": doc_id})
        logger.info("inmemory_history_saved", doc_id=doc_id, total=len(self._records))
        return SaveResult(status="success", doc_id=doc_id)
