"""
Port interface for analysis history persistence.

Implementations: WebhookHistoryStoreAdapter, InMemoryHistoryStoreAdapter (adapters/)
"""

from __future__ import annotations

from typing import List, Protocol, runtime_checkable

from domain.models import HistoryRecord, SaveResult


@runtime_checkable
class HistoryStorePort(Protocol):
    """Abstract interface for listing and saving past analyses."""

    def list_records(self) -> List[HistoryRecord]:
        """Return all stored analysis summaries, newest last.

        Raises:
            ExternalServiceError: If the store is unreachable.
        """
        ...

    def save_record(self, record: HistoryRecord) -> SaveResult:
        """Create a record, or update it in place when ``record.id`` is set.

        Returns:
            SaveResult with ``doc_id`` of the stored record on success.

        Raises:
            ExternalServiceError: If the store is unreachable.
        """
        ...
