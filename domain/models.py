"""
Pure domain models for the voice memo analysis pipeline.

These models contain no HTTP or audio-library dependencies. They represent the
values that flow between the chunker, the transcription and summarization
stages, and the history store.
"""

from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from shared_utils.constants import SentimentLabel, SummaryLabels


# ---------------------------------------------------------------------------
# Audio
# ---------------------------------------------------------------------------


class AudioChunk(BaseModel):
    """One compressed window of the source recording, ready for upload."""

    index: int
    data: bytes
    size_bytes: int
    start_seconds: float
    duration_seconds: float
    is_final: bool
    total_duration_seconds: float
    mime_type: str = "audio/mpeg"

    @property
    def end_seconds(self) -> float:
        return self.start_seconds + self.duration_seconds


# ---------------------------------------------------------------------------
# Transcript
# ---------------------------------------------------------------------------


class TranscriptSegment(BaseModel):
    """Single utterance of a transcript, speaker already normalized for display."""
    speaker: str
    text: str


class TranscriptionReport(BaseModel):
    """Output of the transcription stage."""

    transcript: str
    chunk_count: int = 0
    total_duration_seconds: float = 0.0
    duration_ms: float = 0.0


# ---------------------------------------------------------------------------
# Summarization
# ---------------------------------------------------------------------------


class TaskItem(BaseModel):
    """Action item. Free-form strings, no validation beyond coercion."""

    task: str = ""
    assignee: str = ""
    deadline: str = ""

    @model_validator(mode="before")
    @classmethod
    def _coerce(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"task": data}
        if not isinstance(data, dict):
            return data
        mapped = {
            "task": data.get("task", data.get("description", data.get("title"))),
            "assignee": data.get("assignee", data.get("owner")),
            "deadline": data.get("deadline", data.get("due", data.get("dueDate"))),
        }
        return {k: "" if v is None else str(v) for k, v in mapped.items()}


class PartialExtraction(BaseModel):
    """Facts and tasks pulled from one text chunk of the transcript."""

    model_config = ConfigDict(populate_by_name=True)

    facts: List[str] = []
    tasks: List[TaskItem] = []
    sentiment_score: Optional[float] = Field(default=None, alias="sentimentScore")

    @field_validator("facts", mode="before")
    @classmethod
    def _facts_as_strings(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        if not isinstance(v, list):
            # Left for the List[str] check to reject.
            return v
        return [str(item) for item in v]

    @field_validator("tasks", mode="before")
    @classmethod
    def _tasks_as_list(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("sentiment_score", mode="before")
    @classmethod
    def _score_or_none(cls, v: Any) -> Optional[float]:
        try:
            score = float(v)
        except (TypeError, ValueError):
            return None
        return score if 0.0 <= score <= 1.0 else None


class SummarizationReport(BaseModel):
    """Bookkeeping for one summarization run (completeness of the extraction pass)."""

    text_chunks: int = 0
    extracted_chunks: int = 0
    dropped_chunks: List[int] = []
    duration_ms: float = 0.0

    @property
    def complete(self) -> bool:
        return not self.dropped_chunks


class CallTiming(BaseModel):
    """Date/time and duration fields derived before the synthesis pass."""

    datetime_label: str
    duration_label: str
    duration_seconds: float
    source: Literal["filename", "mtime"]


class AnalysisResult(BaseModel):
    """Terminal artifact of one analysis run.

    Frozen; edits go through ``with_summary`` which returns a new instance.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    summary: List[str]
    action_items: List[TaskItem] = Field(default_factory=list, alias="actionItems")
    sentiment: str = SentimentLabel.NEUTRAL.value
    sentiment_score: float = Field(default=0.5, alias="sentimentScore")
    transcript: str = ""
    filename: str = ""
    record_id: Optional[str] = Field(default=None, alias="recordId")
    warnings: List[str] = Field(default_factory=list)

    @field_validator("sentiment_score")
    @classmethod
    def _clamp_score(cls, v: float) -> float:
        return min(max(v, 0.0), 1.0)

    def field(self, label: str) -> str:
        """Value of the summary line carrying *label* ("" when absent)."""
        for line in self.summary:
            stripped = line.strip()
            if stripped.startswith(label):
                return stripped[len(label):].lstrip(" :：").strip()
        return ""

    def with_summary(self, lines: List[str]) -> "AnalysisResult":
        return self.model_copy(update={"summary": list(lines)})

    def with_record_id(self, record_id: Optional[str]) -> "AnalysisResult":
        return self.model_copy(update={"record_id": record_id})


# ---------------------------------------------------------------------------
# History webhook
# ---------------------------------------------------------------------------


class HistoryRecord(BaseModel):
    """Flat record exchanged with the spreadsheet-backed history webhook."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    date: str = ""
    organization: str = ""
    contact: str = ""
    duration: str = ""
    products: str = ""
    purpose: str = ""
    background: str = ""
    response: str = ""
    next_action: str = Field(default="", alias="nextAction")
    tasks: str = ""
    sentiment: str = ""
    filename: str = ""
    transcript: str = ""
    doc_url: str = Field(default="", alias="docUrl")
    id: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _stringify(cls, data: Any) -> Any:
        # Spreadsheet cells come back as numbers or null.
        if not isinstance(data, dict):
            return data
        return {
            k: (v if v is None or isinstance(v, str) else str(v))
            for k, v in data.items()
            if v is not None or k == "id"
        }

    @classmethod
    def from_result(cls, result: AnalysisResult, doc_url: str = "") -> "HistoryRecord":
        tasks = "\n".join(
            " / ".join(part for part in (t.task, t.assignee, t.deadline) if part)
            for t in result.action_items
        )
        return cls(
            date=result.field(SummaryLabels.DATETIME),
            organization=result.field(SummaryLabels.ORGANIZATION),
            contact=result.field(SummaryLabels.CONTACT),
            duration=result.field(SummaryLabels.DURATION),
            products=result.field(SummaryLabels.PRODUCTS),
            purpose=result.field(SummaryLabels.PURPOSE),
            background=result.field(SummaryLabels.BACKGROUND),
            response=result.field(SummaryLabels.ACTIONS_TAKEN),
            next_action=result.field(SummaryLabels.NEXT_STEPS),
            tasks=tasks,
            sentiment=f"{result.sentiment} ({result.sentiment_score:.2f})",
            filename=result.filename or result.field(SummaryLabels.FILE),
            transcript=result.transcript,
            doc_url=doc_url,
            id=result.record_id,
        )

    def to_payload(self) -> dict:
        """Wire format: camelCase keys, ``id`` omitted for new records."""
        return self.model_dump(by_alias=True, exclude_none=True)


class SaveResult(BaseModel):
    """Webhook reply to a save/update request."""

    model_config = ConfigDict(populate_by_name=True)

    status: Literal["success", "error"]
    message: Optional[str] = None
    doc_id: Optional[str] = Field(default=None, alias="docId")

    @property
    def ok(self) -> bool:
        return self.status == "success"
