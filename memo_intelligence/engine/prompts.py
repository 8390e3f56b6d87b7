"""
Prompt templates for transcription, extraction and synthesis.

The synthesis prompt pins the exact label set and order from
``SummaryLabels.ORDER``; downstream field lookup depends on it.
"""

import json
from typing import List

from domain.models import CallTiming, PartialExtraction
from shared_utils.constants import SummaryLabels


# Last key of the synthesis reply; a reply cut off mid-way is closed there.
SYNTHESIS_TRAILING_FIELD = "actionItems"


TRANSCRIPTION_PROMPT = """You are transcribing a recorded business phone call.
Transcribe the audio verbatim, with these rules:
- One utterance per line, formatted exactly as "Speaker: utterance".
- Use the speaker's name when it is stated in the call, otherwise a short role such as "Customer".
- Remove filler words (um, uh, er, you know) and false starts.
- Output plain text only. No headings, no timestamps, no JSON, no Markdown."""


EXTRACTION_TEMPLATE = """You are analysing part {index} of {total} of a phone call transcript.
Extract every concrete fact (who, which organization, products, requests, problems,
answers given, commitments) and every task someone agreed to do.

Return one JSON object with exactly these keys:
{{
  "facts": ["short factual statement", ...],
  "tasks": [{{"task": "...", "assignee": "...", "deadline": "..."}}, ...],
  "sentimentScore": 0.0-1.0 (customer satisfaction in this part, 1.0 = very positive)
}}
Use empty strings for unknown assignees or deadlines. Do not invent facts.

Transcript part:
{chunk}"""


SYNTHESIS_TEMPLATE = """You are writing the final report for one recorded phone call.
Below are facts and tasks extracted from consecutive parts of the transcript.
Merge duplicates, resolve contradictions in favour of later parts, and write the report.

Known call details (use verbatim):
- Date/Time: {datetime_label}
- Duration: {duration_label}
- File: {filename}

Return one JSON object with exactly these keys:
{{
  "summary": [
{template_lines}
  ],
  "sentiment": "Positive" | "Neutral" | "Negative",
  "sentimentScore": 0.0-1.0,
  "actionItems": [{{"task": "...", "assignee": "...", "deadline": "..."}}]
}}
"summary" must contain exactly {label_count} strings, one per label, in the order shown,
each starting with its bracketed label. Write "-" after a label when nothing is known.
Keep the keys in the order shown, with "actionItems" last.

Extracted parts:
{extractions}"""


def build_extraction_prompt(chunk: str, index: int, total: int) -> str:
    return EXTRACTION_TEMPLATE.format(index=index, total=total, chunk=chunk)


def build_synthesis_prompt(
    extractions: List[PartialExtraction],
    timing: CallTiming,
    filename: str,
) -> str:
    template_lines = ",\n".join(
        f'    "{label} ..."' for label in SummaryLabels.ORDER
    )
    parts = [
        json.dumps(
            {
                "part": i,
                "facts": e.facts,
                "tasks": [t.model_dump() for t in e.tasks],
            },
            ensure_ascii=False,
        )
        for i, e in enumerate(extractions, start=1)
    ]
    return SYNTHESIS_TEMPLATE.format(
        datetime_label=timing.datetime_label,
        duration_label=timing.duration_label,
        filename=filename,
        template_lines=template_lines,
        label_count=len(SummaryLabels.ORDER),
        extractions="\n".join(parts) if parts else "(no facts could be extracted)",
    )
