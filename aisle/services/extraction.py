"""
Extraction parser.

The onboarding model appends one <extract>{...}</extract> block to its reply
with the facts it learned this turn. This module splits that block from the
text shown to the couple and turns it into a snake_case field map.

Parsing never raises. A bad block is reported as ExtractionStatus.MALFORMED
so the loss is visible in logs, while the reply itself still goes out.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger(__name__)

_BLOCK_RE = re.compile(r"<extract>(.*?)</extract>", re.DOTALL | re.IGNORECASE)
_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
_CAMEL_RE = re.compile(r"(?<=[a-z0-9])([A-Z])")

READY_KEY = "move_to_next_step"


class ExtractionStatus(str, Enum):
    ABSENT = "absent"        # no block in the reply
    PARSED = "parsed"
    MALFORMED = "malformed"  # block present but not a JSON object


@dataclass
class Extraction:
    display_text: str
    fields: dict = field(default_factory=dict)
    status: ExtractionStatus = ExtractionStatus.ABSENT
    ready: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == ExtractionStatus.PARSED


def to_snake(key: str) -> str:
    """weddingDate → wedding_date. Already snake_case keys pass through."""
    return _CAMEL_RE.sub(r"_\1", key).lower()


def _normalize(data: dict) -> dict:
    out: dict[str, Any] = {}
    for key, value in data.items():
        if value is None:
            continue
        out[to_snake(str(key))] = value
    return out


def parse_extraction(raw_text: str) -> Extraction:
    """Split the model reply into display text and extracted fields."""
    raw_text = raw_text or ""
    match = _BLOCK_RE.search(raw_text)
    display_text = _BLOCK_RE.sub("", raw_text).strip()

    if not match:
        return Extraction(display_text=display_text)

    body = _FENCE_RE.sub("", match.group(1).strip())
    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        return Extraction(
            display_text=display_text,
            status=ExtractionStatus.MALFORMED,
            error=f"Invalid JSON in extraction block: {e.msg} (line {e.lineno})",
        )

    if not isinstance(data, dict):
        return Extraction(
            display_text=display_text,
            status=ExtractionStatus.MALFORMED,
            error=f"Extraction block is a {type(data).__name__}, expected an object",
        )

    fields = _normalize(data)
    ready = fields.pop(READY_KEY, False) is True

    return Extraction(
        display_text=display_text,
        fields=fields,
        status=ExtractionStatus.PARSED,
        ready=ready,
    )
