"""Event log records: typed dataclasses + decode/encode (no I/O).

Every line of the log is one JSON object:
- Encode: BoxCreated -> JSONL string
- Decode: JSON object -> BoxCreated | LearningCreated | Unrecognized

Decoding never raises. Missing or wrong-typed fields fall back to defaults so
that older log formats stay readable.
"""

from __future__ import annotations

import json
import logging
import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from response_boxes.boxes.extractor import BoxSegment

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

BOX_CREATED = "BoxCreated"
LEARNING_CREATED = "LearningCreated"

EPOCH_TIMESTAMP = "1970-01-01T00:00:00.000Z"
UNKNOWN_BOX_TYPE = "Unknown"

# Score for records written before initial_score existed
LEGACY_DEFAULT_SCORE = 50

HIGH_VALUE_TYPES = frozenset({"Reflection", "Warning", "Pushback", "Assumption"})
MEDIUM_VALUE_TYPES = frozenset({"Choice", "Completion", "Concern", "Confidence", "Decision"})

HIGH_SCORE = 85
MEDIUM_SCORE = 60
DEFAULT_SCORE = 40

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


# ── Record types ──────────────────────────────────────────────


@dataclass
class BoxCreated:
    """event=BoxCreated: one box captured from an assistant message."""

    id: str
    ts: str
    box_type: str
    fields: dict[str, str] = field(default_factory=dict)
    context: dict[str, Any] = field(default_factory=dict)
    initial_score: float = DEFAULT_SCORE
    schema_version: int = SCHEMA_VERSION

    @classmethod
    def from_segment(
        cls,
        segment: BoxSegment,
        *,
        id: str,
        ts: str,
        context: dict[str, Any] | None = None,
    ) -> BoxCreated:
        return cls(
            id=id,
            ts=ts,
            box_type=segment.box_type,
            fields=dict(segment.fields),
            context=dict(context or {}),
            initial_score=initial_score(segment.box_type),
            schema_version=SCHEMA_VERSION,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "event": BOX_CREATED,
            "id": self.id,
            "ts": self.ts,
            "box_type": self.box_type,
            "fields": self.fields,
            "context": self.context,
            "initial_score": self.initial_score,
            "schema_version": self.schema_version,
        }


@dataclass
class LearningCreated:
    """event=LearningCreated: an insight synthesized outside this package."""

    insight: str
    confidence: float = 0.0
    ts: str = EPOCH_TIMESTAMP

    def to_dict(self) -> dict[str, Any]:
        return {
            "event": LEARNING_CREATED,
            "insight": self.insight,
            "confidence": self.confidence,
            "ts": self.ts,
        }


@dataclass
class Unrecognized:
    """A record whose event kind this version does not know about."""

    event: str
    payload: dict[str, Any] = field(default_factory=dict)


EventRecord = BoxCreated | LearningCreated | Unrecognized


@dataclass
class LogSnapshot:
    """Normalized contents of the log. ``LogSnapshot()`` is the empty result."""

    boxes: list[BoxCreated] = field(default_factory=list)
    learnings: list[LearningCreated] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.boxes and not self.learnings


# ── Construction helpers ──────────────────────────────────────


def initial_score(box_type: str) -> int:
    """Tiered default score by box type: 85 high, 60 medium, 40 otherwise."""
    if box_type in HIGH_VALUE_TYPES:
        return HIGH_SCORE
    if box_type in MEDIUM_VALUE_TYPES:
        return MEDIUM_SCORE
    return DEFAULT_SCORE


def _base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_event_id(prefix: str) -> str:
    """``<prefix>_<ms base36>_<8 hex>``. The random tail separates ids minted in one ms."""
    millis = time.time_ns() // 1_000_000
    return f"{prefix}_{_base36(millis)}_{secrets.token_hex(4)}"


def utc_timestamp(now: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp with milliseconds and a ``Z`` suffix."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    iso = now.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return iso.replace("+00:00", "Z")


def encode_record(record: BoxCreated | LearningCreated) -> str:
    """Serialize a record as one JSONL line (no trailing newline)."""
    return json.dumps(record.to_dict(), ensure_ascii=False)


# ── Decoding (JSON object -> typed record) ────────────────────


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _float_or(value: Any, default: float) -> float:
    if not _is_number(value):
        return default
    try:
        return float(value)
    except OverflowError:
        return default


def _string_or(value: Any, default: str) -> str:
    return value if isinstance(value, str) else default


def _decode_box(data: dict[str, Any]) -> BoxCreated:
    ts = _string_or(data.get("ts"), EPOCH_TIMESTAMP)

    box_type = data.get("box_type")
    if not isinstance(box_type, str):
        # Pre-v1 records used "type"
        box_type = _string_or(data.get("type"), UNKNOWN_BOX_TYPE)

    raw_fields = data.get("fields")
    fields = (
        {str(k): v if isinstance(v, str) else str(v) for k, v in raw_fields.items()}
        if isinstance(raw_fields, dict)
        else {}
    )
    context = data.get("context")
    score = data.get("initial_score")
    version = data.get("schema_version")

    return BoxCreated(
        id=_string_or(data.get("id"), f"legacy_{ts}"),
        ts=ts,
        box_type=box_type,
        fields=fields,
        context=dict(context) if isinstance(context, dict) else {},
        initial_score=score if _is_number(score) else LEGACY_DEFAULT_SCORE,
        schema_version=version if isinstance(version, int) and not isinstance(version, bool) else 0,
    )


def _decode_learning(data: dict[str, Any]) -> LearningCreated | None:
    insight = data.get("insight")
    if not isinstance(insight, str) or not insight:
        return None
    confidence = data.get("confidence")
    return LearningCreated(
        insight=insight,
        confidence=_float_or(confidence, 0.0),
        ts=_string_or(data.get("ts"), EPOCH_TIMESTAMP),
    )


def decode_record(data: Any) -> EventRecord | None:
    """Decode one parsed JSON value into a typed record.

    Records without a string ``event`` field predate the discriminator and
    are read as BoxCreated. Returns None for non-objects and for learnings
    without an insight.
    """
    if not isinstance(data, dict):
        return None

    kind = data.get("event")
    if not isinstance(kind, str) or kind == BOX_CREATED:
        return _decode_box(data)
    if kind == LEARNING_CREATED:
        return _decode_learning(data)
    return Unrecognized(event=kind, payload=data)


def parse_log(text: str) -> LogSnapshot:
    """Decode a whole log. Blank, malformed and non-object lines are skipped."""
    snapshot = LogSnapshot()
    skipped = 0

    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            data = json.loads(line)
        except (ValueError, RecursionError):
            # JSONDecodeError, oversized integers, pathological nesting
            skipped += 1
            continue

        record = decode_record(data)
        if isinstance(record, BoxCreated):
            snapshot.boxes.append(record)
        elif isinstance(record, LearningCreated):
            snapshot.learnings.append(record)
        else:
            skipped += 1

    if skipped:
        logger.debug("Skipped %d unusable log lines", skipped)
    return snapshot
