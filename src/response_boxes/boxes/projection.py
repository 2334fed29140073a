"""Projection: rank the event log into a short context block for new sessions."""

from __future__ import annotations

import math
from datetime import datetime, timezone

from response_boxes.boxes.events import BoxCreated, LearningCreated, LogSnapshot

DEFAULT_MAX_LEARNINGS = 3
DEFAULT_MAX_BOXES = 5

TITLE = "PRIOR SESSION LEARNINGS (from Response Boxes):"
LEARNINGS_HEADING = "Patterns (AI-synthesized learnings)"
BOXES_HEADING = "Recent notable boxes"
CALL_TO_ACTION = "Apply relevant learnings using a 🔄 Reflection box in your response."
BULLET = "•"
SUMMARY_SEPARATOR = " | "


def parse_timestamp(ts: str) -> float:
    """ISO-8601 string -> epoch milliseconds. Unparsable sorts as the epoch."""
    if not isinstance(ts, str) or not ts:
        return 0.0
    value = ts.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return 0.0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp() * 1000


def _confidence_key(learning: LearningCreated) -> float:
    value = learning.confidence
    if not isinstance(value, (int, float)) or isinstance(value, bool) or math.isnan(value):
        return 0.0
    return float(value)


def rank_learnings(learnings: list[LearningCreated]) -> list[LearningCreated]:
    """Confidence descending, newest first on ties."""
    return sorted(
        learnings,
        key=lambda item: (_confidence_key(item), parse_timestamp(item.ts)),
        reverse=True,
    )


def rank_boxes(boxes: list[BoxCreated]) -> list[BoxCreated]:
    """Newest first."""
    return sorted(boxes, key=lambda box: parse_timestamp(box.ts), reverse=True)


def summarize_fields(fields: dict[str, str]) -> str:
    """Join the first two ``key: value`` pairs in insertion order."""
    pairs = [f"{key}: {value}" for key, value in list(fields.items())[:2]]
    return SUMMARY_SEPARATOR.join(pairs)


def _format_confidence(value: float) -> str:
    if isinstance(value, (int, float)) and math.isfinite(value):
        return f"{value:.2f}"
    return "--"


def _limit(value: object, default: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    return default


def render_projection(
    snapshot: LogSnapshot,
    max_learnings: int = DEFAULT_MAX_LEARNINGS,
    max_boxes: int = DEFAULT_MAX_BOXES,
) -> str | None:
    """Render the top learnings and most recent boxes. None when the log holds neither."""
    if snapshot.is_empty:
        return None

    top_learnings = rank_learnings(snapshot.learnings)[: _limit(max_learnings, DEFAULT_MAX_LEARNINGS)]
    top_boxes = rank_boxes(snapshot.boxes)[: _limit(max_boxes, DEFAULT_MAX_BOXES)]

    lines = [TITLE, ""]

    if top_learnings:
        lines.append(LEARNINGS_HEADING)
        for learning in top_learnings:
            lines.append(f"{BULLET} [{_format_confidence(learning.confidence)}] {learning.insight}")
        lines.append("")

    if top_boxes:
        lines.append(BOXES_HEADING)
        for box in top_boxes:
            lines.append(f"{BULLET} {box.box_type}: {summarize_fields(box.fields)}")
        lines.append("")

    lines.append(CALL_TO_ACTION)
    return "\n".join(lines)
