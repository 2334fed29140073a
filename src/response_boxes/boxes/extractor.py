"""Box extraction: locate header-delimited segments in free-form text.

Two phases (no I/O):
- Scan: find header lines like ``⚖️ Choice ──────────`` and record offsets
- Parse: split text at header offsets, pull ``**Name**: value`` fields from each body
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

# marker, type name (letters and spaces), then a run of >= 10 dashes
HEADER_PATTERN = re.compile(r"^(.+?)\s+([A-Za-z][A-Za-z ]*)\s+[-─]{10,}\s*$")
FIELD_PATTERN = re.compile(r"\*\*([^*]+)\*\*:\s*(.+)")

_WHITESPACE_RUN = re.compile(r"\s+")


@dataclass
class HeaderMatch:
    """A header line found by the scanner."""

    start: int
    body_start: int
    marker: str
    box_type: str


@dataclass
class BoxSegment:
    """One parsed box, before it becomes an event."""

    box_type: str
    fields: dict[str, str] = field(default_factory=dict)
    raw: str = ""


# ── Phase 1: header scan ──────────────────────────────────────


def scan_headers(text: str) -> list[HeaderMatch]:
    """Return every header line in text, in order of appearance."""
    headers: list[HeaderMatch] = []
    offset = 0
    for line in text.splitlines(keepends=True):
        content = line.rstrip("\r\n")
        match = HEADER_PATTERN.match(content)
        if match:
            headers.append(
                HeaderMatch(
                    start=offset,
                    body_start=offset + len(line),
                    marker=match.group(1),
                    box_type=match.group(2).strip(),
                )
            )
        offset += len(line)
    return headers


# ── Phase 2: field parse ──────────────────────────────────────


def normalize_field_name(name: str) -> str:
    """Lower-case a field name and collapse whitespace runs to underscores."""
    return _WHITESPACE_RUN.sub("_", name.strip().lower())


def parse_fields(body: str) -> dict[str, str]:
    """Parse ``**Name**: value`` lines. First occurrence of a key wins."""
    fields: dict[str, str] = {}
    for line in body.splitlines():
        match = FIELD_PATTERN.search(line)
        if not match:
            continue
        name = match.group(1).strip()
        value = match.group(2).strip()
        if not name or not value:
            continue
        key = normalize_field_name(name)
        if key not in fields:
            fields[key] = value
    return fields


def extract_boxes(text: str) -> list[BoxSegment]:
    """Split text into box segments. Text without headers yields []."""
    headers = scan_headers(text)
    segments: list[BoxSegment] = []

    for index, header in enumerate(headers):
        end = headers[index + 1].start if index + 1 < len(headers) else len(text)
        block = text[header.start : end].strip()
        if not block:
            continue

        body = text[header.body_start : end].strip()
        segments.append(
            BoxSegment(box_type=header.box_type, fields=parse_fields(body), raw=block)
        )

    return segments
