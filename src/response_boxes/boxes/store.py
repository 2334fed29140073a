"""Append-only JSONL event log.

The log file is the single source of truth. It is only ever appended to;
readers scan the whole file. File I/O runs in a worker thread so the event
loop only suspends at I/O boundaries.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path

from response_boxes.boxes.events import BoxCreated, LogSnapshot, encode_record, parse_log

logger = logging.getLogger(__name__)


class EventLog:
    """Read/append access to one event log file. Assumes a single writer."""

    def __init__(self, path: Path) -> None:
        self.path = path

    # ── Write ─────────────────────────────────────────────────

    async def append(self, events: Sequence[BoxCreated]) -> int:
        """Append events as JSON lines. Returns the number written.

        An empty batch touches nothing on disk. OSError propagates.
        """
        if not events:
            return 0
        payload = "".join(f"{encode_record(event)}\n" for event in events)
        await asyncio.to_thread(self._append_text, payload)
        logger.info("Appended %d box event(s) to %s", len(events), self.path)
        return len(events)

    def _append_text(self, payload: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(payload)

    # ── Read ──────────────────────────────────────────────────

    async def read(self) -> LogSnapshot:
        """Read and normalize the whole log. A missing file reads as empty.

        Undecodable bytes become U+FFFD; damage stays confined to its own line.
        """
        try:
            raw = await asyncio.to_thread(self.path.read_text, encoding="utf-8", errors="replace")
        except FileNotFoundError:
            logger.debug("No event log at %s", self.path)
            return LogSnapshot()
        return parse_log(raw)
