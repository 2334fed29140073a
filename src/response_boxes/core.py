"""ResponseBoxes hub: the two host hooks.

Responsibilities:
1. Capture: on an assistant message, extract boxes and append BoxCreated events
2. Inject: on system prompt construction, project the log into one context block
3. Per-session state: message counters and the injected-session cache

The store propagates I/O errors; the hooks here are the host-facing boundary
and log them instead, so a capture failure never interrupts a session.
"""

from __future__ import annotations

import logging
from typing import Any

from response_boxes.boxes.events import (
    SCHEMA_VERSION,
    BoxCreated,
    generate_event_id,
    utc_timestamp,
)
from response_boxes.boxes.extractor import extract_boxes
from response_boxes.boxes.projection import render_projection
from response_boxes.boxes.store import EventLog
from response_boxes.config import BoxesConfig
from response_boxes.host import MESSAGE_UPDATED, LifecycleEvent

logger = logging.getLogger(__name__)

ID_PREFIX = "rb"
SESSION_HEADER = "X-Response-Boxes-Session"
VERSION_HEADER = "X-Response-Boxes-Version"


class InjectionCache:
    """Session ids that already received the projection."""

    def __init__(self) -> None:
        self._sessions: set[str] = set()

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def mark(self, session_id: str) -> None:
        self._sessions.add(session_id)

    def reset(self, session_id: str | None = None) -> None:
        """Forget one session, or all of them."""
        if session_id is None:
            self._sessions.clear()
        else:
            self._sessions.discard(session_id)


class ResponseBoxes:
    """Capture boxes from assistant output and inject prior ones into new sessions."""

    def __init__(
        self,
        config: BoxesConfig,
        store: EventLog | None = None,
        *,
        directory: str | None = None,
        worktree: str | None = None,
    ) -> None:
        self.config = config
        self.store = store or EventLog(config.boxes_file)
        self.directory = directory
        self.worktree = worktree
        self.injected = InjectionCache()
        self._message_counts: dict[str, int] = {}  # session_id → captured messages

    # ── Capture ───────────────────────────────────────────────

    async def handle_event(self, event: LifecycleEvent) -> list[BoxCreated]:
        """Lifecycle hook. Returns the events written (empty when nothing was captured)."""
        if self.config.disabled or event.type != MESSAGE_UPDATED:
            return []

        info = event.info
        if info is None or info.role != "assistant" or not info.has_text_parts():
            return []

        text = info.text()
        if not text.strip():
            return []

        session_id = event.resolved_session_id()
        try:
            return await self.capture_text(text, session_id)
        except OSError as e:
            logger.error("Failed to record boxes for session %s: %s", session_id, e)
            return []

    async def capture_text(self, text: str, session_id: str = "unknown") -> list[BoxCreated]:
        """Extract boxes from text and append them to the log. OSError propagates."""
        segments = extract_boxes(text)
        if not segments:
            return []

        message_index = self._message_counts.get(session_id, 0)
        self._message_counts[session_id] = message_index + 1

        ts = utc_timestamp()
        context = self._build_context(session_id, message_index)
        prefix = f"{ID_PREFIX}_{session_id[:8]}"
        events = [
            BoxCreated.from_segment(segment, id=generate_event_id(prefix), ts=ts, context=context)
            for segment in segments
        ]

        await self.store.append(events)
        return events

    def _build_context(self, session_id: str, message_index: int) -> dict[str, Any]:
        context: dict[str, Any] = {
            "source": self.config.capture.source,
            "session_id": session_id,
            "message_index": message_index,
        }
        if self.config.capture.agent:
            context["agent"] = self.config.capture.agent
        if self.directory:
            context["directory"] = self.directory
        if self.worktree:
            context["worktree"] = self.worktree
        return context

    # ── Inject ────────────────────────────────────────────────

    async def project(self) -> str | None:
        """Render the current log. None when there is nothing to inject."""
        snapshot = await self.store.read()
        return render_projection(
            snapshot,
            max_learnings=self.config.inject.max_learnings,
            max_boxes=self.config.inject.max_boxes,
        )

    async def transform_system(
        self,
        session_id: str,
        system: list[str],
        cache: InjectionCache | None = None,
    ) -> bool:
        """System prompt hook. Appends the projection at most once per session.

        Returns True when ``system`` was modified.
        """
        if self.config.disabled:
            return False

        cache = cache if cache is not None else self.injected
        if session_id in cache:
            return False

        try:
            context_text = await self.project()
        except OSError as e:
            logger.warning("Failed to read event log %s: %s", self.store.path, e)
            return False
        if not context_text:
            return False

        cache.mark(session_id)
        system.append(context_text)
        logger.info("Injected prior boxes into session %s", session_id)
        return True

    def chat_headers(self, session_id: str) -> dict[str, str]:
        """Request headers the host can attach for session correlation."""
        return {
            SESSION_HEADER: session_id,
            VERSION_HEADER: str(SCHEMA_VERSION),
        }
