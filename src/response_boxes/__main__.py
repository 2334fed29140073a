"""Entry point: python -m response_boxes <command>

- "extract":             Print boxes found in stdin text as JSON lines
- "capture [session]":   Record boxes from assistant text on stdin
- "event":               Record boxes from one host lifecycle event (JSON) on stdin
- "inject [session]":    Print the projection of prior boxes and learnings

Hook commands never fail the host: I/O errors are logged to stderr.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys

from response_boxes.boxes.extractor import extract_boxes
from response_boxes.config import load_config
from response_boxes.core import ResponseBoxes
from response_boxes.host import LifecycleEvent

logger = logging.getLogger(__name__)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def _build() -> ResponseBoxes:
    config = load_config()
    _setup_logging(config.log_level)
    return ResponseBoxes(config)


def _run_extract() -> None:
    for segment in extract_boxes(sys.stdin.read()):
        print(json.dumps({"box_type": segment.box_type, "fields": segment.fields}, ensure_ascii=False))


def _run_capture(session_id: str) -> None:
    boxes = _build()
    if boxes.config.disabled:
        return

    text = sys.stdin.read()
    if not text.strip():
        return

    try:
        events = asyncio.run(boxes.capture_text(text, session_id))
    except OSError as e:
        logger.error("Failed to record boxes: %s", e)
        return
    logger.debug("Captured %d box(es)", len(events))


def _run_event() -> None:
    boxes = _build()
    try:
        data = json.loads(sys.stdin.read())
    except json.JSONDecodeError as e:
        logger.error("Invalid event JSON: %s", e)
        return
    if not isinstance(data, dict):
        logger.error("Event must be a JSON object")
        return

    asyncio.run(boxes.handle_event(LifecycleEvent.from_dict(data)))


def _run_inject(session_id: str) -> None:
    boxes = _build()
    system: list[str] = []
    asyncio.run(boxes.transform_system(session_id, system))
    for block in system:
        print(block)


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""
    session_id = sys.argv[2] if len(sys.argv) > 2 else "unknown"

    if cmd == "extract":
        _run_extract()
    elif cmd == "capture":
        _run_capture(session_id)
    elif cmd == "event":
        _run_event()
    elif cmd == "inject":
        _run_inject(session_id)
    else:
        print("Usage: python -m response_boxes [extract|capture|event|inject] [session_id]")
        print("  extract  Print boxes found in stdin text as JSON lines")
        print("  capture  Record boxes from assistant text on stdin")
        print("  event    Record boxes from a host lifecycle event (JSON) on stdin")
        print("  inject   Print the projection of prior boxes and learnings")
        sys.exit(1)


if __name__ == "__main__":
    main()
