"""Configuration loading from environment variables and response-boxes.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_HOME_DIR = Path.home() / ".response-boxes"
_DEFAULT_BOXES_FILE = _HOME_DIR / "analytics" / "boxes.jsonl"
_CONFIG_FILENAME = "response-boxes.toml"

DEFAULT_MAX_LEARNINGS = 3
DEFAULT_MAX_BOXES = 5

_TRUTHY = {"true", "1", "yes", "on"}


@dataclass
class InjectConfig:
    """How much of the log is projected into a new session."""

    max_learnings: int = DEFAULT_MAX_LEARNINGS
    max_boxes: int = DEFAULT_MAX_BOXES


@dataclass
class CaptureConfig:
    """Provenance recorded in each captured event's context."""

    source: str = "response_boxes"
    agent: str = ""


@dataclass
class BoxesConfig:
    """Top-level configuration."""

    disabled: bool = False
    boxes_file: Path = _DEFAULT_BOXES_FILE
    inject: InjectConfig = field(default_factory=InjectConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    log_level: str = "INFO"


def _positive_int(raw: object, default: int) -> int:
    """Parse a positive count, falling back to default on anything else."""
    if isinstance(raw, (bool, float)):
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def _is_truthy(raw: object) -> bool:
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in _TRUTHY


def load_config(config_path: Path | None = None) -> BoxesConfig:
    """Load configuration from environment variables and optional response-boxes.toml.

    Priority: environment variables > response-boxes.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.response-boxes/
        for candidate in [Path.cwd() / _CONFIG_FILENAME, _HOME_DIR / _CONFIG_FILENAME]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    inject_data = file_data.get("inject", {})
    capture_data = file_data.get("capture", {})

    config = BoxesConfig(
        disabled=_is_truthy(os.getenv("RESPONSE_BOXES_DISABLED", file_data.get("disabled", False))),
        boxes_file=Path(
            os.getenv("RESPONSE_BOXES_FILE", file_data.get("boxes_file", str(_DEFAULT_BOXES_FILE)))
        ).expanduser(),
        inject=InjectConfig(
            max_learnings=_positive_int(
                os.getenv("BOX_INJECT_LEARNINGS", inject_data.get("max_learnings")),
                DEFAULT_MAX_LEARNINGS,
            ),
            max_boxes=_positive_int(
                os.getenv("BOX_INJECT_BOXES", inject_data.get("max_boxes")),
                DEFAULT_MAX_BOXES,
            ),
        ),
        capture=CaptureConfig(
            source=os.getenv("RESPONSE_BOXES_SOURCE", capture_data.get("source", "response_boxes")),
            agent=os.getenv("RESPONSE_BOXES_AGENT", capture_data.get("agent", "")),
        ),
        log_level=os.getenv("RESPONSE_BOXES_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
    return config
