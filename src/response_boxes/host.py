"""Host event types: what the surrounding agent runtime sends us."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

MESSAGE_UPDATED = "message.updated"


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


@dataclass
class MessagePart:
    """One content part of a message."""

    type: str
    text: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MessagePart:
        return cls(type=str(data.get("type", "")), text=_optional_str(data.get("text")))


@dataclass
class MessageInfo:
    """A message snapshot carried by a lifecycle event."""

    role: str = ""
    parts: list[MessagePart] = field(default_factory=list)
    session_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MessageInfo:
        parts = data.get("parts")
        if not isinstance(parts, list):
            parts = []
        return cls(
            role=str(data.get("role", "")),
            parts=[MessagePart.from_dict(p) for p in parts if isinstance(p, dict)],
            session_id=_optional_str(data.get("sessionID")),
        )

    def text(self) -> str:
        """Join the text parts with a blank line between them."""
        return "\n\n".join(
            part.text for part in self.parts if part.type == "text" and part.text is not None
        )

    def has_text_parts(self) -> bool:
        return any(part.type == "text" and part.text is not None for part in self.parts)


@dataclass
class LifecycleEvent:
    """A message lifecycle notification from the host."""

    type: str
    session_id: str | None = None
    info: MessageInfo | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LifecycleEvent:
        properties = data.get("properties") or {}
        info = properties.get("info") if isinstance(properties, dict) else None
        return cls(
            type=str(data.get("type", "")),
            session_id=_optional_str(data.get("sessionID")),
            info=MessageInfo.from_dict(info) if isinstance(info, dict) else None,
        )

    def resolved_session_id(self) -> str:
        """Event session id, else the message's, else "unknown"."""
        return self.session_id or (self.info.session_id if self.info else None) or "unknown"
