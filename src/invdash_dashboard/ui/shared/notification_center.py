from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

NOTICE_LEVELS = {"info", "success", "warning", "error"}


@dataclass
class NotificationCenter:
    """Dismissible notices shown above the current screen. Owned by the host, so notices outlive a closed dialog."""

    messages: list[dict[str, Any]] = field(default_factory=list)
    _next_id: int = 1

    def push(self, *, level: str, title: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
        if level not in NOTICE_LEVELS:
            raise ValueError(f"Unsupported notice level: {level}")
        payload = {
            "id": self._next_id,
            "level": level,
            "title": title,
            "message": message,
            "details": details or {},
        }
        self._next_id += 1
        self.messages.append(payload)
        return payload

    def dismiss(self, notice_id: int) -> bool:
        for index, message in enumerate(self.messages):
            if message["id"] == notice_id:
                self.messages.pop(index)
                return True
        return False

    def latest(self, level: str | None = None) -> dict[str, Any] | None:
        for message in reversed(self.messages):
            if level is None or message["level"] == level:
                return message
        return None

    def clear(self) -> None:
        self.messages.clear()

    def render(self) -> dict[str, Any]:
        return {"count": len(self.messages), "messages": list(self.messages)}
