"""In-memory conversation sessions."""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from termx.llm.types import Message


def _utcnow_iso() -> str:
    """Return current UTC timestamp in ISO format."""
    return datetime.now(UTC).isoformat()


@dataclass
class Session:
    """A conversation session.

    The message list is append-only from the agent's point of view; the only
    in-place change it makes is truncating old tool output during compaction.
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    title: str | None = None
    model: str | None = None
    messages: list[Message] = field(default_factory=list)
    created_at: str = field(default_factory=_utcnow_iso)
    updated_at: str = field(default_factory=_utcnow_iso)

    def add_message(self, message: Message) -> None:
        """Append one message."""
        self.messages.append(message)
        self.updated_at = _utcnow_iso()

    def replace_messages(self, messages: list[Message]) -> None:
        """Replace all messages (caller-side only, e.g. when starting over)."""
        self.messages = list(messages)
        self.updated_at = _utcnow_iso()

    def set_title(self, title: str | None) -> None:
        self.title = title
        self.updated_at = _utcnow_iso()

    def set_model(self, model: str | None) -> None:
        self.model = model
        self.updated_at = _utcnow_iso()

    def summary(self) -> dict[str, Any]:
        """Short description for status displays."""
        return {
            "id": self.id,
            "title": self.title,
            "model": self.model,
            "messages": len(self.messages),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
