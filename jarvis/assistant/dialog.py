"""
Dialog history management

The dialog store owns the conversation: an append-only, bounded list of turns
plus the system prompt handed to the language model.

Features:
- Bounded history: oldest turns are evicted once the cap is exceeded
- Snapshot publishing: every mutation pushes the complete turn tuple to observers
- Tagged metadata: turns carry either an action record, a model record, or nothing
- Conversation context: a free-form mapping shared with display layers
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Literal

from .config import DEFAULT_HISTORY_LIMIT
from .observable import Observable

if TYPE_CHECKING:
    from .actions import ActionResult
    from .llm import LLMReply

LOGGER = logging.getLogger("jarvis-assistant.dialog")

Role = Literal["user", "assistant", "system"]

CLEARED_MESSAGE = "Conversation history cleared."


@dataclass(frozen=True)
class ActionMetadata:
    """Turn produced by routing a matched intent straight to an action."""

    action: str
    result: ActionResult


@dataclass(frozen=True)
class ModelMetadata:
    """Turn produced by the language model, optionally followed by an action."""

    reply: LLMReply
    action: str | None = None
    action_result: ActionResult | None = None


TurnMetadata = ActionMetadata | ModelMetadata | None


@dataclass(frozen=True)
class Turn:
    id: str
    timestamp: datetime
    role: Role
    content: str
    metadata: TurnMetadata = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "role": self.role,
            "content": self.content,
        }
        if isinstance(self.metadata, ActionMetadata):
            payload["action"] = self.metadata.action
            payload["success"] = self.metadata.result.success
        elif isinstance(self.metadata, ModelMetadata):
            payload["provider"] = self.metadata.reply.provider
            if self.metadata.action:
                payload["action"] = self.metadata.action
            if self.metadata.action_result is not None:
                payload["success"] = self.metadata.action_result.success
        return payload


def generate_turn_id() -> str:
    """Millisecond timestamp prefix plus a random suffix."""
    return f"{int(time.time() * 1000):x}-{uuid.uuid4().hex[:12]}"


class DialogStore:
    """Append-only bounded history of turns."""

    def __init__(
        self,
        system_prompt: str,
        *,
        max_turns: int = DEFAULT_HISTORY_LIMIT,
        greeting: str | None = None,
    ) -> None:
        if max_turns < 1:
            raise ValueError("max_turns must be at least 1")
        self.max_turns = max_turns
        self._system_prompt = system_prompt
        self._turns: list[Turn] = []
        self.history: Observable[tuple[Turn, ...]] = Observable((), name="dialog")
        self.context_changes: Observable[dict[str, Any]] = Observable({}, name="dialog-context")
        if greeting:
            self.add_system(greeting)

    def append(self, role: Role, content: str, metadata: TurnMetadata = None) -> Turn:
        turn = Turn(
            id=generate_turn_id(),
            timestamp=datetime.now().astimezone(),
            role=role,
            content=content,
            metadata=metadata,
        )
        self._turns.append(turn)
        if len(self._turns) > self.max_turns:
            del self._turns[: len(self._turns) - self.max_turns]
        LOGGER.debug("[dialog] %s turn recorded (%d in history)", role, len(self._turns))
        self._publish()
        return turn

    def add_user(self, content: str) -> Turn:
        return self.append("user", content)

    def add_assistant(self, content: str, metadata: TurnMetadata = None) -> Turn:
        return self.append("assistant", content, metadata)

    def add_system(self, content: str) -> Turn:
        return self.append("system", content)

    def recent(self, n: int = 6) -> list[Turn]:
        if n <= 0:
            return []
        return self._turns[-n:]

    def all(self) -> list[Turn]:
        return list(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def clear(self) -> None:
        self._turns = []
        self._publish()
        self.add_system(CLEARED_MESSAGE)

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    def set_system_prompt(self, prompt: str) -> None:
        self._system_prompt = prompt

    @property
    def context(self) -> dict[str, Any]:
        return dict(self.context_changes.value)

    def update_context(self, **updates: Any) -> dict[str, Any]:
        merged = {**self.context_changes.value, **updates}
        self.context_changes.publish(merged)
        return dict(merged)

    def _publish(self) -> None:
        self.history.publish(tuple(self._turns))
