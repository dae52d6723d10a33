"""Port: on-device mirror of the message feed."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from duet_chat.l1_entities.message import Message


class MessageCache(Protocol):
    """Non-authoritative local copy of the last delivered snapshot."""

    def load(self) -> list[Message]:
        """Return the cached messages, or an empty list when nothing is cached."""
        ...

    def save(self, messages: list[Message]) -> Path:
        """Overwrite the cache with *messages*."""
        ...
