"""Port: realtime message store."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from duet_chat.l1_entities.message import Message

SnapshotCallback = Callable[[list[Message]], None]


class Subscription(Protocol):
    """Handle returned by MessageStore.subscribe."""

    def unsubscribe(self) -> None:
        """Stop delivering snapshots. Safe to call more than once."""
        ...


class MessageStore(Protocol):
    """Append-only, realtime-subscribable ordered collection of messages."""

    async def add(self, message: Message) -> Message:
        """Append a message. Returns the stored record with its assigned id and timestamp."""
        ...

    def subscribe(self, callback: SnapshotCallback) -> Subscription:
        """Deliver the full snapshot, ordered by timestamp ascending, on every change."""
        ...
