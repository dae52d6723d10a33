"""Gateway: in-process message store — implements MessageStore port.

Used for offline sessions (``--memory``) and as the realtime store in tests.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime, timedelta

from duet_chat.l1_entities.message import Message
from duet_chat.l2_use_cases.ports.message_store import SnapshotCallback

log = logging.getLogger('duet.store')


class MemorySubscription:
    def __init__(self, store: MemoryMessageStore, callback: SnapshotCallback) -> None:
        self._store = store
        self._callback = callback
        self.active = True

    def deliver(self, messages: list[Message]) -> None:
        if self.active:
            self._callback(messages)

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._store._detach(self)  # noqa: SLF001 -- subscription owns its detach


class MemoryMessageStore:
    """Append-only list with synchronous snapshot delivery to subscribers."""

    def __init__(self, messages: list[Message] | None = None) -> None:
        self._messages: list[Message] = list(messages or [])
        self._subscriptions: list[MemorySubscription] = []
        self._last_ts: datetime | None = max(
            (m.timestamp for m in self._messages if m.timestamp is not None),
            default=None,
        )

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    async def add(self, message: Message) -> Message:
        stored = message.model_copy(update={'id': uuid.uuid4().hex[:20], 'timestamp': self._next_timestamp()})
        self._messages.append(stored)
        log.debug('memory store: %s appended (%d total)', stored.id, len(self._messages))
        self._broadcast()
        return stored

    def subscribe(self, callback: SnapshotCallback) -> MemorySubscription:
        sub = MemorySubscription(self, callback)
        self._subscriptions.append(sub)
        sub.deliver(self.messages)
        return sub

    def _detach(self, sub: MemorySubscription) -> None:
        if sub in self._subscriptions:
            self._subscriptions.remove(sub)

    def _broadcast(self) -> None:
        snapshot = self.messages
        for sub in list(self._subscriptions):
            sub.deliver(list(snapshot))

    def _next_timestamp(self) -> datetime:
        # Strictly increasing, so ordering stays total even for same-instant writes.
        now = datetime.now(UTC)
        if self._last_ts is not None and now <= self._last_ts:
            now = self._last_ts + timedelta(microseconds=1)
        self._last_ts = now
        return now
