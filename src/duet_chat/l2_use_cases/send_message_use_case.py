"""Use case: append one human message to the store."""

from __future__ import annotations

import logging

from duet_chat.l1_entities.message import Message
from duet_chat.l2_use_cases.ports.message_store import MessageStore

log = logging.getLogger('duet.store')


class SendMessageUseCase:
    """Writes a ``role=user`` message. Blank input is a silent no-op."""

    def __init__(self, store: MessageStore) -> None:
        self._store = store

    async def execute(self, text: str, speaker: str) -> Message | None:
        """Write the trimmed text as *speaker*. Returns the stored message, or None for blank input."""
        content = text.strip()
        if not content:
            return None
        stored = await self._store.add(Message.user(speaker, content))
        log.info('Message %s written by %s (%d chars)', stored.id or '?', speaker, len(content))
        return stored
