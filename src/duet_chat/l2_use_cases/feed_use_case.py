"""Use case: one-shot read of the message feed through the subscription primitive."""

from __future__ import annotations

import asyncio
import logging

from duet_chat.l1_entities.message import Message
from duet_chat.l2_use_cases.ports.message_store import MessageStore

log = logging.getLogger('duet.store')


async def read_snapshot_once(store: MessageStore) -> list[Message]:
    """Subscribe, resolve on the first delivered snapshot, then unsubscribe."""
    first: asyncio.Future[list[Message]] = asyncio.get_running_loop().create_future()

    def _on_snapshot(messages: list[Message]) -> None:
        if not first.done():
            first.set_result(list(messages))

    subscription = store.subscribe(_on_snapshot)
    try:
        messages = await first
    finally:
        subscription.unsubscribe()
    log.debug('One-shot read: %d messages', len(messages))
    return messages
