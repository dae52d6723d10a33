"""Use case: write the user's message, then ask the AI responder for a reply."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from duet_chat.l1_entities.config import AssistantConfig
from duet_chat.l1_entities.message import Message
from duet_chat.l2_use_cases.feed_use_case import read_snapshot_once
from duet_chat.l2_use_cases.ports.ai_responder import AIResponder
from duet_chat.l2_use_cases.ports.message_store import MessageStore
from duet_chat.l2_use_cases.send_message_use_case import SendMessageUseCase
from duet_chat.l2_use_cases.utils.turn_builder import build_system_instruction, build_turns, recent_window

log = logging.getLogger('duet.ai')


@dataclass(frozen=True)
class AIExchange:
    """Result of one AI invocation: the two written messages and any failure reason.

    A failed exchange still carries a reply (the fallback message).
    """

    user_message: Message | None = None
    reply: Message | None = None
    error: str = ''

    @property
    def ok(self) -> bool:
        return self.reply is not None and not self.error


class AskAIUseCase:
    """Runs one AI invocation: user write, context read, request, assistant write."""

    def __init__(self, store: MessageStore, responder: AIResponder) -> None:
        self._store = store
        self._responder = responder
        self._send = SendMessageUseCase(store)

    async def execute(
        self,
        text: str,
        speaker: str,
        config: AssistantConfig,
        speakers: list[str],
    ) -> AIExchange:
        """Execute an AI invocation. Writes exactly two messages for non-blank input, none otherwise."""
        user_message = await self._send.execute(text, speaker)
        if user_message is None:
            return AIExchange()

        error = ''
        try:
            snapshot = await read_snapshot_once(self._store)
            history = recent_window(snapshot, config.context_window)
            turns = build_turns(
                build_system_instruction(config.system_prompt, speakers),
                history,
                include_speaker_labels=config.include_speaker_labels,
            )
            log.info('AI request: %d turns (%d history), model=%s', len(turns), len(history), config.model)

            raw = await self._responder.generate(config.model, turns)
            if raw:
                log.debug('AI raw response (%d chars): %s', len(raw), raw[:500])
                reply_text = raw
            else:
                log.warning('AI response carried no text part')
                reply_text = config.malformed_placeholder
        except Exception as e:
            error = f'AI error: {type(e).__name__}: {e}'
            log.error(error, exc_info=True)
            reply_text = config.fallback_message

        reply = await self._store.add(Message.assistant(reply_text))
        return AIExchange(user_message=user_message, reply=reply, error=error)


def should_trigger_ai(text: str, keywords: list[str]) -> bool:
    """Check whether the draft contains one of the configured AI trigger markers."""
    return any(kw and kw in text for kw in keywords)
