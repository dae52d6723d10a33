"""Pure functions for building AI request turns from chat history."""

from __future__ import annotations

from duet_chat.l1_entities.message import Message
from duet_chat.l1_entities.turn import Turn


def build_system_instruction(template: str, speakers: list[str]) -> str:
    """Fill the system prompt template. ``{speakers}`` becomes the identities joined by 和."""
    return template.format(speakers='和'.join(speakers))


def message_text(message: Message, *, include_speaker_label: bool = False) -> str:
    """Text forwarded to the AI for one stored message."""
    text = message.content
    if message.has_image:
        image_ref = f'[image] {message.image_url}'
        text = f'{text}\n{image_ref}' if text else image_ref
    if include_speaker_label and message.role == 'user' and message.speaker:
        text = f'{message.speaker}: {text}'
    return text


def build_turns(
    system_instruction: str,
    history: list[Message],
    *,
    include_speaker_labels: bool = False,
) -> list[Turn]:
    """Build the request: one system instruction turn, then one turn per history message.

    Store role ``user`` maps to request role ``user``; anything else maps to ``assistant``.
    """
    turns = [Turn(role='user', text=system_instruction)]
    for msg in history:
        turns.append(
            Turn(
                role='user' if msg.role == 'user' else 'assistant',
                text=message_text(msg, include_speaker_label=include_speaker_labels),
            )
        )
    return turns


def recent_window(messages: list[Message], size: int) -> list[Message]:
    """Return the last *size* messages, oldest first."""
    if size <= 0:
        return []
    return list(messages[-size:])
