"""Chat session draft state entity."""

from __future__ import annotations

from pydantic import BaseModel, Field

from duet_chat.l1_entities.message import Message


class SessionState(BaseModel):
    """Mutable client-local state for one chat session. Reset partially on each send."""

    speaker: str
    draft: str = ''
    loading: bool = False
    show_jump_button: bool = False
    messages: tuple[Message, ...] = Field(default_factory=tuple)
    snapshots_received: int = 0

    @property
    def has_draft(self) -> bool:
        return bool(self.draft.strip())
