"""Chat message entity — the only record persisted in the message store."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

AI_SPEAKER = 'AI'

Role = Literal['user', 'assistant']


def format_timestamp(ts: datetime | None) -> str:
    """Format a store timestamp as YYYY/MM/DD HH:MM:SS in local time. Empty for pending writes."""
    if ts is None:
        return ''
    if ts.tzinfo is not None:
        ts = ts.astimezone()
    return ts.strftime('%Y/%m/%d %H:%M:%S')


class Message(BaseModel):
    """A single chat message. Immutable once written; ordering is assigned by the store."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = ''
    role: Role
    speaker: str
    content: str = ''
    image_url: str | None = Field(default=None, alias='imageUrl')
    timestamp: datetime | None = None

    @classmethod
    def user(cls, speaker: str, content: str, image_url: str | None = None) -> Message:
        return cls(role='user', speaker=speaker, content=content, image_url=image_url)

    @classmethod
    def assistant(cls, content: str) -> Message:
        return cls(role='assistant', speaker=AI_SPEAKER, content=content)

    @property
    def has_image(self) -> bool:
        return bool(self.image_url)

    @property
    def is_assistant(self) -> bool:
        return self.role == 'assistant'
