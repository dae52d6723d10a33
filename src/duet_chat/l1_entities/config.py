"""Configuration Pydantic models — pure schema, no infrastructure defaults."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class RoomConfig(BaseModel):
    title: str
    speakers: list[str]
    default_speaker: str

    @model_validator(mode='after')
    def _default_is_known(self) -> RoomConfig:
        if not self.speakers:
            raise ValueError('room.speakers must name at least one identity')
        if self.default_speaker not in self.speakers:
            raise ValueError(f'room.default_speaker {self.default_speaker!r} is not one of {self.speakers}')
        return self


class AssistantConfig(BaseModel):
    model: str
    context_window: int = Field(gt=0)
    system_prompt: str  # may reference {speakers}
    fallback_message: str
    malformed_placeholder: str
    trigger_keywords: list[str] = Field(default_factory=list)
    include_speaker_labels: bool = False


class FeedConfig(BaseModel):
    scroll_tolerance: int = Field(ge=0)
    cache_enabled: bool


class AppConfig(BaseModel):
    room: RoomConfig
    assistant: AssistantConfig
    feed: FeedConfig
