"""Turn entity — one role-tagged text unit sent to the AI responder."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class Turn(BaseModel):
    """A single turn in an AI request."""

    role: Literal['user', 'assistant']
    text: str
