"""Port: generative-text AI responder."""

from __future__ import annotations

from typing import Protocol

from duet_chat.l1_entities.turn import Turn


class AIResponder(Protocol):
    """Abstract AI responder. Zero framework types leak through."""

    async def generate(self, model: str, turns: list[Turn]) -> str | None:
        """Return generated text, or None when the response carries no usable text part.

        Raises AIResponderError (or a transport error) when the request fails.
        """
        ...

    def check_connectivity(self) -> tuple[bool, str]:
        """Pre-flight connectivity check. Returns (ok, error_message)."""
        ...
