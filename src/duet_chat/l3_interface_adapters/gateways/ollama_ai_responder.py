"""Gateway: Ollama AI responder — implements AIResponder port."""

from __future__ import annotations

import ollama as ollama_sync

from duet_chat.l1_entities.errors import AIResponderError
from duet_chat.l1_entities.turn import Turn


class OllamaAIResponder:
    """Wraps ollama.AsyncClient to implement the AIResponder protocol."""

    def __init__(self, host: str = 'http://localhost:11434') -> None:
        self._host = host

    async def generate(self, model: str, turns: list[Turn]) -> str | None:
        client = ollama_sync.AsyncClient(host=self._host)
        try:
            resp = await client.chat(
                model=model,
                messages=[{'role': t.role, 'content': t.text} for t in turns],
            )
        except ollama_sync.ResponseError as e:
            raise AIResponderError(f'Ollama error: {e.error}') from e
        return resp.message.content or None

    def check_connectivity(self) -> tuple[bool, str]:
        try:
            client = ollama_sync.Client(host=self._host)
            client.list()
            return True, ''
        except Exception as e:
            return False, f'Cannot connect to Ollama: {e}'
