"""Gateway: OpenAI-compatible AI responder — implements AIResponder port.

Works with any OpenAI-compatible API: OpenAI, Gemini's compatibility endpoint, Groq, vLLM, etc.
"""

from __future__ import annotations

import openai

from duet_chat.l1_entities.errors import AIResponderError
from duet_chat.l1_entities.turn import Turn


class OpenAICompatAIResponder:
    """Wraps openai.AsyncOpenAI to implement the AIResponder protocol."""

    def __init__(self, api_key: str | None = None, base_url: str = 'https://api.openai.com/v1') -> None:
        self._api_key = api_key
        self._base_url = base_url

    async def generate(self, model: str, turns: list[Turn]) -> str | None:
        client = openai.AsyncOpenAI(api_key=self._api_key, base_url=self._base_url)
        try:
            resp = await client.chat.completions.create(
                model=model,
                messages=[{'role': t.role, 'content': t.text} for t in turns],  # ty: ignore[invalid-argument-type] -- dict satisfies ChatCompletionMessageParam at runtime
            )
        except openai.APIStatusError as e:
            raise AIResponderError(f'{type(e).__name__}: {e.message}') from e
        if not resp.choices:
            return None
        return resp.choices[0].message.content or None

    def check_connectivity(self) -> tuple[bool, str]:
        try:
            client = openai.OpenAI(api_key=self._api_key, base_url=self._base_url)
            client.models.list()
            return True, ''
        except openai.AuthenticationError as e:
            return False, f'Authentication failed: {e}'
        except Exception as e:
            return False, f'Cannot connect to OpenAI-compatible API: {e}'
