"""Gateway: Gemini generateContent over HTTP — implements AIResponder port."""

from __future__ import annotations

import logging

import httpx

from duet_chat.l1_entities.errors import AIResponderError
from duet_chat.l1_entities.turn import Turn

log = logging.getLogger('duet.ai')

GEMINI_API = 'https://generativelanguage.googleapis.com/v1beta'


def build_request_body(turns: list[Turn]) -> dict:
    """Request body for generateContent. Gemini calls the assistant role ``model``."""
    return {
        'contents': [
            {
                'role': 'user' if turn.role == 'user' else 'model',
                'parts': [{'text': turn.text}],
            }
            for turn in turns
        ]
    }


def extract_text(data: dict) -> str | None:
    """Return candidates[0].content.parts[0].text, or None when any step is missing."""
    try:
        text = data['candidates'][0]['content']['parts'][0]['text']
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None


class GeminiAIResponder:
    """Posts the turn list to a Gemini model, API key passed as a query parameter."""

    def __init__(self, api_key: str | None, base_url: str = GEMINI_API, timeout: float = 60.0) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip('/')
        self._timeout = timeout

    async def generate(self, model: str, turns: list[Turn]) -> str | None:
        if not self._api_key:
            raise AIResponderError('Gemini API key is not configured (set GEMINI_API_KEY)')

        url = f'{self._base_url}/models/{model}:generateContent'
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            resp = await client.post(url, params={'key': self._api_key}, json=build_request_body(turns))

        try:
            data = resp.json()
        except ValueError as e:
            raise AIResponderError(f'Gemini returned {resp.status_code} with a non-JSON body') from e

        if isinstance(data, dict) and data.get('error'):
            error = data['error']
            message = error.get('message') if isinstance(error, dict) else None
            raise AIResponderError(message or 'Unknown Gemini API error')
        if resp.status_code >= 400:
            raise AIResponderError(f'Gemini returned {resp.status_code}: {resp.text[:300]}')

        return extract_text(data) if isinstance(data, dict) else None

    def check_connectivity(self) -> tuple[bool, str]:
        if not self._api_key:
            return False, 'GEMINI_API_KEY is not set'
        try:
            with httpx.Client(timeout=10) as client:
                resp = client.get(f'{self._base_url}/models', params={'key': self._api_key, 'pageSize': 1})
        except httpx.HTTPError as e:
            return False, f'Cannot connect to Gemini API: {e}'
        if resp.status_code in (400, 401, 403):
            return False, f'Authentication failed: {resp.text[:200]}'
        if resp.status_code >= 400:
            return False, f'Gemini API returned {resp.status_code}'
        return True, ''
