"""Gateway: JSON file mirror of the feed — implements MessageCache port."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import TypeAdapter

from duet_chat.l1_entities.message import Message

log = logging.getLogger('duet.cache')

_MESSAGES = TypeAdapter(list[Message])


class FileMessageCache:
    """Persists the last delivered snapshot to a single JSON file."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[Message]:
        if not self._path.exists():
            return []
        return _MESSAGES.validate_json(self._path.read_bytes())

    def save(self, messages: list[Message]) -> Path:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = [m.model_dump(mode='json', by_alias=True) for m in messages]
        tmp = self._path.with_suffix('.tmp')
        tmp.write_text(json.dumps(payload, ensure_ascii=False), encoding='utf-8')
        tmp.replace(self._path)
        log.debug('Cached %d messages to %s', len(messages), self._path.name)
        return self._path
