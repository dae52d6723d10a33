"""Use case: upload an image to the media host and post it as a message."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from duet_chat.l1_entities.message import Message
from duet_chat.l2_use_cases.ports.media_host import MediaHost
from duet_chat.l2_use_cases.ports.message_store import MessageStore

log = logging.getLogger('duet.media')


@dataclass(frozen=True)
class UploadResult:
    """Result of an upload: the written message, or a failure reason."""

    message: Message | None = None
    error: str = ''

    @property
    def ok(self) -> bool:
        return self.message is not None


class UploadImageUseCase:
    """Uploads one file; writes an image message only when the upload succeeds."""

    def __init__(self, media_host: MediaHost, store: MessageStore) -> None:
        self._media = media_host
        self._store = store

    async def execute(self, path: Path, speaker: str) -> UploadResult:
        if not path.is_file():
            err = f'File not found: {path}'
            log.warning(err)
            return UploadResult(error=err)

        try:
            url = await self._media.upload(path)
        except Exception as e:
            err = f'Upload error: {type(e).__name__}: {e}'
            log.error(err, exc_info=True)
            return UploadResult(error=err)

        message = await self._store.add(Message.user(speaker, '', image_url=url))
        log.info('Image message %s written by %s -> %s', message.id or '?', speaker, url)
        return UploadResult(message=message)
