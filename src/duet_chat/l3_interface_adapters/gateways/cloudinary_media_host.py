"""Gateway: Cloudinary unsigned image upload — implements MediaHost port."""

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path

import httpx

from duet_chat.l1_entities.errors import UploadFailedError

log = logging.getLogger('duet.media')

CLOUDINARY_API = 'https://api.cloudinary.com/v1_1'


class CloudinaryMediaHost:
    """Uploads files with an unsigned upload preset and returns their ``secure_url``."""

    def __init__(
        self,
        cloud_name: str | None,
        upload_preset: str | None,
        api_base: str = CLOUDINARY_API,
        timeout: float = 60.0,
    ) -> None:
        self._cloud_name = cloud_name
        self._upload_preset = upload_preset
        self._api_base = api_base.rstrip('/')
        self._timeout = timeout

    @property
    def upload_url(self) -> str:
        return f'{self._api_base}/{self._cloud_name}/upload'

    async def upload(self, path: Path) -> str:
        if not self._cloud_name or not self._upload_preset:
            raise UploadFailedError('Cloudinary cloud name and upload preset must both be configured')

        content_type = mimetypes.guess_type(path.name)[0] or 'application/octet-stream'
        try:
            payload = path.read_bytes()
        except OSError as e:
            raise UploadFailedError(f'Cannot read {path}: {e}') from e

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(
                    self.upload_url,
                    data={'upload_preset': self._upload_preset},
                    files={'file': (path.name, payload, content_type)},
                )
        except httpx.HTTPError as e:
            raise UploadFailedError(f'Cloudinary request failed: {e}') from e

        try:
            data = resp.json()
        except ValueError as e:
            raise UploadFailedError(f'Cloudinary returned {resp.status_code} with a non-JSON body') from e

        if isinstance(data, dict) and data.get('error'):
            error = data['error']
            message = error.get('message') if isinstance(error, dict) else str(error)
            raise UploadFailedError(message or 'Unknown Cloudinary error')
        if resp.status_code >= 400:
            raise UploadFailedError(f'Cloudinary returned {resp.status_code}: {resp.text[:300]}')

        url = data.get('secure_url') if isinstance(data, dict) else None
        if not url:
            raise UploadFailedError('Cloudinary response has no secure_url')
        log.info('Uploaded %s (%d bytes) -> %s', path.name, len(payload), url)
        return url
