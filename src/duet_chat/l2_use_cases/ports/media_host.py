"""Port: image upload host."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol


class MediaHost(Protocol):
    """Accepts a binary file and returns a publicly retrievable URL."""

    async def upload(self, path: Path) -> str:
        """Upload the file. Raises UploadFailedError on any failure."""
        ...
