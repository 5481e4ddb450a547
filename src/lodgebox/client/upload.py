"""Unsigned image uploads for lodge photos.

Only the interactive application uploads images: it holds the upload
preset and runs with the user present. The background worker never
calls this module.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import httpx

from lodgebox.core.config import UploadConfig

logger = logging.getLogger(__name__)

# A lodge shows at most this many photos
MAX_IMAGES = 6


class UploadError(Exception):
    """Raised when an image could not be uploaded."""


class CloudinaryUploader:
    """Uploads local image files and returns their public URLs."""

    def __init__(
        self,
        config: UploadConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._client = httpx.AsyncClient(timeout=config.timeout, transport=transport)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> CloudinaryUploader:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def upload(self, path: Path) -> str:
        """Upload one image file.

        Args:
            path: Local image file.

        Returns:
            Secure URL of the uploaded image.

        Raises:
            UploadError: If the file is unreadable or the upload is rejected.
        """
        path = Path(path)
        try:
            content = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise UploadError(f"Cannot read {path}: {e}") from e

        try:
            response = await self._client.post(
                self._config.upload_url,
                data={"upload_preset": self._config.upload_preset},
                files={"file": (path.name, content)},
            )
        except httpx.RequestError as e:
            raise UploadError(f"Upload of {path.name} failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        error = body.get("error")
        if error:
            message = error.get("message", "unknown error") if isinstance(error, dict) else error
            raise UploadError(f"Upload of {path.name} rejected: {message}")
        if not response.is_success or "secure_url" not in body:
            raise UploadError(
                f"Upload of {path.name} failed with HTTP {response.status_code}"
            )

        logger.debug("Uploaded %s -> %s", path.name, body["secure_url"])
        return str(body["secure_url"])

    async def upload_all(self, attachments: dict[str, str]) -> list[str]:
        """Upload every attachment in order and return their URLs."""
        return [await self.upload(Path(p)) for p in attachments.values()]


def merge_image_urls(payload: dict, urls: list[str]) -> dict:
    """Return a copy of the payload with uploaded image URLs appended.

    The result keeps at most MAX_IMAGES URLs.
    """
    merged = dict(payload)
    existing = list(merged.get("image_urls") or [])
    merged["image_urls"] = (existing + urls)[:MAX_IMAGES]
    return merged
