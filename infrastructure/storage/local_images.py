"""Local-disk ImageStore.

Files land in ``upload_dir`` under random names and are served back by the
app's static mount at ``url_prefix``. Stored references are relative URLs
(``/uploads/<name>``); clients prefix them with the API origin.
"""

import asyncio
import os
from typing import Optional

from errors import ValidationError
from shared.generators import generate_file_stem
from shared.logging import get_logger

log = get_logger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


class LocalImageStore:
    def __init__(
        self,
        upload_dir: str,
        max_bytes: int = 5 * 1024 * 1024,
        url_prefix: str = "/uploads",
    ) -> None:
        self.upload_dir = os.path.abspath(upload_dir)
        self.max_bytes = max_bytes
        self.url_prefix = url_prefix.rstrip("/")
        os.makedirs(self.upload_dir, exist_ok=True)

    def _path_for(self, image_url: str) -> Optional[str]:
        """Map a stored URL back to a file inside upload_dir, or None."""
        prefix = f"{self.url_prefix}/"
        if not image_url or not image_url.startswith(prefix):
            return None
        name = os.path.basename(image_url[len(prefix):])
        if not name:
            return None
        return os.path.join(self.upload_dir, name)

    async def save(self, data: bytes, content_type: str) -> str:
        """Write *data* to disk and return its public relative URL.

        Raises:
            ValidationError: unsupported type, empty file or file too large.
        """
        extension = ALLOWED_IMAGE_TYPES.get((content_type or "").lower())
        if extension is None:
            raise ValidationError(
                "Only JPEG, PNG, GIF or WEBP images are allowed",
                field="profileImage",
            )
        if not data:
            raise ValidationError("No file uploaded", field="profileImage")
        if len(data) > self.max_bytes:
            raise ValidationError(
                f"Image must be smaller than {_human_size(self.max_bytes)}",
                field="profileImage",
            )

        name = f"{generate_file_stem()}{extension}"
        path = os.path.join(self.upload_dir, name)
        await asyncio.to_thread(_write_bytes, path, data)
        log.info("profile_image_stored", file_name=name, size=len(data))
        return f"{self.url_prefix}/{name}"

    async def delete(self, image_url: str) -> bool:
        path = self._path_for(image_url)
        if path is None:
            return False
        try:
            await asyncio.to_thread(os.remove, path)
        except FileNotFoundError:
            return False
        except OSError as e:
            log.warning(
                "profile_image_delete_failed", image_url=image_url, error=str(e)
            )
            return False
        return True


def _human_size(num_bytes: int) -> str:
    if num_bytes >= 1024 * 1024:
        return f"{num_bytes // (1024 * 1024)} MB"
    return f"{max(1, num_bytes // 1024)} KB"


def _write_bytes(path: str, data: bytes) -> None:
    with open(path, "wb") as fh:
        fh.write(data)
