"""ImageStore protocol — profile services depend on this, not the concrete implementation."""

from typing import Protocol


class ImageStore(Protocol):
    async def save(self, data: bytes, content_type: str) -> str: ...

    async def delete(self, image_url: str) -> bool: ...
