"""Local deterministic resize: no network, never retried."""

import asyncio

from ..core.image_utils import resize_to_width
from ..core.models import BatchConfig
from ..core.protocols import TransformStrategy


class LocalResizeTransform(TransformStrategy):
    """High-quality resize to the configured width, aspect ratio preserved."""

    name = "resize"
    retryable = False

    async def transform(self, source: bytes, mime_type: str, config: BatchConfig) -> bytes:
        # Pillow work is CPU-bound; keep the event loop free for the other workers
        return await asyncio.to_thread(resize_to_width, source, config.target_width)
