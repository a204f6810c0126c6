"""Transform strategies and the per-run strategy factory."""

from typing import Optional

import httpx

from ..core.models import BatchConfig, ProcessingMode
from ..core.protocols import TransformStrategy
from ..core.settings import StudioSettings
from .remote import GeminiImageTransform
from .resize import LocalResizeTransform


def create_transform(
    config: BatchConfig,
    settings: StudioSettings,
    client: Optional[httpx.AsyncClient] = None,
) -> TransformStrategy:
    """Pick the strategy for one run from ``config.mode``."""
    if config.mode is ProcessingMode.RESIZE:
        return LocalResizeTransform()
    return GeminiImageTransform(settings, client=client)


__all__ = [
    "TransformStrategy",
    "GeminiImageTransform",
    "LocalResizeTransform",
    "create_transform",
]
