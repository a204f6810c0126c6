"""Core utilities and shared components for the studio batch pipeline."""

from .logging_config import get_logger, set_debug, setup_logger
from .exceptions import (
    AuthorizationError,
    ConfigurationError,
    DecodeError,
    DeliveryWriteError,
    IngestionError,
    InvalidStateError,
    NoResultError,
    StudioBatchError,
    TerminalTransformError,
    TransformError,
    TransientTransformError,
)
from .models import (
    AppStatus,
    Archive,
    BatchConfig,
    Item,
    ItemStatus,
    Notice,
    NoticeLevel,
    ProcessingMode,
    RunSummary,
)
from .settings import StudioSettings, get_settings

__all__ = [
    "AppStatus",
    "Archive",
    "BatchConfig",
    "Item",
    "ItemStatus",
    "Notice",
    "NoticeLevel",
    "ProcessingMode",
    "RunSummary",
    "StudioSettings",
    "get_settings",
    "setup_logger",
    "get_logger",
    "set_debug",
    "StudioBatchError",
    "ConfigurationError",
    "InvalidStateError",
    "IngestionError",
    "TransformError",
    "TransientTransformError",
    "TerminalTransformError",
    "AuthorizationError",
    "NoResultError",
    "DecodeError",
    "DeliveryWriteError",
]
