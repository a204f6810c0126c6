"""Folder ingestion: live directory walk and flat file-list fallback."""

from .handles import LocalDirectoryHandle, LocalFileHandle, UploadedFile
from .scanner import (
    FileListSource,
    IngestionResult,
    IngestionSource,
    LiveFolderSource,
    relative_dir_from_path,
)

__all__ = [
    "LocalDirectoryHandle",
    "LocalFileHandle",
    "UploadedFile",
    "IngestionSource",
    "IngestionResult",
    "LiveFolderSource",
    "FileListSource",
    "relative_dir_from_path",
]
