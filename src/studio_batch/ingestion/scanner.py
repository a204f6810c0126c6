"""Folder ingestion: turn a granted folder or a flat file selection into Items."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from ..core.exceptions import IngestionError
from ..core.image_utils import is_image_mime
from ..core.logging_config import get_logger
from ..core.models import ROOT_PATH, Item
from ..core.protocols import DirectoryHandle
from .handles import UploadedFile


@dataclass
class IngestionResult:
    """Items in discovery order plus what could not be read."""

    items: List[Item] = field(default_factory=list)
    live: bool = False
    skipped_directories: List[str] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.items


class IngestionSource(ABC):
    """One of the two ways a host can hand over a folder."""

    live: bool = False

    @abstractmethod
    async def discover(self) -> IngestionResult:
        ...


class LiveFolderSource(IngestionSource):
    """Recursive walk over a live directory handle (depth first, enumeration order)."""

    live = True

    def __init__(self, root: DirectoryHandle):
        self.root = root

    async def discover(self) -> IngestionResult:
        logger = get_logger("ingestion")
        result = IngestionResult(live=True)
        logger.debug(f"Scanning folder '{self.root.name}'")
        await self._scan(self.root, "", result)
        logger.info(
            f"Found {len(result.items)} images in '{self.root.name}'"
            + (f" ({len(result.skipped_directories)} folders skipped)" if result.skipped_directories else "")
        )
        return result

    async def _scan(self, directory: DirectoryHandle, path: str, result: IngestionResult) -> None:
        logger = get_logger("ingestion")
        try:
            async for entry in directory.entries():
                if entry.kind == "file":
                    if not is_image_mime(entry.mime_type):
                        logger.debug(f"[{path or ROOT_PATH}{entry.name}] Skipping non-image file")
                        continue
                    result.items.append(
                        Item(
                            name=entry.name,
                            mime_type=entry.mime_type,
                            source=entry,
                            handle=entry,
                            parent_handle=directory,
                            relative_path=path or ROOT_PATH,
                            original_url=entry.url,
                        )
                    )
                elif entry.kind == "directory":
                    await self._scan(entry, f"{path}{entry.name}/", result)
        except Exception as e:
            if not path:
                raise IngestionError(f"Could not read folder '{directory.name}': {e}") from e
            # One unreadable subtree must not cost the siblings their results
            logger.error(f"[{path}] Error scanning subdirectory: {e}", exc_info=True)
            result.skipped_directories.append(path)


def relative_dir_from_path(relative_path: str) -> str:
    """
    Strip the filename from a host-reported relative path.

    Args:
        relative_path: e.g. "products/shoes/b.png"

    Returns:
        "products/shoes/", or "./" when nothing but a filename is left
    """
    parts = relative_path.split("/") if relative_path else []
    if parts:
        parts.pop()
    directory = "/".join(parts) + ("/" if parts else "")
    return directory or ROOT_PATH


class FileListSource(IngestionSource):
    """Flat list of uploaded files; no live handles, so results go to an archive."""

    live = False

    def __init__(self, files: Iterable[UploadedFile]):
        self.files = list(files)

    async def discover(self) -> IngestionResult:
        logger = get_logger("ingestion")
        result = IngestionResult(live=False)
        for upload in self.files:
            if not is_image_mime(upload.mime_type):
                logger.debug(f"[{upload.relative_path or upload.name}] Skipping non-image file")
                continue
            result.items.append(
                Item(
                    name=upload.name,
                    mime_type=upload.mime_type,
                    source=upload,
                    relative_path=relative_dir_from_path(upload.relative_path),
                    original_url=upload.url,
                )
            )
        logger.info(f"Found {len(result.items)} images in {len(self.files)} uploaded files")
        return result


def group_by_folder(items: Iterable[Item]) -> List[Tuple[str, List[Item]]]:
    """Group items by relative path, keeping first-seen folder order."""
    groups: dict = {}
    for item in items:
        groups.setdefault(item.relative_path, []).append(item)
    return list(groups.items())
