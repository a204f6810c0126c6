"""Archive assembly: one ZIP mirroring the discovered folder tree."""

import io
import zipfile
from typing import Iterable, Optional

from ..core.logging_config import get_logger
from ..core.models import ROOT_PATH, Archive, Item, ItemStatus


def archive_entry_path(item: Item) -> str:
    """``./`` items sit at the archive root; everything else keeps its folder prefix."""
    if item.relative_path == ROOT_PATH:
        return item.studio_filename
    return f"{item.relative_path}{item.studio_filename}"


def build_archive(items: Iterable[Item], timestamp_ms: Optional[int] = None) -> Optional[Archive]:
    """
    Pack every completed item's result into a ZIP.

    Args:
        items: Items of the current batch, in any status
        timestamp_ms: Epoch milliseconds for the archive name (defaults to now)

    Returns:
        The archive, or None when no item is completed
    """
    logger = get_logger("delivery")
    completed = [
        item for item in items if item.status is ItemStatus.COMPLETED and item.result
    ]
    if not completed:
        logger.info("No completed items, nothing to archive")
        return None

    payloads = {}
    for item in completed:
        entry = archive_entry_path(item)
        if entry in payloads:
            # Two sources sharing a stem in one folder map to the same output name
            logger.warning(f"[{entry}] Duplicate archive entry, keeping the later result")
        payloads[entry] = item.result

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for entry, data in payloads.items():
            zf.writestr(entry, data)

    archive = Archive(
        filename=Archive.timestamped_name(timestamp_ms),
        data=buffer.getvalue(),
        entries=list(payloads),
    )
    logger.info(f"Assembled {archive.filename} with {len(completed)} results")
    return archive
