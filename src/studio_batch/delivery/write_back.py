"""Direct write-back of results next to their source files."""

from ..core.exceptions import DeliveryWriteError
from ..core.logging_config import get_logger
from ..core.models import Item


async def write_back(item: Item, result: bytes) -> bool:
    """
    Write ``result`` as ``<basename>_studio.png`` into the item's live parent folder.

    A failed write is logged and reported by returning False; it never
    raises, because the in-memory result stays available for the archive.

    Args:
        item: Item carrying live handles
        result: PNG bytes to write

    Returns:
        True when the file was written
    """
    logger = get_logger("delivery")
    if not item.is_live:
        logger.debug(f"[{item.relative_path}{item.name}] No live folder handle, leaving result for the archive")
        return False

    target_name = item.studio_filename
    try:
        file_handle = await item.parent_handle.get_file_handle(target_name, create=True)
        await file_handle.write(result)
    except Exception as e:
        error = DeliveryWriteError(f"Failed to save {target_name} directly: {e}")
        logger.error(f"[{item.relative_path}{item.name}] {error}", exc_info=True)
        return False

    logger.debug(f"[{item.relative_path}{item.name}] Saved {target_name}")
    return True
