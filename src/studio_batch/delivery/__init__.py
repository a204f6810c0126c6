"""Output delivery: write-back through live handles, or ZIP assembly."""

from .archive import archive_entry_path, build_archive
from .write_back import write_back

__all__ = ["archive_entry_path", "build_archive", "write_back"]
