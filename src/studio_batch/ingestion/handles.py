"""Local filesystem handles and uploaded files.

``LocalDirectoryHandle`` / ``LocalFileHandle`` are the live capability: they
can be enumerated, read and written in place. ``UploadedFile`` is the flat
fallback: bytes plus the relative path string the host reported for them.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import AsyncIterator, Optional, Union

from ..core.image_utils import guess_mime_type


class LocalFileHandle:
    kind = "file"

    def __init__(self, path: Path):
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"LocalFileHandle({str(self.path)!r})"

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def mime_type(self) -> str:
        return guess_mime_type(self.path.name)

    @property
    def url(self) -> str:
        return self.path.resolve().as_uri()

    async def read(self) -> bytes:
        return await asyncio.to_thread(self.path.read_bytes)

    async def write(self, data: bytes) -> None:
        await asyncio.to_thread(self.path.write_bytes, data)


class LocalDirectoryHandle:
    kind = "directory"

    def __init__(self, path: Path):
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"LocalDirectoryHandle({str(self.path)!r})"

    @property
    def name(self) -> str:
        return self.path.name

    def _list_children(self):
        """Sorted (path, is_dir) pairs. Symlinked folders are left out so the walk never loops."""
        children = []
        for child in sorted(self.path.iterdir()):
            is_dir = child.is_dir()
            if is_dir and child.is_symlink():
                continue
            children.append((child, is_dir))
        return children

    async def entries(self) -> AsyncIterator[Union[LocalFileHandle, "LocalDirectoryHandle"]]:
        children = await asyncio.to_thread(self._list_children)
        for child, is_dir in children:
            if is_dir:
                yield LocalDirectoryHandle(child)
            else:
                yield LocalFileHandle(child)

    async def get_file_handle(self, name: str, create: bool = False) -> LocalFileHandle:
        target = self.path / name
        if not target.exists():
            if not create:
                raise FileNotFoundError(f"{target} does not exist")
            await asyncio.to_thread(target.touch)
        return LocalFileHandle(target)


class UploadedFile:
    """A file from a flat multi-file selection.

    ``relative_path`` is the host-reported path string including the file
    name, e.g. ``"products/shoes/b.png"``. It may be empty when the host
    reported no path at all.
    """

    def __init__(
        self,
        name: str,
        data: bytes,
        relative_path: str = "",
        mime_type: Optional[str] = None,
    ):
        self._name = name
        self._data = data
        self.relative_path = relative_path
        self._mime_type = mime_type if mime_type is not None else guess_mime_type(name)

    def __repr__(self) -> str:
        return f"UploadedFile({self.relative_path or self._name!r})"

    @property
    def name(self) -> str:
        return self._name

    @property
    def mime_type(self) -> str:
        return self._mime_type

    @property
    def url(self) -> str:
        return f"upload:{self.relative_path or self._name}"

    async def read(self) -> bytes:
        return self._data

    @classmethod
    def from_path(cls, path: Path, base: Path) -> "UploadedFile":
        """Read ``path`` and report it relative to ``base``'s parent, like a folder upload."""
        path = Path(path)
        base = Path(base)
        relative = path.relative_to(base.parent).as_posix()
        return cls(name=path.name, data=path.read_bytes(), relative_path=relative)
