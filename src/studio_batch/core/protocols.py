"""Protocol definitions for the capabilities the pipeline is handed by its host."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, AsyncIterator, Literal, Protocol, Union, runtime_checkable

if TYPE_CHECKING:
    from .models import BatchConfig


@runtime_checkable
class ImageSource(Protocol):
    """Readable source image, either a live file handle or an uploaded file."""

    @property
    def name(self) -> str:
        ...

    @property
    def mime_type(self) -> str:
        ...

    @property
    def url(self) -> str:
        """Display-only reference to the source bytes."""
        ...

    async def read(self) -> bytes:
        ...


@runtime_checkable
class FileHandle(Protocol):
    """Live, writable handle to one file."""

    kind: Literal["file"]

    @property
    def name(self) -> str:
        ...

    @property
    def mime_type(self) -> str:
        ...

    @property
    def url(self) -> str:
        ...

    async def read(self) -> bytes:
        ...

    async def write(self, data: bytes) -> None:
        """Create or truncate the file and write ``data`` to it."""
        ...


@runtime_checkable
class DirectoryHandle(Protocol):
    """Live handle to a directory that can be enumerated and written into."""

    kind: Literal["directory"]

    @property
    def name(self) -> str:
        ...

    def entries(self) -> AsyncIterator[Union[FileHandle, "DirectoryHandle"]]:
        """Enumerate direct children in a stable order."""
        ...

    async def get_file_handle(self, name: str, create: bool = False) -> FileHandle:
        ...


@runtime_checkable
class CredentialProvider(Protocol):
    """Host-side flow that lets the user pick a credential for gated models."""

    async def has_credential(self) -> bool:
        ...

    async def select(self) -> bool:
        """Run the interactive selection; return whether a credential is now present."""
        ...


class TransformStrategy(ABC):
    """Turns source image bytes into result image bytes."""

    name: str = "transform"
    retryable: bool = False

    @abstractmethod
    async def transform(
        self, source: bytes, mime_type: str, config: "BatchConfig"
    ) -> bytes:
        """Produce the result PNG for one source image."""
        ...

    async def aclose(self) -> None:
        """Release resources held for the run."""
        return None
