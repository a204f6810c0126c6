"""Shared data models for the studio batch pipeline."""

from __future__ import annotations

import base64
import time
import uuid
from enum import Enum
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .protocols import DirectoryHandle, FileHandle, ImageSource

DEFAULT_MODEL = "gemini-2.5-flash-image"

DEFAULT_PROMPT = (
    "High-quality professional studio photograph, same product and style as "
    "reference image, soft natural lighting, clean minimal background, sharp "
    "focus, realistic fabric texture, commercial product photography, 4k quality "
    "no major change (no change just make it better) dimensions "
    "{target_width}px * {target_width}px and bleed 30px into 30px"
)

ROOT_PATH = "./"
STUDIO_SUFFIX = "_studio.png"


class ItemStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class AppStatus(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    READY = "ready"
    PROCESSING = "processing"
    DONE = "done"


class ProcessingMode(str, Enum):
    AI = "ai"
    RESIZE = "resize"


class NoticeLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SECURITY = "security"


class Notice(BaseModel):
    """Batch-level banner shown by the host."""

    model_config = ConfigDict(frozen=True)

    message: str
    level: NoticeLevel = NoticeLevel.INFO


AspectRatio = Literal["1:1", "3:4", "4:3", "9:16", "16:9"]


class BatchConfig(BaseModel):
    """Configuration for one batch run. Read-only once the run starts."""

    model_config = ConfigDict(frozen=True)

    mode: ProcessingMode = ProcessingMode.AI
    prompt: str = DEFAULT_PROMPT
    target_width: int = Field(800, gt=0)
    aspect_ratio: AspectRatio = "1:1"
    model: str = DEFAULT_MODEL
    concurrency: int = Field(3, ge=1)

    def render_prompt(self) -> str:
        """Prompt text with the target width filled in."""
        return self.prompt.replace("{target_width}", str(self.target_width))


def studio_filename(name: str) -> str:
    """``shoe.front.jpg`` -> ``shoe_studio.png`` (everything after the first dot is dropped)."""
    return f"{name.split('.')[0]}{STUDIO_SUFFIX}"


class Item(BaseModel):
    """One discovered image and its processing lifecycle.

    Items are immutable; every transition returns a new Item so the
    controller can swap whole collections instead of mutating shared state.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    name: str
    mime_type: str = ""
    source: ImageSource
    handle: Optional[FileHandle] = None
    parent_handle: Optional[DirectoryHandle] = None
    relative_path: str = ROOT_PATH
    status: ItemStatus = ItemStatus.PENDING
    original_url: str = ""
    result: Optional[bytes] = None
    error: Optional[str] = None
    progress: int = 0

    @model_validator(mode="after")
    def check_outcome(self) -> "Item":
        if self.status is ItemStatus.COMPLETED and (not self.result or self.error is not None):
            raise ValueError("a completed item must carry a result and no error")
        if self.status is ItemStatus.ERROR and (self.error is None or self.result is not None):
            raise ValueError("a failed item must carry an error and no result")
        if not self.is_terminal and (self.result is not None or self.error is not None):
            raise ValueError(f"a {self.status.value} item cannot carry an outcome")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in (ItemStatus.COMPLETED, ItemStatus.ERROR)

    @property
    def is_live(self) -> bool:
        return self.handle is not None and self.parent_handle is not None

    @property
    def studio_filename(self) -> str:
        return studio_filename(self.name)

    @property
    def result_url(self) -> Optional[str]:
        if self.result is None:
            return None
        return "data:image/png;base64," + base64.b64encode(self.result).decode("ascii")

    def claim(self) -> "Item":
        """pending|error -> processing."""
        if self.status not in (ItemStatus.PENDING, ItemStatus.ERROR):
            raise ValueError(f"cannot claim a {self.status.value} item")
        return self.model_copy(
            update={"status": ItemStatus.PROCESSING, "error": None, "progress": 0}
        )

    def complete(self, result: bytes) -> "Item":
        """processing -> completed."""
        if self.status is not ItemStatus.PROCESSING:
            raise ValueError(f"cannot complete a {self.status.value} item")
        if not result:
            raise ValueError("a completed item needs a non-empty result")
        return self.model_copy(
            update={"status": ItemStatus.COMPLETED, "result": result, "progress": 100}
        )

    def fail(self, message: str) -> "Item":
        """processing -> error."""
        if self.status is not ItemStatus.PROCESSING:
            raise ValueError(f"cannot fail a {self.status.value} item")
        return self.model_copy(
            update={"status": ItemStatus.ERROR, "error": message or "Operation failed"}
        )

    def requeue(self) -> "Item":
        """Any terminal state -> pending, dropping the previous outcome."""
        if not self.is_terminal:
            return self
        return self.model_copy(
            update={
                "status": ItemStatus.PENDING,
                "result": None,
                "error": None,
                "progress": 0,
            }
        )


class RunSummary(BaseModel):
    """Outcome of one ``start_run`` call."""

    generation: int
    total: int = 0
    completed: int = 0
    errored: int = 0
    worker_count: int = 0
    duration: float = 0.0
    discarded: bool = False


class Archive(BaseModel):
    """A ZIP of completed results mirroring the discovered folder tree."""

    filename: str
    data: bytes
    entries: List[str] = Field(default_factory=list)

    @classmethod
    def timestamped_name(cls, timestamp_ms: Optional[int] = None) -> str:
        if timestamp_ms is None:
            timestamp_ms = int(time.time() * 1000)
        return f"studio_batch_{timestamp_ms}.zip"

    def save(self, directory: Path) -> Path:
        """Write the archive into ``directory`` and return its path."""
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        target = directory / self.filename
        target.write_bytes(self.data)
        return target
