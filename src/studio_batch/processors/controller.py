"""Batch run controller: owns the item collection and drives ingestion, runs and delivery."""

from __future__ import annotations

import time
from collections import Counter
from typing import Callable, Dict, Iterable, Optional, Tuple

import httpx

from ..core.error_handling import BatchOperationContextManager
from ..core.exceptions import AuthorizationError, IngestionError, InvalidStateError
from ..core.logging_config import get_logger
from ..core.models import (
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
from ..core.observability import LogContext, MetricsCollector
from ..core.protocols import CredentialProvider, DirectoryHandle, TransformStrategy
from ..core.settings import StudioSettings, get_settings
from ..delivery.archive import build_archive
from ..delivery.write_back import write_back
from ..ingestion.handles import UploadedFile
from ..ingestion.scanner import FileListSource, IngestionSource, LiveFolderSource
from ..transforms import create_transform
from .worker_pool import WorkerPool

TransformFactory = Callable[
    [BatchConfig, StudioSettings, Optional[httpx.AsyncClient]], TransformStrategy
]

STARTABLE = (AppStatus.READY, AppStatus.DONE)

LIVE_GRANTED = "Folder access granted. Images will be saved directly back to your local folder."
FLAT_UPLOADED = (
    "Folder uploaded. Due to security restrictions, results will be provided as a "
    "ZIP that preserves your original folder structure."
)
NO_IMAGES_LIVE = "No images found in the selected folder."
NO_IMAGES_FLAT = "No images found in the uploaded selection."
CREDENTIAL_INVALID = "API key is no longer valid. Select a key before the next run."


class BatchController:
    """
    Single owner of the process-wide run state.

    Workers never mutate an Item in place: each transition rebuilds the
    item tuple keyed by id. Every write made on behalf of a run first
    checks that the run's generation is still current, so a ``reset`` or a
    new ingestion quietly retires whatever the previous run still has in
    flight.
    """

    def __init__(
        self,
        settings: Optional[StudioSettings] = None,
        transform_factory: TransformFactory = create_transform,
        credential_provider: Optional[CredentialProvider] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or get_settings()
        self._transform_factory = transform_factory
        self._credential_provider = credential_provider
        self._client = client
        self._credential_checked = credential_provider is None
        self._logger = get_logger("controller")

        self.items: Tuple[Item, ...] = ()
        self.status = AppStatus.IDLE
        self.notice: Optional[Notice] = None
        self.has_credential = bool(self.settings.api_key)
        self.generation = 0
        self.live = False
        self.metrics = MetricsCollector()

    # ------------------------------------------------------------------
    # Ingestion

    async def ingest(self, source: IngestionSource) -> Tuple[Item, ...]:
        """Replace the batch with the images ``source`` discovers."""
        self.generation += 1
        generation = self.generation
        self.status = AppStatus.SCANNING
        self.notice = None
        self.items = ()
        self.live = False
        self.metrics.clear_metrics()

        try:
            result = await source.discover()
        except IngestionError as e:
            if generation == self.generation:
                self.status = AppStatus.IDLE
                self.notice = Notice(message=str(e), level=NoticeLevel.ERROR)
            self._logger.error(f"Ingestion failed: {e}")
            raise

        if generation != self.generation:
            self._logger.debug(f"Dropping ingestion result of superseded generation {generation}")
            return ()

        self.items = tuple(result.items)
        self.live = result.live and not result.empty
        if result.empty:
            self.status = AppStatus.IDLE
            self.notice = Notice(
                message=NO_IMAGES_LIVE if result.live else NO_IMAGES_FLAT,
                level=NoticeLevel.WARNING,
            )
        else:
            self.status = AppStatus.READY
            self.notice = Notice(
                message=LIVE_GRANTED if result.live else FLAT_UPLOADED,
                level=NoticeLevel.INFO,
            )
        return self.items

    async def ingest_directory(self, root: DirectoryHandle) -> Tuple[Item, ...]:
        return await self.ingest(LiveFolderSource(root))

    async def ingest_files(self, files: Iterable[UploadedFile]) -> Tuple[Item, ...]:
        return await self.ingest(FileListSource(files))

    # ------------------------------------------------------------------
    # Runs

    async def _ensure_credential(self) -> None:
        if self._credential_provider is None:
            return
        if not self._credential_checked:
            self.has_credential = await self._credential_provider.has_credential()
            self._credential_checked = True
        if not self.has_credential:
            self._logger.info("Model requires a selected credential, opening selection")
            self.has_credential = await self._credential_provider.select()

    def _worker_count(self, config: BatchConfig, pending: int) -> int:
        if config.mode is ProcessingMode.RESIZE:
            return min(self.settings.resize_worker_cap, pending)
        return config.concurrency

    async def start_run(self, config: BatchConfig) -> RunSummary:
        """
        Process every item that is not completed yet and wait for the queue to drain.

        Args:
            config: Run configuration, read-only for the duration of the run

        Returns:
            Tally of the run; ``discarded`` is set when a reset or a new
            ingestion superseded it before it finished

        Raises:
            InvalidStateError: If the batch is not ``ready`` or ``done``
        """
        if self.status not in STARTABLE:
            raise InvalidStateError(
                f"Cannot start a run while status is '{self.status.value}'"
            )

        if config.mode is ProcessingMode.AI and self.settings.requires_credential_selection(config.model):
            await self._ensure_credential()
            if self.status not in STARTABLE:
                raise InvalidStateError("Batch changed while waiting for credential selection")

        generation = self.generation
        queue = [item.id for item in self.items if item.status is not ItemStatus.COMPLETED]
        worker_count = self._worker_count(config, len(queue))
        context = LogContext(operation="batch_run", component="controller").with_metadata(
            mode=config.mode.value, items=len(queue), workers=worker_count
        )

        self.status = AppStatus.PROCESSING
        self._logger.info(context.format("Starting batch run"))

        outcomes: Counter = Counter()
        transform = self._transform_factory(config, self.settings, self._client)
        start_time = time.time()

        with BatchOperationContextManager(f"Batch run {context.correlation_id}") as batch:

            async def handle(item_id: str) -> None:
                outcome = await self._process_item(generation, item_id, transform, config, batch)
                outcomes[outcome] += 1

            try:
                stats = await WorkerPool(worker_count).run(
                    queue, handle, should_continue=lambda: self.generation == generation
                )
            finally:
                await transform.aclose()

        summary = RunSummary(
            generation=generation,
            total=len(queue),
            completed=outcomes[ItemStatus.COMPLETED],
            errored=outcomes[ItemStatus.ERROR],
            worker_count=worker_count,
            duration=time.time() - start_time,
            discarded=generation != self.generation,
        )

        if summary.discarded:
            self._logger.info(context.format("Run superseded, results discarded"))
            return summary

        self.status = AppStatus.DONE
        self._logger.info(
            context.with_metadata(
                completed=summary.completed,
                errored=summary.errored,
                peak_in_flight=stats.peak_in_flight,
            ).format(f"Batch run finished in {summary.duration:.1f}s")
        )
        return summary

    async def _process_item(
        self,
        generation: int,
        item_id: str,
        transform: TransformStrategy,
        config: BatchConfig,
        batch: BatchOperationContextManager,
    ) -> Optional[ItemStatus]:
        # Claim before the first await: no other worker can see this item as pending
        item = self._update_item(generation, item_id, Item.claim)
        if item is None:
            return None

        label = f"{item.relative_path}{item.name}"
        started = time.time()
        try:
            source = await item.source.read()
            result = await transform.transform(source, item.mime_type, config)
        except Exception as e:
            message = str(e) or "Operation failed"
            if generation != self.generation:
                if isinstance(e, AuthorizationError):
                    self.has_credential = False
                self._logger.debug(f"[{label}] Failure of superseded run discarded: {message}")
                return None
            if isinstance(e, AuthorizationError):
                self._invalidate_credential()
            self._logger.error(f"[{label}] Processing failed: {message}")
            batch.add_error(message, item_identifier=label)
            self.metrics.record("process_item", started, False, message, item=label)
            updated = self._update_item(generation, item_id, lambda current: current.fail(message))
            return ItemStatus.ERROR if updated is not None else None

        if generation != self.generation:
            self._logger.debug(f"[{label}] Result of superseded run discarded")
            return None

        if item.is_live:
            await write_back(item, result)

        self.metrics.record("process_item", started, True, item=label)
        updated = self._update_item(generation, item_id, lambda current: current.complete(result))
        if updated is None:
            return None
        self._logger.debug(f"[{label}] Processing completed")
        return ItemStatus.COMPLETED

    def _update_item(
        self, generation: int, item_id: str, transition: Callable[[Item], Item]
    ) -> Optional[Item]:
        """Swap in a new item tuple with ``transition`` applied to one item."""
        if generation != self.generation:
            self._logger.debug(f"[{item_id}] Dropping update from superseded generation {generation}")
            return None

        updated: Optional[Item] = None
        rebuilt = []
        for current in self.items:
            if current.id == item_id:
                updated = transition(current)
                rebuilt.append(updated)
            else:
                rebuilt.append(current)
        if updated is not None:
            self.items = tuple(rebuilt)
        return updated

    def _invalidate_credential(self) -> None:
        self.has_credential = False
        self.notice = Notice(message=CREDENTIAL_INVALID, level=NoticeLevel.SECURITY)

    # ------------------------------------------------------------------
    # Delivery, reset and read helpers

    def assemble_archive(
        self, items: Optional[Iterable[Item]] = None, timestamp_ms: Optional[int] = None
    ) -> Optional[Archive]:
        """ZIP of all completed results, or None if there are none."""
        return build_archive(self.items if items is None else items, timestamp_ms)

    def reset(self) -> None:
        """Drop the batch. Runs still in flight finish but their results are discarded."""
        self.generation += 1
        self.items = ()
        self.live = False
        self.status = AppStatus.IDLE
        self.notice = None
        self.metrics.clear_metrics()
        self._logger.info(f"Batch reset (generation {self.generation})")

    def requeue(self, item_ids: Optional[Iterable[str]] = None) -> int:
        """
        Put terminal items back to pending so the next run processes them again.

        Args:
            item_ids: Items to requeue; every terminal item when omitted

        Returns:
            Number of items requeued
        """
        if self.status is AppStatus.PROCESSING:
            raise InvalidStateError("Cannot requeue items while a run is processing")

        wanted = None if item_ids is None else set(item_ids)
        count = 0
        rebuilt = []
        for item in self.items:
            if item.is_terminal and (wanted is None or item.id in wanted):
                rebuilt.append(item.requeue())
                count += 1
            else:
                rebuilt.append(item)
        self.items = tuple(rebuilt)
        return count

    def get_item(self, item_id: str) -> Optional[Item]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def counts(self) -> Dict[str, int]:
        tally = Counter(item.status for item in self.items)
        return {status.value: tally.get(status, 0) for status in ItemStatus}

    def progress_percent(self) -> int:
        if not self.items:
            return 0
        completed = sum(1 for item in self.items if item.status is ItemStatus.COMPLETED)
        return round(completed / len(self.items) * 100)

    def metrics_summary(self) -> Dict[str, float]:
        return self.metrics.get_summary("process_item")
