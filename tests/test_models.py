"""Tests for core data models."""

import base64

import pytest
from pydantic import ValidationError

from studio_batch.core.models import (
    DEFAULT_MODEL,
    Archive,
    BatchConfig,
    Item,
    ItemStatus,
    ProcessingMode,
    studio_filename,
)
from studio_batch.ingestion.handles import UploadedFile
from studio_batch.testing.fakes import FakeDirectoryHandle, FakeFileHandle


def make_item(**overrides) -> Item:
    source = UploadedFile("shoe.png", b"png-bytes", "shoes/shoe.png")
    fields = {"name": "shoe.png", "source": source, "relative_path": "shoes/"}
    fields.update(overrides)
    return Item(**fields)


class TestBatchConfig:
    """Tests for BatchConfig."""

    def test_batch_config_defaults(self):
        """Test BatchConfig default values."""
        config = BatchConfig()
        assert config.mode is ProcessingMode.AI
        assert config.target_width == 800
        assert config.aspect_ratio == "1:1"
        assert config.model == DEFAULT_MODEL
        assert config.concurrency == 3
        assert "{target_width}" in config.prompt

    def test_batch_config_mode_from_string(self):
        """Test that the mode accepts its string value."""
        config = BatchConfig(mode="resize")
        assert config.mode is ProcessingMode.RESIZE

    @pytest.mark.parametrize(
        "options",
        [
            {"target_width": 0},
            {"concurrency": 0},
            {"aspect_ratio": "2:1"},
            {"mode": "upscale"},
        ],
    )
    def test_batch_config_rejects_invalid_values(self, options):
        """Test that invalid options fail validation."""
        with pytest.raises(ValidationError):
            BatchConfig(**options)

    def test_batch_config_is_read_only(self):
        """Test that a config cannot change once built."""
        config = BatchConfig()
        with pytest.raises(ValidationError):
            config.concurrency = 10

    def test_render_prompt_fills_target_width(self):
        """Test that the prompt names the configured width."""
        config = BatchConfig(target_width=1024)
        rendered = config.render_prompt()
        assert "1024px * 1024px" in rendered
        assert "{target_width}" not in rendered

    def test_render_prompt_without_placeholder(self):
        """Test that a custom prompt without the placeholder is sent as is."""
        config = BatchConfig(prompt="white background")
        assert config.render_prompt() == "white background"


class TestItem:
    """Tests for the Item lifecycle."""

    def test_item_creation_defaults(self):
        """Test a freshly discovered item."""
        item = make_item()
        assert item.status is ItemStatus.PENDING
        assert item.result is None
        assert item.error is None
        assert item.result_url is None
        assert item.progress == 0
        assert len(item.id) == 32

    def test_item_ids_are_unique(self):
        """Test that every item gets its own id."""
        assert make_item().id != make_item().id

    def test_item_is_immutable(self):
        """Test that items cannot be mutated in place."""
        item = make_item()
        with pytest.raises(ValidationError):
            item.status = ItemStatus.PROCESSING

    def test_claim_then_complete(self):
        """Test pending -> processing -> completed."""
        item = make_item()
        processing = item.claim()
        completed = processing.complete(b"result")

        assert item.status is ItemStatus.PENDING
        assert processing.status is ItemStatus.PROCESSING
        assert completed.status is ItemStatus.COMPLETED
        assert completed.result == b"result"
        assert completed.error is None
        assert completed.progress == 100
        assert completed.id == item.id
        assert completed.relative_path == item.relative_path

    def test_claim_then_fail(self):
        """Test pending -> processing -> error."""
        failed = make_item().claim().fail("boom")
        assert failed.status is ItemStatus.ERROR
        assert failed.error == "boom"
        assert failed.result is None
        assert failed.result_url is None

    def test_fail_with_empty_message_uses_default(self):
        """Test that an empty failure message still leaves an error."""
        failed = make_item().claim().fail("")
        assert failed.error == "Operation failed"

    def test_errored_item_can_be_claimed_again(self):
        """Test that a failed item can be retried in a later run."""
        retried = make_item().claim().fail("boom").claim()
        assert retried.status is ItemStatus.PROCESSING
        assert retried.error is None

    def test_completed_item_cannot_be_claimed(self):
        """Test that completed work is never claimed again."""
        completed = make_item().claim().complete(b"result")
        with pytest.raises(ValueError):
            completed.claim()

    @pytest.mark.parametrize("transition", ["complete", "fail"])
    def test_pending_item_cannot_finish_without_claim(self, transition):
        """Test that terminal states are only reachable from processing."""
        item = make_item()
        with pytest.raises(ValueError):
            if transition == "complete":
                item.complete(b"result")
            else:
                item.fail("boom")

    def test_completed_item_cannot_be_failed(self):
        """Test that no transition leaves a terminal state."""
        completed = make_item().claim().complete(b"result")
        with pytest.raises(ValueError):
            completed.fail("late failure")

    def test_complete_requires_result(self):
        """Test that an empty result is rejected."""
        with pytest.raises(ValueError):
            make_item().claim().complete(b"")

    def test_requeue_clears_outcome(self):
        """Test explicit requeue of a completed item."""
        requeued = make_item().claim().complete(b"result").requeue()
        assert requeued.status is ItemStatus.PENDING
        assert requeued.result is None
        assert requeued.progress == 0

    @pytest.mark.parametrize(
        "fields",
        [
            {"status": ItemStatus.COMPLETED},
            {"status": ItemStatus.COMPLETED, "result": b"x", "error": "boom"},
            {"status": ItemStatus.ERROR},
            {"status": ItemStatus.ERROR, "error": "boom", "result": b"x"},
            {"status": ItemStatus.PENDING, "result": b"x"},
        ],
    )
    def test_outcome_invariant_enforced_on_construction(self, fields):
        """Test that exactly one of result/error is set for terminal items."""
        with pytest.raises(ValidationError):
            make_item(**fields)

    def test_result_url_is_png_data_url(self):
        """Test the data URL of a completed result."""
        completed = make_item().claim().complete(b"\x89PNG")
        assert completed.result_url == "data:image/png;base64," + base64.b64encode(b"\x89PNG").decode()

    def test_is_live_needs_both_handles(self):
        """Test live detection."""
        handle = FakeFileHandle("shoe.png", b"data")
        parent = FakeDirectoryHandle("shoes")
        assert make_item(handle=handle, parent_handle=parent).is_live
        assert not make_item(handle=handle).is_live
        assert not make_item().is_live

    def test_source_must_be_readable(self):
        """Test that the source reference must look like an image source."""
        with pytest.raises(ValidationError):
            make_item(source="not-a-source")


class TestStudioFilename:
    """Tests for output naming."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("shoe.jpg", "shoe_studio.png"),
            ("shoe.front.jpeg", "shoe_studio.png"),
            ("noext", "noext_studio.png"),
        ],
    )
    def test_studio_filename(self, name, expected):
        """Test that the basename up to the first dot gets the studio suffix."""
        assert studio_filename(name) == expected
        assert make_item(name=name).studio_filename == expected


class TestArchive:
    """Tests for the Archive model."""

    def test_timestamped_name(self):
        """Test archive naming."""
        assert Archive.timestamped_name(1700000000123) == "studio_batch_1700000000123.zip"

    def test_timestamped_name_defaults_to_now(self):
        """Test that the default name carries a millisecond timestamp."""
        name = Archive.timestamped_name()
        assert name.startswith("studio_batch_")
        assert len(name.removeprefix("studio_batch_").removesuffix(".zip")) >= 13

    def test_save_writes_file(self, tmp_path):
        """Test saving an archive to disk."""
        archive = Archive(filename="studio_batch_1.zip", data=b"zip", entries=["a_studio.png"])
        target = archive.save(tmp_path / "out")
        assert target == tmp_path / "out" / "studio_batch_1.zip"
        assert target.read_bytes() == b"zip"
