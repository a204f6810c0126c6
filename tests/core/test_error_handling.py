# tests/core/test_error_handling.py

import asyncio
import logging
from unittest import mock

import pytest
from PIL import UnidentifiedImageError as PILUnidentifiedImageError

from studio_batch.core.error_handling import (
    BatchOperationContextManager,
    retry_transient,
    with_error_handling,
)
from studio_batch.core.exceptions import (
    AuthorizationError,
    ConfigurationError,
    DecodeError,
    TerminalTransformError,
    TransformError,
    TransientTransformError,
)


# --- Tests for @with_error_handling decorator ---

def test_with_error_handling_success():
    """Test that return values pass through untouched."""
    @with_error_handling
    def ok(value):
        return value * 2

    assert ok(21) == 42


def test_with_error_handling_maps_unidentified_image():
    """Test that Pillow's unidentified image error becomes a DecodeError."""
    @with_error_handling
    def decode():
        raise PILUnidentifiedImageError("cannot identify image file")

    with pytest.raises(DecodeError, match="Failed to identify image in decode"):
        decode()


@pytest.mark.parametrize("error", [OSError("truncated"), ValueError("bad size"), SyntaxError("bad header")])
def test_with_error_handling_maps_load_errors(error):
    """Test that loader failures become a DecodeError."""
    @with_error_handling
    def load():
        raise error

    with pytest.raises(DecodeError, match="Failed to load image for resizing") as exc_info:
        load()
    assert exc_info.value.__cause__ is error


def test_with_error_handling_reraises_pipeline_errors():
    """Test that pipeline errors are re-raised unchanged."""
    @with_error_handling
    def misconfigured():
        raise ConfigurationError("no width")

    with pytest.raises(ConfigurationError):
        misconfigured()


def test_with_error_handling_reraises_unknown_errors():
    """Test that unrelated exceptions propagate as they are."""
    @with_error_handling
    def broken():
        raise KeyError("missing")

    with pytest.raises(KeyError):
        broken()


# --- Tests for @retry_transient decorator ---

@pytest.fixture
def mock_sleep():
    with mock.patch("studio_batch.core.error_handling.sleep", new_callable=mock.AsyncMock) as sleep:
        yield sleep


def test_retry_transient_success_first_try(mock_sleep):
    """Test that a successful call is not retried."""
    calls = []

    @retry_transient()
    async def call():
        calls.append(1)
        return b"image"

    assert asyncio.run(call()) == b"image"
    assert len(calls) == 1
    mock_sleep.assert_not_awaited()


def test_retry_transient_recovers_after_rate_limit(mock_sleep):
    """Test that a 429 followed by success returns the result."""
    responses = [TransientTransformError("Too many requests", 429), b"image"]

    @retry_transient()
    async def call():
        outcome = responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    assert asyncio.run(call()) == b"image"
    assert mock_sleep.await_args_list == [mock.call(1.0)]


def test_retry_transient_gives_up_after_three_retries(mock_sleep):
    """Test that a persistent 503 is tried four times with 1s, 2s, 4s delays."""
    calls = []

    @retry_transient()
    async def call():
        calls.append(1)
        raise TransientTransformError("Service unavailable", 503)

    with pytest.raises(TerminalTransformError) as exc_info:
        asyncio.run(call())

    assert len(calls) == 4
    assert mock_sleep.await_args_list == [mock.call(1.0), mock.call(2.0), mock.call(4.0)]
    assert exc_info.value.status == 503
    assert str(exc_info.value) == "Service unavailable"


@pytest.mark.parametrize(
    "error",
    [TransformError("Bad request", 400), AuthorizationError("Requested entity was not found.", 404)],
)
def test_retry_transient_does_not_retry_other_errors(mock_sleep, error):
    """Test that non-transient failures surface on the first attempt."""
    calls = []

    @retry_transient()
    async def call():
        calls.append(1)
        raise error

    with pytest.raises(type(error)):
        asyncio.run(call())
    assert len(calls) == 1
    mock_sleep.assert_not_awaited()


def test_retry_transient_custom_schedule(mock_sleep):
    """Test custom retry count and backoff."""
    @retry_transient(max_retries=2, initial_delay=0.5, backoff_factor=3.0)
    async def call():
        raise TransientTransformError("Internal error", 500)

    with pytest.raises(TerminalTransformError):
        asyncio.run(call())
    assert mock_sleep.await_args_list == [mock.call(0.5), mock.call(1.5)]


# --- Tests for BatchOperationContextManager ---

def test_batch_context_collects_errors(caplog):
    """Test that reported item failures are kept and summarized."""
    caplog.set_level(logging.INFO)
    with BatchOperationContextManager("Test run") as batch:
        batch.add_error("boom", item_identifier="shoes/a.png")
        batch.add_error(ValueError("bad"), item_identifier="b.png")

    assert batch.errors == [
        {"item": "shoes/a.png", "error": "boom"},
        {"item": "b.png", "error": "bad"},
    ]
    assert "Test run completed with 2 error(s)." in caplog.text


def test_batch_context_success(caplog):
    """Test the summary of a clean run."""
    caplog.set_level(logging.INFO)
    with BatchOperationContextManager("Clean run") as batch:
        pass
    assert batch.errors == []
    assert "Clean run completed successfully." in caplog.text


def test_batch_context_does_not_suppress_exceptions():
    """Test that exceptions raised in the block propagate."""
    with pytest.raises(RuntimeError):
        with BatchOperationContextManager("Failing run"):
            raise RuntimeError("worker crashed")


def test_batch_context_groups_identical_errors(caplog):
    """Test that items failing with one message are summarized together."""
    caplog.set_level(logging.INFO)
    with BatchOperationContextManager("Grouped run") as batch:
        batch.add_error("quota exceeded", item_identifier="a.png")
        batch.add_error("bad image", item_identifier="b.png")
        batch.add_error("quota exceeded", item_identifier="c.png")

    assert batch.grouped_errors() == {"quota exceeded": ["a.png", "c.png"], "bad image": ["b.png"]}
    assert batch.failed_items == ["a.png", "b.png", "c.png"]
    assert "2 item(s) failed with 'quota exceeded': a.png, c.png" in caplog.text
