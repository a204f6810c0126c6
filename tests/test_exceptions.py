import pytest

from studio_batch.core.exceptions import (
    AuthorizationError,
    DecodeError,
    DeliveryWriteError,
    NoResultError,
    StudioBatchError,
    TerminalTransformError,
    TransformError,
    TransientTransformError,
)


@pytest.mark.parametrize(
    "error_class",
    [TransientTransformError, TerminalTransformError, AuthorizationError, NoResultError, DecodeError],
)
def test_transform_errors_share_base(error_class) -> None:
    assert issubclass(error_class, TransformError)
    assert issubclass(error_class, StudioBatchError)


def test_transform_error_carries_status() -> None:
    error = TransientTransformError("Service unavailable", 503)
    assert error.status == 503
    assert str(error) == "Service unavailable"


def test_transform_error_status_defaults_to_none() -> None:
    assert DecodeError("bad bytes").status is None


def test_delivery_error_is_not_a_transform_error() -> None:
    assert not issubclass(DeliveryWriteError, TransformError)
