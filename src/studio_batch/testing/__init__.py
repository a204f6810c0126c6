"""Testing utilities and fakes for the studio batch pipeline."""

from .fakes import (
    FakeCredentialProvider,
    FakeDirectoryHandle,
    FakeFileHandle,
    FakeTransform,
    build_fake_tree,
    create_test_image,
)

__all__ = [
    "FakeCredentialProvider",
    "FakeDirectoryHandle",
    "FakeFileHandle",
    "FakeTransform",
    "build_fake_tree",
    "create_test_image",
]
