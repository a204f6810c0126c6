"""Studio batch: folder-to-studio image pipeline."""

__version__ = "0.1.0"
