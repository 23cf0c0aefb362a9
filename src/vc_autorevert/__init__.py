"""Keep file-visiting buffers in sync with Git operations."""

__all__ = [
    "adapters",
    "buffer",
    "config",
    "revert",
    "runtime",
    "vc",
]

__version__ = "0.1.0"
