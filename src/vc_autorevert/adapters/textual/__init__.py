"""Textual host for the revert coordinator."""

from .controller import TextualRevertAdapter, TextualRevertHooks, describe_pass

__all__ = ["TextualRevertAdapter", "TextualRevertHooks", "describe_pass"]
