"""Short per-buffer version-control annotations such as ``Git-main``."""

from __future__ import annotations

from typing import Optional

from .status import StatusTag

_SEPARATORS = {
    StatusTag.UP_TO_DATE: "-",
    StatusTag.ADDED: "@",
    StatusTag.CONFLICTED: "!",
    StatusTag.REMOVED: "!",
    StatusTag.MISSING: "?",
}


def mode_line_string(
    backend_name: str, tag: Optional[StatusTag], revision: Optional[str]
) -> Optional[str]:
    """Render ``<backend><sep><revision>``; ``None`` for unversioned files."""

    if tag is None or not tag.registered:
        return None
    separator = _SEPARATORS.get(tag, ":")
    return f"{backend_name}{separator}{revision or '?'}"


__all__ = ["mode_line_string"]
