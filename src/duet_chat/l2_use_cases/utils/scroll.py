"""Scroll-position math for the feed view."""

from __future__ import annotations

DEFAULT_TOLERANCE = 20


def is_pinned_to_bottom(
    scroll_height: float,
    scroll_top: float,
    client_height: float,
    tolerance: float = DEFAULT_TOLERANCE,
) -> bool:
    """True when the visible region reaches the end of the content, within *tolerance*."""
    return scroll_height - scroll_top <= client_height + tolerance
