"""Status bar — bottom bar showing speaker, feed state, activity, and keybinding hints."""

from __future__ import annotations

from rich.cells import cell_len
from textual.reactive import reactive
from textual.widgets import Static


class StatusBar(Static):
    """Bottom status bar with feed state, in-flight activity, and keybinding hints."""

    DEFAULT_CSS = """
    StatusBar {
        dock: bottom;
        height: auto;
        background: $surface;
        color: $text;
        padding: 0 1;
        overflow: hidden hidden;
    }
    """

    speaker: reactive[str] = reactive('')
    feed_state: reactive[str] = reactive('connecting')
    message_count: reactive[int] = reactive(0)
    activity: reactive[str] = reactive('')
    keybinding_hints: reactive[str] = reactive('')

    def render(self) -> str:
        if self.feed_state == 'live':
            feed_icon = '● Live'
        elif self.feed_state == 'cached':
            feed_icon = '◐ Cached'
        else:
            feed_icon = '○ Connecting'

        left_parts = [feed_icon]
        if self.speaker:
            left_parts.append(f'as {self.speaker}')
        left_parts.append(f'{self.message_count} msgs')
        if self.activity:
            left_parts.append(f'⟳ {self.activity}')
        left = ' │ '.join(left_parts)

        content_width = (self.size.width or 80) - 2
        hints = self.keybinding_hints
        if hints:
            hints_width = cell_len(hints.replace(r'\[', '['))
            gap = content_width - cell_len(left) - hints_width
            if gap >= 2:
                left = left + ' ' * gap + hints
        return left
