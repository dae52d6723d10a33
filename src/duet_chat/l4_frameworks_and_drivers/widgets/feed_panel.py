"""Feed panel — scrolling list of chat bubbles rebuilt from each store snapshot."""

from __future__ import annotations

import pyperclip
from rich.text import Text
from textual.binding import Binding
from textual.containers import Horizontal, VerticalScroll
from textual.widgets import Static

from duet_chat.l1_entities.message import Message, format_timestamp

AI_COLOR = '#fff59d'
SPEAKER_COLORS = ('#90caf9', '#a5d6a7')
OTHER_COLOR = '#f1f1f1'


def bubble_color(message: Message, speakers: list[str]) -> str:
    if message.is_assistant:
        return AI_COLOR
    if message.speaker in speakers:
        return SPEAKER_COLORS[speakers.index(message.speaker) % len(SPEAKER_COLORS)]
    return OTHER_COLOR


def plain_line(message: Message) -> str:
    """One-line plain-text rendering used for clipboard export."""
    stamp = format_timestamp(message.timestamp)
    body = message.content
    if message.has_image:
        body = f'{body} [image] {message.image_url}'.strip()
    return f'[{stamp}] {message.speaker}: {body}'


class MessageBubble(Static):
    """One message: optional speaker line, body, image link, timestamp."""

    DEFAULT_CSS = """
    MessageBubble {
        width: auto;
        max-width: 80%;
        height: auto;
        padding: 0 1;
        color: black;
    }
    """

    def __init__(self, message: Message, *, show_speaker: bool, color: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self.message = message
        self._show_speaker = show_speaker
        self.styles.background = color

    def render(self) -> Text:
        msg = self.message
        text = Text()
        if self._show_speaker:
            text.append(f'{msg.speaker}\n', style='bold #333333')
        if msg.content:
            text.append(msg.content)
        if msg.has_image:
            if msg.content:
                text.append('\n')
            text.append(f'🖼 {msg.image_url}', style=f'underline link {msg.image_url}')
        stamp = format_timestamp(msg.timestamp)
        if stamp:
            text.append(f'\n{stamp}', style='#555555')
        return text


class FeedPanel(VerticalScroll):
    """Chat feed. Own messages align right, everyone else's left."""

    DEFAULT_CSS = """
    FeedPanel {
        border: solid $primary;
        height: 1fr;
        scrollbar-size: 1 1;
    }
    FeedPanel:focus {
        border: solid $accent;
    }
    FeedPanel > .feed-row {
        height: auto;
        margin-bottom: 1;
    }
    FeedPanel > .feed-row.mine {
        align-horizontal: right;
    }
    """

    BINDINGS = [Binding('c', 'copy_content', 'Copy', show=False)]

    def __init__(self, title: str = 'Messages', **kwargs) -> None:
        super().__init__(**kwargs)
        self.border_title = title
        self.rendered_messages: tuple[Message, ...] = ()

    async def show_messages(self, messages: tuple[Message, ...], me: str, speakers: list[str]) -> None:
        """Replace all bubbles with *messages*."""
        rows = []
        for msg in messages:
            is_mine = msg.speaker == me and not msg.is_assistant
            show_speaker = msg.is_assistant or (not is_mine and bool(msg.speaker))
            bubble = MessageBubble(msg, show_speaker=show_speaker, color=bubble_color(msg, speakers))
            rows.append(Horizontal(bubble, classes='feed-row mine' if is_mine else 'feed-row'))
        await self.remove_children()
        if rows:
            await self.mount_all(rows)
        self.rendered_messages = messages

    def action_copy_content(self) -> None:
        """Copy the visible conversation to the system clipboard."""
        if not self.rendered_messages:
            self.app.notify('No messages to copy', severity='warning', timeout=2)
            return
        pyperclip.copy('\n'.join(plain_line(m) for m in self.rendered_messages))
        self.app.notify('Conversation copied', timeout=2)
