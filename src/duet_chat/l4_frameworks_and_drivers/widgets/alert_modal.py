"""Alert modal — blocking notice the user must dismiss."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Static


class AlertModal(ModalScreen[None]):
    """Modal screen that blocks input until dismissed with Escape or Enter."""

    DEFAULT_CSS = """
    AlertModal {
        align: center middle;
    }

    AlertModal > VerticalScroll {
        width: 60%;
        max-width: 80;
        height: auto;
        max-height: 60%;
        background: $surface;
        border: thick $error;
        padding: 1 2;
    }

    AlertModal > VerticalScroll > #alert-title {
        text-style: bold;
        color: $error;
        margin-bottom: 1;
    }

    AlertModal > VerticalScroll > #alert-detail {
        color: $text-muted;
    }

    AlertModal > VerticalScroll > #alert-hint {
        text-align: center;
        color: $text-muted;
        margin-top: 1;
    }
    """

    BINDINGS = [
        ('escape', 'dismiss', 'Close'),
        ('enter', 'dismiss', 'Close'),
    ]

    def __init__(self, title: str, detail: str = '', **kwargs) -> None:
        super().__init__(**kwargs)
        self._title = title
        self._detail = detail

    def compose(self) -> ComposeResult:
        with VerticalScroll():
            yield Static(self._title, id='alert-title')
            if self._detail:
                yield Static(self._detail, id='alert-detail', markup=False)
            yield Static('Press Enter or Escape to close', id='alert-hint')
