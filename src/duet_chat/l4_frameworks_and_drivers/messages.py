"""Textual Message subclasses — contracts between controller/workers and the App."""

from __future__ import annotations

from textual.message import Message

from duet_chat.l1_entities.message import Message as ChatMessage


class FeedUpdated(Message):
    """Posted from the store subscription whenever a new snapshot was applied."""

    def __init__(self, messages: tuple[ChatMessage, ...]) -> None:
        super().__init__()
        self.messages = messages


class ReplyReady(Message):
    """Posted by the AI worker when the assistant message has been written."""

    def __init__(self, content: str, error: str = '') -> None:
        super().__init__()
        self.content = content
        self.error = error


class UploadFinished(Message):
    """Posted by the upload worker on completion, successful or not."""

    def __init__(self, url: str | None, error: str = '') -> None:
        super().__init__()
        self.url = url
        self.error = error
