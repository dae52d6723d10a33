"""Shared test fixtures and protocol-conforming fakes."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from duet_chat.l1_entities.config import AppConfig
from duet_chat.l1_entities.message import Message
from duet_chat.l1_entities.turn import Turn
from duet_chat.l3_interface_adapters.gateways.memory_message_store import MemoryMessageStore
from duet_chat.l4_frameworks_and_drivers.infra_config import build_app_config

BASE_TIME = datetime(2025, 3, 1, 12, 0, 0, tzinfo=UTC)

# --- Protocol-conforming Fakes ---


class FakeAIResponder:
    """Fake AI responder for L2 use case tests."""

    def __init__(self, response: str | None = 'Fake AI response'):
        self._response = response
        self._error: Exception | None = None
        self.generate_calls: list[tuple[str, list[Turn]]] = []
        self._connectivity = (True, '')

    async def generate(self, model: str, turns: list[Turn]) -> str | None:
        self.generate_calls.append((model, list(turns)))
        if self._error is not None:
            raise self._error
        return self._response

    def check_connectivity(self) -> tuple[bool, str]:
        return self._connectivity

    def set_response(self, response: str | None) -> None:
        self._response = response

    def set_error(self, error: Exception | None) -> None:
        self._error = error

    def set_connectivity(self, ok: bool, msg: str = '') -> None:
        self._connectivity = (ok, msg)


class FakeMediaHost:
    """Fake media host that returns a deterministic URL per uploaded file."""

    def __init__(self, base_url: str = 'https://cdn.example.com/img'):
        self._base_url = base_url
        self._error: Exception | None = None
        self.upload_calls: list[Path] = []

    async def upload(self, path: Path) -> str:
        self.upload_calls.append(path)
        if self._error is not None:
            raise self._error
        return f'{self._base_url}/{path.name}'

    def set_error(self, error: Exception | None) -> None:
        self._error = error


class FakeMessageCache:
    """Fake message cache for L3 controller tests."""

    def __init__(self, messages: list[Message] | None = None):
        self._messages = list(messages or [])
        self.save_calls: list[list[Message]] = []
        self._load_error: Exception | None = None
        self._save_error: Exception | None = None

    def load(self) -> list[Message]:
        if self._load_error is not None:
            raise self._load_error
        return list(self._messages)

    def save(self, messages: list[Message]) -> Path:
        if self._save_error is not None:
            raise self._save_error
        self.save_calls.append(list(messages))
        self._messages = list(messages)
        return Path('/fake/cache/messages.json')

    def set_load_error(self, error: Exception | None) -> None:
        self._load_error = error

    def set_save_error(self, error: Exception | None) -> None:
        self._save_error = error


class FailingStore(MemoryMessageStore):
    """Memory store whose writes fail after *fail_after* successful adds."""

    def __init__(self, error: Exception, fail_after: int = 0):
        super().__init__()
        self._error = error
        self._remaining = fail_after

    async def add(self, message: Message) -> Message:
        if self._remaining <= 0:
            raise self._error
        self._remaining -= 1
        return await super().add(message)


# --- Builders ---


def make_message(
    index: int,
    role: str = 'user',
    speaker: str = '阿庭',
    content: str | None = None,
    image_url: str | None = None,
) -> Message:
    """Stored message with a deterministic id and timestamp ``index`` seconds after BASE_TIME."""
    return Message(
        id=f'm{index:04d}',
        role=role,
        speaker=speaker if role == 'user' else 'AI',
        content=content if content is not None else f'message {index}',
        image_url=image_url,
        timestamp=BASE_TIME + timedelta(seconds=index),
    )


def make_history(count: int) -> list[Message]:
    return [make_message(i, speaker='阿庭' if i % 2 == 0 else '阿金') for i in range(count)]


# --- Standard Fixtures ---


@pytest.fixture
def default_config() -> AppConfig:
    return build_app_config({})


@pytest.fixture
def memory_store() -> MemoryMessageStore:
    return MemoryMessageStore()


@pytest.fixture
def fake_ai() -> FakeAIResponder:
    return FakeAIResponder()


@pytest.fixture
def fake_media() -> FakeMediaHost:
    return FakeMediaHost()


@pytest.fixture
def sample_image(tmp_path: Path) -> Path:
    p = tmp_path / 'cat.png'
    p.write_bytes(b'\x89PNG\r\n\x1a\nfake-image-bytes')
    return p


@pytest.fixture
def sample_config_yaml(tmp_path: Path) -> Path:
    content = """\
room:
  title: "測試聊天室"
  speakers: ["Alice", "Bob"]
  default_speaker: "Bob"
assistant:
  model: "gemini-1.5-flash"
  context_window: 20
feed:
  scroll_tolerance: 3
store_backend: memory
"""
    p = tmp_path / 'config.yaml'
    p.write_text(content, encoding='utf-8')
    return p
