"""ChatSessionController — orchestrates use cases, owns session state for the TUI."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from duet_chat.l1_entities.config import AppConfig
from duet_chat.l1_entities.errors import SessionBusyError
from duet_chat.l1_entities.message import Message
from duet_chat.l1_entities.session_state import SessionState
from duet_chat.l2_use_cases.ask_ai_use_case import AIExchange, AskAIUseCase, should_trigger_ai
from duet_chat.l2_use_cases.ports.ai_responder import AIResponder
from duet_chat.l2_use_cases.ports.media_host import MediaHost
from duet_chat.l2_use_cases.ports.message_cache import MessageCache
from duet_chat.l2_use_cases.ports.message_store import MessageStore, Subscription
from duet_chat.l2_use_cases.send_message_use_case import SendMessageUseCase
from duet_chat.l2_use_cases.upload_image_use_case import UploadImageUseCase, UploadResult
from duet_chat.l2_use_cases.utils.scroll import is_pinned_to_bottom

log = logging.getLogger('duet.controller')

FeedListener = Callable[[tuple[Message, ...]], None]


def _order_key(message: Message) -> tuple[bool, float]:
    # Pending writes (no server timestamp yet) sort last.
    ts = message.timestamp
    return (ts is None, ts.timestamp() if ts is not None else 0.0)


class ChatSessionController:
    """Central orchestrator bridging use cases to the TUI.

    Owns SessionState. The feed subscription only ever replaces
    ``state.messages`` with an immutable snapshot through apply_snapshot;
    every other mutation goes through the public methods below. The
    loading flag doubles as the guard that rejects overlapping AI
    invocations and uploads.
    """

    def __init__(
        self,
        config: AppConfig,
        store: MessageStore,
        ai_responder: AIResponder,
        media_host: MediaHost,
        cache: MessageCache | None = None,
        speaker: str | None = None,
    ) -> None:
        self._config = config
        self._store = store
        self._cache = cache if config.feed.cache_enabled else None

        self._send_uc = SendMessageUseCase(store)
        self._ask_uc = AskAIUseCase(store, ai_responder)
        self._upload_uc = UploadImageUseCase(media_host, store)

        self._subscription: Subscription | None = None
        self._listener: FeedListener | None = None

        self.state = SessionState(speaker=config.room.default_speaker)
        if speaker is not None:
            self.set_speaker(speaker)

    @property
    def speakers(self) -> list[str]:
        return list(self._config.room.speakers)

    @property
    def feed_active(self) -> bool:
        return self._subscription is not None

    # --- Feed ---

    def start_feed(self, listener: FeedListener | None = None) -> None:
        """Subscribe to the store. *listener* is called after every applied snapshot."""
        if self._subscription is not None:
            return
        self._listener = listener
        self._subscription = self._store.subscribe(self.apply_snapshot)
        log.info('Feed subscription started')

    def stop_feed(self) -> None:
        if self._subscription is None:
            return
        self._subscription.unsubscribe()
        self._subscription = None
        self._listener = None
        log.info('Feed subscription stopped')

    def apply_snapshot(self, messages: list[Message]) -> tuple[Message, ...]:
        """Replace the visible list with a full snapshot, ordered by timestamp ascending."""
        ordered = tuple(sorted(messages, key=_order_key))
        self.state.messages = ordered
        self.state.snapshots_received += 1
        log.debug('Snapshot #%d applied: %d messages', self.state.snapshots_received, len(ordered))

        if self._cache is not None:
            try:
                self._cache.save(list(ordered))
            except OSError as e:
                log.warning('Message cache write failed: %s', e)

        if self._listener is not None:
            self._listener(ordered)
        return ordered

    def load_cached(self) -> tuple[Message, ...]:
        """Seed the visible list from the local cache until the first snapshot arrives."""
        if self._cache is None or self.state.snapshots_received:
            return self.state.messages
        try:
            cached = self._cache.load()
        except (OSError, ValueError) as e:
            log.warning('Message cache unreadable, ignoring: %s', e)
            return self.state.messages
        self.state.messages = tuple(sorted(cached, key=_order_key))
        log.info('Loaded %d cached messages', len(cached))
        return self.state.messages

    # --- Draft ---

    def set_speaker(self, speaker: str) -> None:
        if speaker not in self._config.room.speakers:
            raise ValueError(f'Unknown speaker {speaker!r}; expected one of {self._config.room.speakers}')
        self.state.speaker = speaker

    def next_speaker(self) -> str:
        """Cycle to the next recognised identity and return it."""
        speakers = self._config.room.speakers
        idx = speakers.index(self.state.speaker)
        self.state.speaker = speakers[(idx + 1) % len(speakers)]
        return self.state.speaker

    def set_draft(self, text: str) -> None:
        self.state.draft = text

    def routes_to_ai(self) -> bool:
        """True when the current draft contains an AI trigger marker."""
        return should_trigger_ai(self.state.draft, self._config.assistant.trigger_keywords)

    # --- Operations ---

    async def send(self, text: str | None = None) -> Message | None:
        """Send *text* (default: the draft) as a plain message. No-op on blank input."""
        from_draft = text is None
        message = await self._send_uc.execute(self.state.draft if from_draft else text, self.state.speaker)
        if message is not None and from_draft:
            self.state.draft = ''
        return message

    async def ask_ai(self, text: str | None = None) -> AIExchange:
        """Send *text* (default: the draft) and append an AI reply.

        Raises SessionBusyError while another AI call or upload is in flight.
        """
        if text is None:
            text = self.state.draft
        if not text.strip():
            return AIExchange()
        self._acquire('AI request')
        self.state.draft = ''
        try:
            return await self._ask_uc.execute(
                text,
                self.state.speaker,
                self._config.assistant,
                self.speakers,
            )
        finally:
            self.state.loading = False

    async def upload_image(self, path: Path) -> UploadResult:
        """Upload an image as the current speaker. Raises SessionBusyError while another call runs."""
        self._acquire('upload')
        try:
            return await self._upload_uc.execute(path, self.state.speaker)
        finally:
            self.state.loading = False

    def _acquire(self, what: str) -> None:
        if self.state.loading:
            log.warning('Rejected %s: another request is in flight', what)
            raise SessionBusyError(f'Cannot start {what}: another request is still running')
        self.state.loading = True

    # --- Scroll ---

    def on_scroll(self, scroll_height: float, scroll_top: float, client_height: float) -> bool:
        """Update the jump-to-latest affordance from the feed's scroll metrics. Returns its visibility."""
        pinned = is_pinned_to_bottom(
            scroll_height,
            scroll_top,
            client_height,
            self._config.feed.scroll_tolerance,
        )
        self.state.show_jump_button = not pinned
        return self.state.show_jump_button

    def scroll_to_bottom(self) -> None:
        self.state.show_jump_button = False
