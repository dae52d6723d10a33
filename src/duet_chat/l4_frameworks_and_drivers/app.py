"""Textual App — chat room TUI: compose, feed rendering, and worker routing."""

from __future__ import annotations

import logging
from pathlib import Path

from textual.app import App as TextualApp
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Button, Input, Select, Static

from duet_chat.l1_entities.config import AppConfig
from duet_chat.l1_entities.errors import SessionBusyError
from duet_chat.l1_entities.message import Message
from duet_chat.l3_interface_adapters.controllers.session_controller import ChatSessionController
from duet_chat.l4_frameworks_and_drivers.logging_setup import setup_file_logging
from duet_chat.l4_frameworks_and_drivers.messages import FeedUpdated, ReplyReady, UploadFinished
from duet_chat.l4_frameworks_and_drivers.widgets.alert_modal import AlertModal
from duet_chat.l4_frameworks_and_drivers.widgets.feed_panel import FeedPanel
from duet_chat.l4_frameworks_and_drivers.widgets.help_modal import HelpModal
from duet_chat.l4_frameworks_and_drivers.widgets.status_bar import StatusBar

log = logging.getLogger('duet.app')

AI_ACTIVITY = 'AI 正在回應中...'
UPLOAD_ACTIVITY = '圖片上傳中...'
UPLOAD_FAILED = '圖片上傳失敗，請稍後再試。'


class ChatApp(TextualApp):
    """Main TUI application for the two-person chat room."""

    CSS_PATH = 'app.tcss'

    BINDINGS = [
        Binding('ctrl+q', 'quit_app', 'Quit', priority=True),
        Binding('ctrl+a', 'ask_ai', 'Ask AI', priority=True),
        Binding('ctrl+t', 'switch_speaker', 'Switch speaker', priority=True),
        Binding('ctrl+b', 'scroll_to_latest', 'Latest', priority=True),
        Binding('f1', 'show_help', 'Help', priority=True),
    ]

    def __init__(
        self,
        config: AppConfig,
        controller: ChatSessionController,
        log_dir: Path | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self._config = config
        self._controller = controller
        if log_dir is not None:
            setup_file_logging(log_dir)

    def compose(self) -> ComposeResult:
        speaker = self._controller.state.speaker
        yield Static(f'  {self._config.room.title}', id='header')
        with Horizontal(id='speaker-row'):
            yield Static('你是誰？', id='speaker-label')
            yield Select(
                [(name, name) for name in self._controller.speakers],
                value=speaker,
                allow_blank=False,
                id='speaker-select',
            )
        yield FeedPanel(id='feed')
        yield Button('⬇ 查看最新訊息', id='jump-button')
        yield Input(placeholder=self._placeholder(speaker), id='message-input')
        with Horizontal(id='actions'):
            yield Button('送出訊息', id='send-button', variant='primary')
            yield Button('送給 AI', id='ai-button', variant='warning')
            yield Input(placeholder='圖片路徑…', id='image-input')
            yield Button('📷', id='upload-button', variant='success')
        yield StatusBar(id='status-bar')

    @staticmethod
    def _placeholder(speaker: str) -> str:
        return f'以 {speaker} 的身分說點什麼'

    async def on_mount(self) -> None:
        bar = self.query_one('#status-bar', StatusBar)
        bar.speaker = self._controller.state.speaker
        bar.keybinding_hints = r'\[Enter] send  \[^A] AI  \[^T] speaker  \[F1] help  \[^Q] quit'
        self.query_one('#jump-button', Button).display = False

        cached = self._controller.load_cached()
        if cached:
            await self._render_feed(cached)
            bar.feed_state = 'cached'

        feed = self.query_one('#feed', FeedPanel)
        self.watch(feed, 'scroll_y', self._on_feed_scrolled, init=False)
        self._controller.start_feed(self._on_snapshot)
        self.query_one('#message-input', Input).focus()

    def on_unmount(self) -> None:
        self._controller.stop_feed()

    # --- Feed ---

    def _on_snapshot(self, messages: tuple[Message, ...]) -> None:
        self.post_message(FeedUpdated(messages))

    async def _render_feed(self, messages: tuple[Message, ...]) -> None:
        feed = self.query_one('#feed', FeedPanel)
        pinned = not self._controller.state.show_jump_button
        await feed.show_messages(messages, self._controller.state.speaker, self._controller.speakers)
        self.query_one('#status-bar', StatusBar).message_count = len(messages)
        if pinned:
            feed.scroll_end(animate=False)

    async def on_feed_updated(self, message: FeedUpdated) -> None:
        await self._render_feed(message.messages)
        self.query_one('#status-bar', StatusBar).feed_state = 'live'

    def _on_feed_scrolled(self, _scroll_y: float) -> None:
        feed = self.query_one('#feed', FeedPanel)
        show = self._controller.on_scroll(
            feed.virtual_size.height,
            feed.scroll_y,
            feed.scrollable_content_region.height,
        )
        self.query_one('#jump-button', Button).display = show

    # --- Input routing ---

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == 'message-input':
            self._controller.set_draft(event.value)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == 'message-input':
            self.action_send()
        elif event.input.id == 'image-input':
            self.action_upload()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        actions = {
            'send-button': self.action_send,
            'ai-button': self.action_ask_ai,
            'upload-button': self.action_upload,
            'jump-button': self.action_scroll_to_latest,
        }
        handler = actions.get(event.button.id or '')
        if handler is not None:
            handler()

    async def on_select_changed(self, event: Select.Changed) -> None:
        if event.select.id != 'speaker-select' or event.value is Select.BLANK:
            return
        self._apply_speaker(str(event.value))
        await self._render_feed(self._controller.state.messages)

    def _apply_speaker(self, speaker: str) -> None:
        self._controller.set_speaker(speaker)
        self.query_one('#message-input', Input).placeholder = self._placeholder(speaker)
        self.query_one('#status-bar', StatusBar).speaker = speaker

    def _set_busy(self, activity: str) -> None:
        """Reflect the controller's loading flag in the UI: disable inputs and show activity."""
        for widget_id in ('#message-input', '#send-button', '#ai-button', '#image-input', '#upload-button'):
            self.query_one(widget_id).disabled = bool(activity)
        self.query_one('#status-bar', StatusBar).activity = activity
        if not activity:
            self.query_one('#message-input', Input).focus()

    # --- Workers ---

    def action_send(self) -> None:
        if self._controller.state.loading:
            return
        text_input = self.query_one('#message-input', Input)
        text = text_input.value
        if not text.strip():
            return
        if self._controller.routes_to_ai():
            self.action_ask_ai()
            return
        text_input.value = ''

        async def _send_task() -> None:
            try:
                await self._controller.send(text)
            except Exception as e:
                log.error('Send failed: %s', e, exc_info=True)
                text_input.value = text
                self.notify(f'Send failed: {e}', severity='error', timeout=8)

        self.run_worker(_send_task, group='send')

    def action_ask_ai(self) -> None:
        if self._controller.state.loading:
            self.notify('AI 正在回應中，請稍候', severity='warning', timeout=3)
            return
        text_input = self.query_one('#message-input', Input)
        text = text_input.value
        if not text.strip():
            return
        text_input.value = ''
        self._set_busy(AI_ACTIVITY)

        async def _ai_task() -> None:
            try:
                exchange = await self._controller.ask_ai(text)
            except SessionBusyError as e:
                text_input.value = text
                self.notify(str(e), severity='warning', timeout=3)
                return
            except Exception as e:
                log.error('AI invocation failed: %s', e, exc_info=True)
                text_input.value = text
                self.notify(f'Send failed: {e}', severity='error', timeout=8)
                return
            finally:
                self._set_busy('')
            if exchange.reply is not None:
                self.post_message(ReplyReady(content=exchange.reply.content, error=exchange.error))

        self.run_worker(_ai_task, exclusive=True, group='ai')

    def action_upload(self) -> None:
        if self._controller.state.loading:
            self.notify('Another request is still running', severity='warning', timeout=3)
            return
        picker = self.query_one('#image-input', Input)
        raw = picker.value.strip()
        if not raw:
            self.notify('Enter an image path first', timeout=3)
            return
        self._set_busy(UPLOAD_ACTIVITY)

        async def _upload_task() -> None:
            try:
                result = await self._controller.upload_image(Path(raw).expanduser())
            except SessionBusyError as e:
                self.notify(str(e), severity='warning', timeout=3)
                return
            except Exception as e:
                log.error('Image message failed: %s', e, exc_info=True)
                self.post_message(UploadFinished(url=None, error=str(e)))
                return
            finally:
                picker.value = ''
                self._set_busy('')
            self.post_message(UploadFinished(url=result.message.image_url if result.ok else None, error=result.error))

        self.run_worker(_upload_task, exclusive=True, group='upload')

    # --- Worker results ---

    def on_reply_ready(self, message: ReplyReady) -> None:
        if message.error:
            self.notify(f'AI request failed: {message.error} (see duet_debug.log)', severity='error', timeout=8)

    def on_upload_finished(self, message: UploadFinished) -> None:
        if message.error:
            self.push_screen(AlertModal(title=UPLOAD_FAILED, detail=message.error))

    # --- Actions ---

    def action_switch_speaker(self) -> None:
        speaker = self._controller.next_speaker()
        self._apply_speaker(speaker)
        self.query_one('#speaker-select', Select).value = speaker

    def action_scroll_to_latest(self) -> None:
        self.query_one('#feed', FeedPanel).scroll_end(animate=False)
        self._controller.scroll_to_bottom()
        self.query_one('#jump-button', Button).display = False

    def action_show_help(self) -> None:
        if isinstance(self.screen, HelpModal):
            self.screen.dismiss()
            return

        room = self._config.room
        assistant = self._config.assistant
        lines = [
            f'**Room:** {room.title}\n',
            f'**Speakers:** {", ".join(room.speakers)}\n',
            f'**Assistant model:** {assistant.model} (last {assistant.context_window} messages as context)\n',
        ]
        if assistant.trigger_keywords:
            markers = ', '.join(f'`{kw}`' for kw in assistant.trigger_keywords)
            lines.append(f'**AI markers:** messages containing {markers} are sent to the AI\n')
        lines.extend(
            [
                '',
                '### Keybindings',
                '| Key | Action |',
                '|-----|--------|',
                '| `Enter` | Send message (or upload, in the image path field) |',
                '| `Ctrl+A` | Send message to the AI |',
                '| `Ctrl+T` | Switch speaker |',
                '| `Ctrl+B` | Jump to latest message |',
                '| `c` | Copy conversation (feed focused) |',
                '| `F1` | Toggle this help |',
                '| `Ctrl+Q` | Quit |',
            ]
        )
        self.push_screen(HelpModal(body_md='\n'.join(lines)))

    def action_quit_app(self) -> None:
        self._controller.stop_feed()
        self.exit()
