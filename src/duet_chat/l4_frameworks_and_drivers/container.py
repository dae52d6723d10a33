"""Dependency container — composition root for wiring all layers together."""

from __future__ import annotations

from pathlib import Path

from duet_chat.l1_entities.config import AppConfig
from duet_chat.l2_use_cases.ports.ai_responder import AIResponder
from duet_chat.l2_use_cases.ports.media_host import MediaHost
from duet_chat.l2_use_cases.ports.message_cache import MessageCache
from duet_chat.l2_use_cases.ports.message_store import MessageStore
from duet_chat.l3_interface_adapters.controllers.session_controller import ChatSessionController
from duet_chat.l3_interface_adapters.gateways.cloudinary_media_host import CloudinaryMediaHost
from duet_chat.l3_interface_adapters.gateways.file_message_cache import FileMessageCache
from duet_chat.l3_interface_adapters.gateways.firestore_message_store import FirestoreMessageStore
from duet_chat.l3_interface_adapters.gateways.memory_message_store import MemoryMessageStore
from duet_chat.l3_interface_adapters.gateways.paths import MESSAGE_CACHE_PATH
from duet_chat.l4_frameworks_and_drivers.infra_config import InfraConfig


class DependencyContainer:
    """Creates and wires all concrete instances. Easy to override for testing."""

    def __init__(
        self,
        config: AppConfig,
        infra: InfraConfig | None = None,
        speaker: str | None = None,
        cache_path: Path = MESSAGE_CACHE_PATH,
    ) -> None:
        self.config = config
        self.infra = infra or InfraConfig()

        self.store: MessageStore = self._build_store(self.infra)
        self.ai_responder: AIResponder = self._build_ai_responder(self.infra)
        self.media_host: MediaHost = CloudinaryMediaHost(
            cloud_name=self.infra.cloudinary.cloud_name,
            upload_preset=self.infra.cloudinary.upload_preset,
            api_base=self.infra.cloudinary.api_base,
            timeout=self.infra.cloudinary.timeout,
        )
        # The cache mirrors a remote feed; an in-memory room has nothing worth mirroring.
        self.cache: MessageCache | None = (
            FileMessageCache(cache_path) if self.infra.store_backend == 'firestore' else None
        )

        self.controller = ChatSessionController(
            config=config,
            store=self.store,
            ai_responder=self.ai_responder,
            media_host=self.media_host,
            cache=self.cache,
            speaker=speaker,
        )

    @staticmethod
    def _build_store(infra: InfraConfig) -> MessageStore:
        if infra.store_backend == 'memory':
            return MemoryMessageStore()
        fs = infra.firestore
        if not fs.project_id:
            raise ValueError('Firestore project id is not configured (set FIREBASE_PROJECT_ID or firestore.project_id)')
        return FirestoreMessageStore(
            project_id=fs.project_id,
            api_key=fs.api_key,
            collection=fs.collection,
            database=fs.database,
            poll_interval=fs.poll_interval,
        )

    @staticmethod
    def _build_ai_responder(infra: InfraConfig) -> AIResponder:
        if infra.ai_provider == 'openai':
            from duet_chat.l3_interface_adapters.gateways.openai_ai_responder import (  # noqa: PLC0415 -- deferred: openai SDK only loaded when selected
                OpenAICompatAIResponder,
            )

            return OpenAICompatAIResponder(api_key=infra.openai.api_key, base_url=infra.openai.base_url)

        if infra.ai_provider == 'ollama':
            from duet_chat.l3_interface_adapters.gateways.ollama_ai_responder import (  # noqa: PLC0415 -- deferred: ollama client only loaded when selected
                OllamaAIResponder,
            )

            return OllamaAIResponder(host=infra.ollama.host)

        from duet_chat.l3_interface_adapters.gateways.gemini_ai_responder import (  # noqa: PLC0415 -- deferred: default provider
            GeminiAIResponder,
        )

        return GeminiAIResponder(
            api_key=infra.gemini.api_key,
            base_url=infra.gemini.base_url,
            timeout=infra.gemini.timeout,
        )
