"""Infrastructure provider configs — lives in L4, not domain."""

from __future__ import annotations

import copy
import os
from typing import Literal

from pydantic import BaseModel, Field

from duet_chat.l1_entities.config import AppConfig
from duet_chat.l3_interface_adapters.gateways.yaml_config_loader import deep_merge

APP_CONFIG_DEFAULTS: dict = {
    'room': {
        'title': '阿庭與阿金聊天室 🤖',
        'speakers': ['阿庭', '阿金'],
        'default_speaker': '阿庭',
    },
    'assistant': {
        'model': 'gemini-2.0-flash',
        'context_window': 100,
        'system_prompt': '你是一個聊天室助手，能辨識並回應對話中的不同角色。角色包括{speakers}，請根據上下文回應對話。',
        'fallback_message': '⚠️ 無法取得 AI 回應，請稍後再試。',
        'malformed_placeholder': '[⚠️ AI 沒有正確回應]',
        'trigger_keywords': [],
        'include_speaker_labels': False,
    },
    'feed': {
        'scroll_tolerance': 1,
        'cache_enabled': True,
    },
}


def build_app_config(raw: dict) -> AppConfig:
    """Merge *raw* user overrides on top of defaults, then validate."""
    merged = copy.deepcopy(APP_CONFIG_DEFAULTS)
    deep_merge(merged, raw)
    return AppConfig.model_validate(merged)


def _env(name: str) -> str | None:
    return os.environ.get(name) or None


class FirestoreProviderConfig(BaseModel):
    project_id: str | None = Field(default_factory=lambda: _env('FIREBASE_PROJECT_ID'))
    api_key: str | None = Field(default_factory=lambda: _env('FIREBASE_API_KEY'))
    database: str = '(default)'
    collection: str = 'messages'
    poll_interval: float = 2.0


class GeminiProviderConfig(BaseModel):
    api_key: str | None = Field(default_factory=lambda: _env('GEMINI_API_KEY'))
    base_url: str = 'https://generativelanguage.googleapis.com/v1beta'
    timeout: float = 60.0


class OpenAIProviderConfig(BaseModel):
    api_key: str | None = None  # None → SDK reads OPENAI_API_KEY env
    base_url: str = 'https://api.openai.com/v1'


class OllamaProviderConfig(BaseModel):
    host: str = 'http://localhost:11434'


class CloudinaryProviderConfig(BaseModel):
    cloud_name: str | None = Field(default_factory=lambda: _env('CLOUDINARY_CLOUD_NAME'))
    upload_preset: str | None = Field(default_factory=lambda: _env('CLOUDINARY_UPLOAD_PRESET'))
    api_base: str = 'https://api.cloudinary.com/v1_1'
    timeout: float = 60.0


class InfraConfig(BaseModel):
    """Groups all provider-specific settings outside the domain layer."""

    store_backend: Literal['firestore', 'memory'] = 'firestore'
    ai_provider: Literal['gemini', 'openai', 'ollama'] = 'gemini'
    firestore: FirestoreProviderConfig = Field(default_factory=FirestoreProviderConfig)
    gemini: GeminiProviderConfig = Field(default_factory=GeminiProviderConfig)
    openai: OpenAIProviderConfig = Field(default_factory=OpenAIProviderConfig)
    ollama: OllamaProviderConfig = Field(default_factory=OllamaProviderConfig)
    cloudinary: CloudinaryProviderConfig = Field(default_factory=CloudinaryProviderConfig)
