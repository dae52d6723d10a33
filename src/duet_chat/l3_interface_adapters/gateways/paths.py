"""Shared path constants for configuration, cache, and logs."""

from __future__ import annotations

from platformdirs import user_cache_path, user_config_path, user_log_path

CONFIG_DIR = user_config_path('duet-chat')
CACHE_DIR = user_cache_path('duet-chat')
LOG_DIR = user_log_path('duet-chat')

MESSAGE_CACHE_PATH = CACHE_DIR / 'messages.json'

DEFAULT_CONFIG_PATHS = [
    CONFIG_DIR / 'config.yaml',
    CONFIG_DIR / 'config.yml',
]
