from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_BASE_URL = "https://perplexity2-0-latest.onrender.com/chat_stream"
DEFAULT_GREETING = "Hi there, how can I help you?"


@dataclass(frozen=True)
class ClientConfig:
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 60.0
    log_level: str = "INFO"
    log_file: str | None = None
    greeting: str | None = DEFAULT_GREETING


def load_config() -> ClientConfig:
    load_dotenv(override=False)

    base_url = os.getenv("SEARCH_CHAT_BASE_URL", DEFAULT_BASE_URL).strip() or DEFAULT_BASE_URL
    timeout = float(os.getenv("SEARCH_CHAT_TIMEOUT", "60"))
    log_level = os.getenv("SEARCH_CHAT_LOG_LEVEL", "INFO").upper()
    log_file = os.getenv("SEARCH_CHAT_LOG_FILE", "").strip() or None
    greeting = os.getenv("SEARCH_CHAT_GREETING", DEFAULT_GREETING).strip() or None

    return ClientConfig(
        base_url=base_url,
        timeout=timeout,
        log_level=log_level,
        log_file=log_file,
        greeting=greeting,
    )
