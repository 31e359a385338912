from typing import Any, Dict, Optional

import requests

from scanpilot.chat.base import ChatBackend, ChatBackendError, NetworkError, ProtocolError
from scanpilot.chat.messages import Message, Role
from scanpilot.chat.history import ConversationHistory
from scanpilot.chat.openai_backend import OpenAIChatBackend
from scanpilot.chat.ollama_backend import OllamaChatBackend
from scanpilot.config import ConfigError, normalize_key

BACKENDS = {
    "openai": OpenAIChatBackend,
    "ollama": OllamaChatBackend,
}


def create_backend(llm_config: Dict[str, Any], session: Optional[requests.Session] = None) -> ChatBackend:
    """
    Build the configured backend from ConfigManager.get_llm_config() output.

    Raises ConfigError for an unknown provider or a missing OpenAI API key.
    """
    provider = str(llm_config.get("provider") or "openai").lower()
    if provider not in BACKENDS:
        raise ConfigError(f"Unknown llm provider '{provider}'. Choose from: {', '.join(BACKENDS)}")
    settings = llm_config.get("config") or {}
    common = {
        "session": session,
        "timeout": llm_config.get("request_timeout"),
        "remember_replies": bool(llm_config.get("remember_replies", False)),
    }

    if provider == "openai":
        api_key = normalize_key(settings.get("api_key"))
        if not api_key:
            raise ConfigError("Missing API key for provider 'openai'. Set OPENAI_API_KEY or run `scanpilot config --key`.")
        return OpenAIChatBackend(
            api_key=api_key,
            model=settings.get("model"),
            base_url=settings.get("base_url"),
            **common,
        )

    keep_alive = settings.get("keep_alive", 0)
    return OllamaChatBackend(
        model=settings.get("model"),
        base_url=settings.get("base_url"),
        keep_alive=keep_alive if keep_alive is not None else 0,
        **common,
    )


__all__ = [
    "BACKENDS",
    "ChatBackend",
    "ChatBackendError",
    "ConversationHistory",
    "Message",
    "NetworkError",
    "OllamaChatBackend",
    "OpenAIChatBackend",
    "ProtocolError",
    "Role",
    "create_backend",
]
