import json
from typing import Iterable, List, Optional

import requests

from scanpilot.chat.base import ChatBackend, NetworkError
from scanpilot.chat.messages import Role
from scanpilot.logger import setup_logger

logger = setup_logger(__name__)

OLLAMA_DEFAULT_BASE = "http://localhost:11434"
OLLAMA_DEFAULT_MODEL = "llama3:8b"


def accumulate_ndjson(chunks: Iterable[bytes]) -> str:
    """
    Concatenate `message.content` from a newline-delimited JSON byte stream.

    Each chunk is split on its own line boundaries and every line is decoded
    independently. Lines that do not decode are skipped, which also drops a
    line that arrives split across two chunks.
    """
    result = []
    for chunk in chunks:
        if not chunk:
            continue
        text = chunk.decode("utf-8", errors="replace") if isinstance(chunk, (bytes, bytearray)) else str(chunk)
        # "\n" only: U+0085 and U+2028 may appear raw inside JSON strings
        for line in text.split("\n"):
            line = line.rstrip("\r")
            if not line.strip():
                continue
            try:
                data = json.loads(line)
            except ValueError:
                continue
            if not isinstance(data, dict):
                continue
            message = data.get("message")
            if isinstance(message, dict) and isinstance(message.get("content"), str):
                result.append(message["content"])
    return "".join(result)


class OllamaChatBackend(ChatBackend):
    """
    Streaming backend for Ollama's /api/chat (NDJSON response body).
    """

    name = "ollama"

    def __init__(
        self,
        model: str = OLLAMA_DEFAULT_MODEL,
        base_url: str = OLLAMA_DEFAULT_BASE,
        keep_alive: int = 0,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        remember_replies: bool = False,
    ):
        super().__init__(model or OLLAMA_DEFAULT_MODEL, session=session, timeout=timeout, remember_replies=remember_replies)
        self.base_url = (base_url or OLLAMA_DEFAULT_BASE).rstrip("/")
        self.keep_alive = keep_alive

    def send_message_with_images(self, content: str, images: List[str], role: Role = Role.USER) -> str:
        message = self.history.add_message(content, role)
        message.images = list(images)
        return self._complete()

    def _request(self) -> str:
        url = f"{self.base_url}/api/chat"
        payload = {
            "model": self.model,
            "messages": self.history.to_payload(),
            "keep_alive": self.keep_alive,
        }
        resp = self._post(url, payload, {"Content-Type": "application/json"}, stream=True)
        try:
            return accumulate_ndjson(resp.iter_content(chunk_size=None))
        except requests.RequestException as e:
            logger.error(f"ollama stream interrupted: {e}")
            raise NetworkError(f"Stream from {url} interrupted: {e}") from e
        finally:
            close = getattr(resp, "close", None)
            if callable(close):
                close()
