from typing import List, Optional

import requests

from scanpilot.chat.base import ChatBackend, ProtocolError
from scanpilot.chat.messages import Role
from scanpilot.logger import setup_logger

logger = setup_logger(__name__)

OPENAI_DEFAULT_BASE = "https://api.openai.com/v1"
OPENAI_DEFAULT_MODEL = "gpt-4o-mini"


class OpenAIChatBackend(ChatBackend):
    """
    Single-shot completion backend for OpenAI-compatible /chat/completions.
    """

    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = OPENAI_DEFAULT_MODEL,
        base_url: str = OPENAI_DEFAULT_BASE,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        remember_replies: bool = False,
    ):
        super().__init__(model or OPENAI_DEFAULT_MODEL, session=session, timeout=timeout, remember_replies=remember_replies)
        self.api_key = api_key
        self.base_url = (base_url or OPENAI_DEFAULT_BASE).rstrip("/")

    def send_message_with_images(self, content: str, images: List[str], role: Role = Role.USER) -> str:
        # Vision payloads are not wired up for this backend yet.
        logger.warning("Image attachments are not supported by the openai backend; nothing sent")
        return ""

    def _request(self) -> str:
        url = f"{self.base_url}/chat/completions"
        payload = {
            "model": self.model,
            "messages": self.history.to_payload(),
            "stream": False,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        resp = self._post(url, payload, headers)

        try:
            data = resp.json()
        except ValueError as e:
            raise ProtocolError(f"Response from {url} is not valid JSON: {e}") from e

        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list) or not choices:
            raise ProtocolError("Response contained no choices")
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise ProtocolError("First choice has no message content")
        return content
