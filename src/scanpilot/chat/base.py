from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import requests

from scanpilot.chat.history import ConversationHistory
from scanpilot.chat.messages import Message, Role
from scanpilot.logger import setup_logger

logger = setup_logger(__name__)


class ChatBackendError(RuntimeError):
    pass


class NetworkError(ChatBackendError):
    """The backend could not be reached or answered with an HTTP error."""


class ProtocolError(ChatBackendError):
    """The backend answered, but the body was not what the protocol promises."""


class ChatBackend(ABC):
    """
    Common contract for chat-completion backends.

    The backend is stateless between calls: every send appends the outgoing
    message to the owned history first, then replays the whole history.
    """

    name = "base"

    def __init__(
        self,
        model: str,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        remember_replies: bool = False,
    ):
        self.history = ConversationHistory(model)
        self.session = session or requests.Session()
        self.timeout = timeout
        self.remember_replies = remember_replies

    @property
    def model(self) -> str:
        return self.history.model

    def set_model(self, model: str) -> None:
        self.history.model = model

    def set_system_message(self, text: str) -> None:
        self.history.set_system_message(text)

    def add_message(self, content: str, role: Role = Role.USER) -> None:
        self.history.add_message(content, role)

    def clear_history(self, keep_system: bool = True) -> None:
        self.history.clear(keep_system=keep_system)

    def get_chat_history(self) -> List[Message]:
        return self.history.messages()

    def send_message(self, content: str, role: Role = Role.USER) -> str:
        self.history.add_message(content, role)
        return self._complete()

    @abstractmethod
    def send_message_with_images(self, content: str, images: List[str], role: Role = Role.USER) -> str:
        raise NotImplementedError

    @abstractmethod
    def _request(self) -> str:
        """Issue one request for the current history and return the reply text."""

    def _complete(self) -> str:
        logger.debug(
            f"Dispatching chat to backend={self.name} model={self.model} messages={len(self.history)}"
        )
        reply = self._request()
        if self.remember_replies:
            self.history.add_message(reply, Role.ASSISTANT)
        return reply

    def _post(self, url: str, payload: Dict[str, Any], headers: Dict[str, str], stream: bool = False) -> requests.Response:
        try:
            resp = self.session.post(url, json=payload, headers=headers, timeout=self.timeout, stream=stream)
        except requests.RequestException as e:
            logger.error(f"{self.name} request failed: {e}")
            raise NetworkError(f"Request to {url} failed: {e}") from e

        status = getattr(resp, "status_code", 200)
        if isinstance(status, int) and status >= 400:
            try:
                body = (resp.text or "")[:500]
            except Exception:
                body = ""
            logger.error(f"{self.name} returned HTTP {status}: {body}")
            raise NetworkError(f"HTTP {status} from {url}: {body}" if body else f"HTTP {status} from {url}")
        return resp
