from typing import Callable, List

from scanpilot.chat import ChatBackend, ChatBackendError, Role
from scanpilot.logger import setup_logger
from scanpilot.prompts import ANALYST_SYSTEM_PROMPT
from scanpilot.tools.base import Tool, ToolResult

logger = setup_logger(__name__)


class ChatTool(Tool):
    """
    Sends its joined arguments to a freshly built chat backend primed with the
    analyst system prompt. Blocks the caller for the whole round trip.
    """

    def __init__(
        self,
        name: str,
        description: str,
        backend_factory: Callable[[], ChatBackend],
        system_prompt: str = ANALYST_SYSTEM_PROMPT,
    ):
        super().__init__(name, description)
        self.backend_factory = backend_factory
        self.system_prompt = system_prompt

    def run(self, args: List[str]) -> ToolResult:
        backend = self.backend_factory()
        backend.set_system_message(self.system_prompt)
        message = " ".join(args)
        logger.info(f"Sending {len(message)} chars to {backend.name} model={backend.model}")
        try:
            reply = backend.send_message(message, Role.USER)
        except ChatBackendError as e:
            logger.error(f"{self.name} failed: {e}")
            return ToolResult.error(str(e))
        return ToolResult.success(reply)
