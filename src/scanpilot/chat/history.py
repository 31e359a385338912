from typing import Any, Dict, List, Optional

from scanpilot.chat.messages import Message, Role


class ConversationHistory:
    """
    Ordered transcript owned by a single chat backend.

    Remembers the latest system message so a cleared transcript can be
    re-seeded with it. Not thread-safe: one writer per instance.
    """

    def __init__(self, model: str):
        self.model = model
        self.system_message: Optional[str] = None
        self._messages: List[Message] = []

    def set_system_message(self, text: str) -> None:
        self.system_message = text
        self.add_message(text, Role.SYSTEM)

    def add_message(self, content: str, role: Role) -> Message:
        message = Message(role=Role(role), content=content)
        self._messages.append(message)
        return message

    def clear(self, keep_system: bool = True) -> None:
        self._messages = []
        if keep_system and self.system_message is not None:
            self.add_message(self.system_message, Role.SYSTEM)

    def messages(self) -> List[Message]:
        return list(self._messages)

    def to_payload(self) -> List[Dict[str, Any]]:
        return [m.to_dict() for m in self._messages]

    def __len__(self) -> int:
        return len(self._messages)
