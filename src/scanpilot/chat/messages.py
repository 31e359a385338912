from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Message:
    role: Role
    content: str
    images: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        """
        Wire form of the message. `images` is omitted entirely unless a list
        was attached; an attached empty list is sent as [].
        """
        data: Dict[str, Any] = {"role": Role(self.role).value, "content": self.content}
        if self.images is not None:
            data["images"] = list(self.images)
        return data
