from dataclasses import dataclass
from typing import List


class ToolError(RuntimeError):
    """A tool ran but reported failure; carries the tool's own explanation."""


@dataclass(frozen=True)
class ToolResult:
    ok: bool
    output: str

    @classmethod
    def success(cls, output: str) -> "ToolResult":
        return cls(ok=True, output=output)

    @classmethod
    def error(cls, output: str) -> "ToolResult":
        return cls(ok=False, output=output)

    def unwrap(self) -> str:
        if not self.ok:
            raise ToolError(self.output)
        return self.output


class Tool:
    """
    A named capability: run(args) -> ToolResult.

    Implementations normalize their own failures into ToolResult.error; only
    conditions the caller must tell apart (e.g. a binary that cannot be
    spawned) escape as exceptions.
    """

    def __init__(self, name: str, description: str):
        self.name = name
        self.description = description

    def run(self, args: List[str]) -> ToolResult:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
