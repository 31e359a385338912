from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union

from scanpilot.agent import AgentMessage, Poke, SetHost

EXIT = "exit"
HELP = "help"

COMMANDS = {
    "sethost": "sethost <host>  change target host and scan it",
    "poke": "poke            scan the current host again",
    "help": "help            list commands",
    "exit": "exit            quit (Esc works too)",
}

Action = Union[AgentMessage, str, None]


@dataclass
class ParsedCommand:
    name: str
    args: List[str] = field(default_factory=list)


@dataclass
class CommandSession:
    """
    Parser state for one dashboard session: every line submitted so far and the
    last command parsed from them.
    """
    history: List[str] = field(default_factory=list)
    last_command: Optional[ParsedCommand] = None

    def submit(self, line: str) -> Optional[ParsedCommand]:
        """Parse a submitted line and remember it."""
        parsed = parse_command(line)
        if parsed is not None:
            self.history.append(line.strip())
            self.last_command = parsed
        return parsed


def normalize_target_token(token: str) -> str:
    """
    Normalize common key=value forms users paste in.

    Examples:
      - "localhost" -> "localhost"
      - "target=localhost" -> "localhost"
      - "host=10.0.0.1" -> "10.0.0.1"
    """
    token = (token or "").strip()
    if not token:
        return token

    if "=" in token:
        key, value = token.split("=", 1)
        if key.strip().lower() in ("target", "host"):
            return value.strip()

    return token


def parse_command(line: str) -> Optional[ParsedCommand]:
    parts = (line or "").split()
    if not parts:
        return None
    return ParsedCommand(name=parts[0].lower(), args=parts[1:])


def to_action(cmd: Optional[ParsedCommand]) -> Action:
    """
    Map a parsed command to what the dashboard should do with it:
    an AgentMessage for the worker, EXIT, HELP, or None to ignore.
    """
    if cmd is None:
        return None
    if cmd.name == "sethost":
        host = normalize_target_token(cmd.args[0]) if cmd.args else ""
        return SetHost(host) if host else None
    if cmd.name == "poke":
        return Poke()
    if cmd.name in ("exit", "quit"):
        return EXIT
    if cmd.name == "help":
        return HELP
    return None


def help_text() -> str:
    return "\n".join(COMMANDS.values())
