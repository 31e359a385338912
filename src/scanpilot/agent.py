from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

from scanpilot.events import LogChannel
from scanpilot.logger import setup_logger
from scanpilot.prompts import build_analysis_prompt
from scanpilot.tools import Tool, ToolError, build_scan_args, format_open_ports, parse_report
from scanpilot.tools.rustscan import DEFAULT_PORT_RANGE, DEFAULT_REPORT_PATH

logger = setup_logger(__name__)


class AgentState(Enum):
    IDLE = "idle"
    SCANNING = "scanning"


@dataclass
class AgentConfig:
    host: str = "127.0.0.1"
    port_range: str = DEFAULT_PORT_RANGE
    report_path: str = DEFAULT_REPORT_PATH


@dataclass(frozen=True)
class Poke:
    pass


@dataclass(frozen=True)
class SetHost:
    host: str


@dataclass(frozen=True)
class Shutdown:
    pass


AgentMessage = Union[Poke, SetHost, Shutdown]


def read_text_file(path: str) -> str:
    return Path(path).read_text(encoding="utf-8", errors="replace")


class Agent:
    """
    Sequences scan -> read report -> summarize, reporting progress on the log channel.

    Owned by exactly one worker thread; handle_message is never re-entered.
    """

    def __init__(
        self,
        log_channel: LogChannel,
        scan_tool: Tool,
        chat_tool: Tool,
        config: Optional[AgentConfig] = None,
        max_report_chars: Optional[int] = None,
        read_report: Callable[[str], str] = read_text_file,
    ):
        self.log = log_channel
        self.scan_tool = scan_tool
        self.chat_tool = chat_tool
        self._config = config if config is not None else AgentConfig()
        self._state = AgentState.IDLE
        self.max_report_chars = max_report_chars
        self.read_report = read_report

    @property
    def state(self) -> AgentState:
        return self._state

    @property
    def config(self) -> AgentConfig:
        return self._config

    def handle_message(self, msg: AgentMessage) -> None:
        if isinstance(msg, Poke):
            self.poke()
        elif isinstance(msg, SetHost):
            self.set_host(msg.host)
        else:
            logger.debug(f"Ignoring message {msg!r}")

    def set_host(self, host: str) -> None:
        self._config.host = host
        logger.info(f"Host changed to {host}")
        self.log.emit(f"Now looking 🔍 at host: {host}", f"Host changed to {host}")
        self.poke()

    def poke(self) -> None:
        if self._state == AgentState.SCANNING:
            logger.debug("Poke ignored: scan already in progress")
            return

        self._state = AgentState.SCANNING
        try:
            self._scan_and_summarize()
        except Exception as e:
            logger.exception(f"Agent cycle failed for {self._config.host}")
            self.log.emit("Unexpected error ⛔", f"{type(e).__name__}: {e}")
        finally:
            self._state = AgentState.IDLE

    def _scan_and_summarize(self) -> None:
        host = self._config.host
        report_path = self._config.report_path
        self.log.emit("Starting scan... ⏳", f"Scanning host {host} with {self.scan_tool.name}")

        try:
            self.scan_tool.run(build_scan_args(host, self._config.port_range, report_path)).unwrap()
        except ToolError as e:
            self.log.emit("Scan failed", str(e))
            return
        except OSError as e:
            logger.error(f"Could not start {self.scan_tool.name}: {e}")
            self.log.emit("Error during scan", str(e))
            return

        try:
            report = self.read_report(report_path)
        except OSError as e:
            self.log.emit("Scan completed successfully ☑️", f"Scan results are saved to `{report_path}`")
            logger.warning(f"Could not read report {report_path}: {e}")
            return

        details = f"Scan results are saved to `{report_path}`"
        open_ports = format_open_ports(parse_report(report))
        if open_ports:
            details += f"\n\nOpen ports:\n{open_ports}"
        self.log.emit("Scan completed successfully ☑️", details)
        self.log.emit(
            f"I am looking at `{report_path}` file... 👓",
            f"Analyzing scan results...\n\nReading through the `{report_path}` file.",
        )

        prompt = build_analysis_prompt(report, self.max_report_chars)
        result = self.chat_tool.run([prompt])
        if result.ok:
            self.log.emit("I have something for you... 📄", result.output)
        else:
            self.log.emit("Forgive me for I have failed ⛔", result.output)
