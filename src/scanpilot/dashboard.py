from typing import ClassVar, List, Optional

from rich.console import Group
from rich.markdown import Markdown
from rich.panel import Panel
from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Input, Static

from scanpilot.agent import Poke, SetHost
from scanpilot.commands import EXIT, HELP, CommandSession, help_text, to_action
from scanpilot.events import LogBook, LogChannel
from scanpilot.logger import setup_logger
from scanpilot.worker import AgentWorker

logger = setup_logger(__name__)


def _visible_window(total: int, selected: Optional[int], height: int):
    """(start, end) slice of entries to show so the selection stays on screen."""
    height = max(1, height)
    if total <= height:
        return 0, total
    sel = selected if selected is not None else total - 1
    start = min(max(0, sel - height + 1), total - height)
    return start, start + height


def render_log_list(book: LogBook, height: int) -> Panel:
    start, end = _visible_window(len(book.entries), book.selected, height)
    lines = []
    for idx in range(start, end):
        entry = book.entries[idx]
        if idx == book.selected:
            lines.append(Text(f"> {entry.headline()}", style="bold"))
        else:
            lines.append(Text(f"  {entry.headline()}"))
    body = Group(*lines) if lines else Text("No log entries yet", style="dim")
    return Panel(body, title=" -- log -- ", title_align="left", border_style="blue")


def render_details(book: LogBook) -> Panel:
    entry = book.selected_entry()
    if entry is None:
        body = Text("No log selected", style="dim")
    else:
        body = Group(
            Text(f"Time: {entry.timestamp()}"),
            Text(f"Summary: {entry.summary}", style="bold"),
            Text(""),
            Text("Details:"),
            Markdown(entry.details or ""),
        )
    return Panel(body, title=" -- details -- ", title_align="left", border_style="blue")


def render_settings(host: str) -> Panel:
    return Panel(Text(f"Target host: {host}"), title=" -- settings -- ", title_align="left", border_style="cyan")


class Dashboard(App):
    """
    Interactive dashboard. Owns the command session, the log book and a display
    copy of the target host; talks to the agent only through the two channels.
    """

    TITLE = "scanpilot"

    CSS = """
    #command { dock: top; }
    #settings { height: 3; }
    #logs { height: 1fr; }
    #log_list { width: 2fr; }
    #details { width: 3fr; }
    """

    BINDINGS: ClassVar[List[Binding]] = [
        Binding("escape", "quit_dashboard", "Quit", show=False, priority=True),
        Binding("up", "select_previous", "Previous entry", show=False, priority=True),
        Binding("down", "select_next", "Next entry", show=False, priority=True),
    ]

    def __init__(
        self,
        worker: AgentWorker,
        log_channel: LogChannel,
        host: str,
        poll_interval: float = 0.5,
    ):
        super().__init__()
        self.agent_worker = worker
        self.log_channel = log_channel
        self.host = host
        self.poll_interval = poll_interval
        self.command_session = CommandSession()
        self.book = LogBook()

    def compose(self) -> ComposeResult:
        yield Input(placeholder="sethost <host> | poke | help | exit", id="command")
        yield Static(id="settings")
        with Horizontal(id="logs"):
            yield Static(id="log_list")
            yield Static(id="details")

    def on_mount(self) -> None:
        logger.info("Dashboard started")
        self.log_channel.emit("Welcome!", f"The default host has been set to {self.host}")
        self.query_one("#command", Input).focus()
        self.set_interval(self.poll_interval, self.refresh_logs)
        self.refresh_logs()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.input.value = ""
        if not self.submit(event.value):
            self.exit()

    def submit(self, line: str) -> bool:
        """Act on one command line; returns False when the dashboard should exit."""
        action = to_action(self.command_session.submit(line))
        if action == EXIT:
            return False
        if action == HELP:
            self.log_channel.emit("Available commands", help_text())
        elif isinstance(action, SetHost):
            self.host = action.host
            self.agent_worker.send(action)
        elif isinstance(action, Poke):
            self.agent_worker.send(action)
        self.refresh_logs()
        return True

    def refresh_logs(self) -> None:
        """Drain the log channel into the book and redraw the panes."""
        self.book.pull(self.log_channel)
        self._redraw()

    def _redraw(self) -> None:
        log_list = self.query_one("#log_list", Static)
        self.query_one("#settings", Static).update(render_settings(self.host))
        log_list.update(render_log_list(self.book, max(1, log_list.size.height - 2)))
        self.query_one("#details", Static).update(render_details(self.book))

    def action_select_previous(self) -> None:
        self.book.select_previous()
        self._redraw()

    def action_select_next(self) -> None:
        self.book.select_next()
        self._redraw()

    def action_quit_dashboard(self) -> None:
        self.exit()
