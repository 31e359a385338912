import queue
from typing import Callable, Optional

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from scanpilot import __version__
from scanpilot.agent import Agent, AgentConfig, Poke
from scanpilot.chat import BACKENDS, create_backend
from scanpilot.config import ConfigError, ConfigManager, get_config_manager, normalize_key
from scanpilot.dashboard import Dashboard
from scanpilot.events import LogChannel
from scanpilot.logger import setup_logger
from scanpilot.tools import ChatTool, create_scan_tool
from scanpilot.worker import AgentWorker

app = typer.Typer(
    name="scanpilot",
    help="scanpilot: terminal dashboard for an AI-assisted reconnaissance agent",
    add_completion=False,
)
console = Console()
logger = setup_logger()

BANNER = r"""
  ___  ___ __ _ _ __  _ __ (_) | ___ | |_
 / __|/ __/ _` | '_ \| '_ \| | |/ _ \| __|
 \__ \ (_| (_| | | | | |_) | | | (_) | |_
 |___/\___\__,_|_| |_| .__/|_|_|\___/ \__|
                      |_|
"""


def print_banner():
    text = Text(BANNER, style="bold cyan")
    panel = Panel(text, border_style="bold blue", title=f"v{__version__}", subtitle="Recon Agent")
    console.print(panel)


def load_settings() -> ConfigManager:
    cfg = get_config_manager()
    setup_logger(log_level=cfg.get_core_config().get("log_level", "INFO"))
    return cfg


def check_backend(cfg: ConfigManager) -> None:
    """Missing or broken LLM configuration is fatal before anything starts."""
    try:
        create_backend(cfg.get_llm_config())
    except ConfigError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        raise typer.Exit(code=1)


def agent_factory(cfg: ConfigManager, log_channel: LogChannel, host: str) -> Callable[[], Agent]:
    scan_cfg = cfg.get_scan_config()
    llm_cfg = cfg.get_llm_config()

    def build() -> Agent:
        scan_tool = create_scan_tool(scan_cfg.get("binary", "rustscan"), timeout=scan_cfg.get("timeout"))
        chat_tool = ChatTool(
            "ChatGPT" if llm_cfg["provider"] == "openai" else "Ollama",
            "AI assistant for analyzing scan results",
            backend_factory=lambda: create_backend(llm_cfg),
        )
        config = AgentConfig(
            host=host,
            port_range=str(scan_cfg.get("port_range", "0-10000")),
            report_path=str(scan_cfg.get("report_path", "nmap_report.xml")),
        )
        return Agent(
            log_channel,
            scan_tool,
            chat_tool,
            config=config,
            max_report_chars=llm_cfg.get("max_report_chars"),
        )

    return build


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """
    scanpilot entry point. Without a subcommand the dashboard starts.
    """
    if ctx.invoked_subcommand is None:
        print_banner()
        dashboard(host=None)


@app.command()
def dashboard(
    host: Optional[str] = typer.Option(None, "--host", help="Initial target host"),
):
    """
    Start the interactive dashboard. Type `sethost <host>`, `poke`, `help` or `exit`.
    """
    cfg = load_settings()
    check_backend(cfg)
    core = cfg.get_core_config()
    host = host or core.get("default_host", "127.0.0.1")
    logger.info(f"Command 'dashboard' triggered, host={host}")

    log_channel = LogChannel()
    worker = AgentWorker(agent_factory(cfg, log_channel, host), log_channel=log_channel)
    worker.start()
    try:
        Dashboard(
            worker,
            log_channel,
            host,
            poll_interval=float(core.get("poll_interval", 0.5) or 0.5),
        ).run()
        logger.info("Dashboard stopped")
    finally:
        if not worker.stop(timeout=1.0):
            logger.warning("Agent worker still busy at exit; abandoning it")
    console.print("[dim]Bye.[/dim]")


@app.command()
def scan(
    host: Optional[str] = typer.Argument(None, help="Target IP or hostname (defaults to core.default_host)"),
):
    """
    Run one scan-and-summarize cycle without the dashboard and print the log.
    """
    cfg = load_settings()
    check_backend(cfg)
    host = host or cfg.get_core_config().get("default_host", "127.0.0.1")
    logger.info(f"Command 'scan' triggered for target: {host}")

    log_channel = LogChannel()
    agent = agent_factory(cfg, log_channel, host)()
    with console.status(f"[bold green]Scanning {host}... This may take a moment.[/bold green]"):
        agent.handle_message(Poke())

    while True:
        try:
            summary, details = log_channel.get(timeout=0)
        except queue.Empty:
            break
        console.print(Panel(Markdown(details or ""), title=summary, title_align="left", border_style="green"))


@app.command()
def config(
    show: bool = typer.Option(False, "--show", help="Show the effective configuration"),
    provider: Optional[str] = typer.Option(None, "--provider", "-p", help=f"Active provider: {', '.join(BACKENDS)}"),
    key: Optional[str] = typer.Option(None, "--key", "-k", help="API key for the provider"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model for the provider"),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="Base URL for the provider"),
):
    """
    Show or change LLM backend settings in ~/.scanpilot/config.yaml.
    """
    cfg = load_settings()
    target = (provider or cfg.get_llm_config()["provider"]).lower()
    if target not in BACKENDS:
        console.print(f"[red]Unknown provider '{target}'. Choose from: {', '.join(BACKENDS)}[/red]")
        raise typer.Exit(code=1)

    changed = False
    if provider:
        cfg.set_active_provider(target)
        changed = True
    if key:
        cfg.set_llm_key(target, key)
        changed = True
    if model:
        cfg.set_model(target, model)
        changed = True
    if base_url:
        cfg.set_base_url(target, base_url)
        changed = True
    if changed:
        console.print(f"[green]Saved settings for '{target}' to {cfg.config_file}[/green]")

    if show or not changed:
        llm = cfg.get_llm_config()
        table = Table(show_header=True, header_style="bold magenta", title="LLM backend")
        table.add_column("Setting")
        table.add_column("Value")
        table.add_row("provider", llm["provider"])
        for name, value in llm["config"].items():
            if name == "api_key":
                value = "set" if normalize_key(value) else "[red]missing[/red]"
            table.add_row(name, str(value))
        table.add_row("remember_replies", str(llm["remember_replies"]))
        console.print(table)


if __name__ == "__main__":
    app()
