import copy
import os
import yaml
import typer
from pathlib import Path
from rich.console import Console
from typing import Dict, Any, Mapping, Optional

console = Console()

APP_NAME = "scanpilot"

CONFIG_DIR = Path.home() / f".{APP_NAME}"
CONFIG_FILE = CONFIG_DIR / "config.yaml"

PLACEHOLDER_KEY = "YOUR_KEY_HERE"

# Default Template
DEFAULT_CONFIG = {
    "core": {
        "log_level": "INFO",
        "default_host": "127.0.0.1",
        "poll_interval": 0.5,
    },
    "scan": {
        "binary": "rustscan",
        "port_range": "0-10000",
        "report_path": "nmap_report.xml",
        "timeout": None,
    },
    "llm": {
        "provider": "openai",  # active provider: openai, ollama
        "remember_replies": False,
        "request_timeout": None,
        "max_report_chars": 60000,
        "openai": {
            "api_key": PLACEHOLDER_KEY,
            "model": "gpt-4o-mini",
            "base_url": "https://api.openai.com/v1",
        },
        "ollama": {
            "model": "llama3:8b",
            "base_url": "http://localhost:11434",
            "keep_alive": 0,
        },
    },
}

# (section path, environment variable)
ENV_OVERRIDES = (
    (("core", "log_level"), "SCANPILOT_LOG_LEVEL"),
    (("llm", "provider"), "SCANPILOT_PROVIDER"),
    (("llm", "openai", "api_key"), "OPENAI_API_KEY"),
    (("llm", "openai", "base_url"), "OPENAI_BASE_URL"),
    (("llm", "openai", "model"), "OPENAI_MODEL"),
    (("llm", "ollama", "base_url"), "OLLAMA_BASE_URL"),
    (("llm", "ollama", "model"), "OLLAMA_MODEL"),
)


class ConfigError(ValueError):
    """Configuration is missing or unusable; fatal at startup."""


def _deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(merged.get(key), dict):
            if value is None:
                # an empty YAML section (`llm:`) keeps its defaults
                continue
            if isinstance(value, Mapping):
                merged[key] = _deep_merge(merged[key], value)
                continue
        merged[key] = value
    return merged


def normalize_key(value: Any) -> Optional[str]:
    if value is None or not isinstance(value, str):
        return None
    v = value.strip()
    if not v or v.lower() in ("none", "null") or v == PLACEHOLDER_KEY:
        return None
    return v


class ConfigManager:
    def __init__(self, config_file: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None):
        self.config_file = Path(config_file) if config_file else CONFIG_FILE
        self.environ = environ if environ is not None else os.environ
        if not self.config_file.parent.exists():
            self.config_file.parent.mkdir(parents=True, exist_ok=True)

        self.config = self.load_config()

    def load_config(self) -> Dict[str, Any]:
        """
        Loads config.yaml, generating it from the defaults on first run.
        Missing sections are filled in from DEFAULT_CONFIG.
        """
        if not self.config_file.exists():
            console.print("[yellow][!] Configuration file not found.[/yellow]")
            console.print(f"[green][*] Generating default config at: {self.config_file}[/green]")
            self.save_config(copy.deepcopy(DEFAULT_CONFIG))
            console.print(
                "Set OPENAI_API_KEY or use: [bold cyan]scanpilot config --key ...[/bold cyan] "
                "before using the openai provider."
            )
            return copy.deepcopy(DEFAULT_CONFIG)

        try:
            with open(self.config_file, "r") as f:
                loaded = yaml.safe_load(f)
        except Exception as e:
            console.print(f"[bold red]Error parsing config file:[/bold red] {e}")
            raise typer.Exit(code=1)
        if not isinstance(loaded, dict):
            return copy.deepcopy(DEFAULT_CONFIG)
        return _deep_merge(DEFAULT_CONFIG, loaded)

    def save_config(self, new_config: Dict[str, Any]):
        """Saves configuration to the YAML file."""
        try:
            with open(self.config_file, "w") as f:
                yaml.dump(new_config, f, default_flow_style=False, sort_keys=False)
            self.config = new_config
        except Exception as e:
            console.print(f"[red]Error saving config: {e}[/red]")

    def resolved(self) -> Dict[str, Any]:
        """The stored config with environment overrides applied (never written back)."""
        cfg = copy.deepcopy(self.config)
        for path, var in ENV_OVERRIDES:
            value = self.environ.get(var)
            if value is None or value == "":
                continue
            node = cfg
            for part in path[:-1]:
                node = node.setdefault(part, {})
            node[path[-1]] = value
        return cfg

    def get_core_config(self) -> Dict[str, Any]:
        return self.resolved().get("core", {})

    def get_scan_config(self) -> Dict[str, Any]:
        return self.resolved().get("scan", {})

    def get_llm_config(self) -> Dict[str, Any]:
        """Returns the active LLM configuration."""
        llm = self.resolved().get("llm", {})
        provider = str(llm.get("provider", "openai")).lower()
        return {
            "provider": provider,
            "remember_replies": bool(llm.get("remember_replies", False)),
            "request_timeout": llm.get("request_timeout"),
            "max_report_chars": llm.get("max_report_chars"),
            "config": dict(llm.get(provider) or {}),
        }

    def _llm_section(self, provider: str) -> Dict[str, Any]:
        llm = self.config.setdefault("llm", copy.deepcopy(DEFAULT_CONFIG["llm"]))
        return llm.setdefault(provider, {})

    def set_llm_key(self, provider: str, api_key: str):
        """Sets the API key for a specific provider."""
        self._llm_section(provider)["api_key"] = api_key
        self.save_config(self.config)

    def set_active_provider(self, provider: str):
        """Sets the active LLM provider."""
        self.config.setdefault("llm", copy.deepcopy(DEFAULT_CONFIG["llm"]))["provider"] = provider
        self.save_config(self.config)

    def set_model(self, provider: str, model: str):
        """Sets the model for a specific provider."""
        self._llm_section(provider)["model"] = model
        self.save_config(self.config)

    def set_base_url(self, provider: str, base_url: str):
        self._llm_section(provider)["base_url"] = base_url
        self.save_config(self.config)


_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Process-wide ConfigManager, created on first use."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager
