from .base import Tool, ToolError, ToolResult
from .system_command import SystemCommandTool
from .chat_tool import ChatTool
from .rustscan import build_scan_args, create_scan_tool, parse_report, format_open_ports

__all__ = [
    "Tool",
    "ToolError",
    "ToolResult",
    "SystemCommandTool",
    "ChatTool",
    "build_scan_args",
    "create_scan_tool",
    "parse_report",
    "format_open_ports",
]
