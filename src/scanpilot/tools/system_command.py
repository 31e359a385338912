from typing import List, Optional

from scanpilot.logger import setup_logger
from scanpilot.runner import CommandRunner, CommandResult
from scanpilot.tools.base import Tool, ToolResult

logger = setup_logger(__name__)


class SystemCommandTool(Tool):
    """
    Runs an external binary. Exit status 0 maps to success(stdout), anything
    else to error(stderr). Spawn failures propagate as OSError.
    """

    def __init__(
        self,
        name: str,
        description: str,
        command: str,
        runner: CommandRunner = None,
        timeout: Optional[float] = None,
    ):
        super().__init__(name, description)
        self.command = command
        self.runner = runner if runner else CommandRunner()
        self.timeout = timeout

    def run(self, args: List[str]) -> ToolResult:
        logger.info(f"Running {self.name}: {self.command} {' '.join(args)}")
        result: CommandResult = self.runner.run([self.command, *args], timeout=self.timeout)
        if result.success:
            return ToolResult.success(result.stdout)
        logger.error(f"{self.name} failed (RC={result.return_code}): {result.stderr}")
        return ToolResult.error(result.stderr or result.error_message or f"exit status {result.return_code}")
