import subprocess
import shlex
from typing import List, Optional, Dict, Any
from dataclasses import dataclass
from scanpilot.logger import setup_logger

logger = setup_logger(__name__)


@dataclass
class CommandResult:
    """
    Standardized result object for all command executions.
    """
    command: str
    return_code: int
    stdout: str
    stderr: str
    success: bool
    error_message: Optional[str] = None


class CommandRunner:
    """
    Thin subprocess wrapper used by the scan tools.

    A process that runs and exits non-zero is reported through CommandResult.
    A process that cannot be started at all (missing binary, permissions)
    raises OSError to the caller.
    """

    def _normalize_command(self, command: List[Any]) -> List[str]:
        normalized: List[str] = []
        for item in list(command or []):
            if isinstance(item, (bytes, bytearray)):
                normalized.append(item.decode("utf-8", errors="replace"))
            else:
                normalized.append(str(item))
        return normalized

    def _coerce_text(self, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, (bytes, bytearray)):
            return value.decode("utf-8", errors="replace")
        return str(value)

    def run(
        self,
        command: List[str],
        timeout: Optional[float] = None,
        env: Optional[Dict[str, str]] = None,
        cwd: Optional[str] = None,
    ) -> CommandResult:
        """
        Executes a command and returns the result.

        Args:
            command (List[str]): The command and its arguments (e.g., ['ls', '-la']).
            timeout (float, optional): Maximum time in seconds to wait. None waits forever.
            env (Dict[str, str], optional): Environment variables to override.
            cwd (str, optional): Working directory for the command.

        Returns:
            CommandResult: Object containing output, error code, and status.

        Raises:
            OSError: the process could not be spawned.
        """
        command = self._normalize_command(command)
        if not command:
            raise ValueError("Empty command")
        cmd_str = shlex.join(command)
        logger.debug(f"Executing command: {cmd_str}")

        try:
            proc = subprocess.Popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
                env=env,
                cwd=cwd,
            )
        except OSError as e:
            logger.error(f"Failed to start {command[0]}: {e}")
            raise

        try:
            out, err = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired as e:
            proc.kill()
            out, err = proc.communicate()
            error_msg = f"Command timed out after {timeout} seconds: {cmd_str}"
            logger.error(error_msg)
            return CommandResult(
                command=cmd_str,
                return_code=-1,
                stdout=self._coerce_text(out or e.output).strip(),
                stderr=self._coerce_text(err or e.stderr).strip(),
                success=False,
                error_message=error_msg,
            )

        out = self._coerce_text(out).strip()
        err = self._coerce_text(err).strip()
        rc = proc.returncode if proc.returncode is not None else -1
        is_success = rc == 0

        if not is_success:
            logger.warning(f"Command failed (RC={rc}): {cmd_str}")
            if err:
                logger.debug(f"Stderr: {err}")

        return CommandResult(
            command=cmd_str,
            return_code=rc,
            stdout=out,
            stderr=err,
            success=is_success,
        )
