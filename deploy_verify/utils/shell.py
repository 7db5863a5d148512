"""
Subprocess helper for invoking the container tooling.
"""

import logging
import shlex
import subprocess
from dataclasses import dataclass
from typing import List, Optional, Union

logger = logging.getLogger('Shell')


@dataclass
class CommandResult:
    """Result of a command execution."""

    command: str
    returncode: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def error_text(self) -> str:
        """Best short description of why the command failed."""
        if self.timed_out:
            return "timed out"
        text = (self.stderr or self.stdout).strip()
        return text.splitlines()[-1] if text else f"exit code {self.returncode}"


def run_command(
    cmd: Union[str, List[str]],
    timeout: Optional[float] = None,
    cwd: Optional[str] = None,
    shell: bool = False,
) -> CommandResult:
    """
    Run a command and capture its output.

    Args:
        cmd: Command as an argument list, or a string when shell=True
        timeout: Timeout in seconds (None for no timeout)
        cwd: Working directory
        shell: Whether to run through the shell

    Returns:
        CommandResult; a missing executable is reported as exit code 127
    """
    display = cmd if isinstance(cmd, str) else shlex.join(cmd)
    logger.debug(f"Executing: {display}")

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=cwd,
            shell=shell,
        )
    except subprocess.TimeoutExpired:
        logger.error(f"Command timed out after {timeout}s: {display}")
        return CommandResult(command=display, returncode=-1, timed_out=True)
    except FileNotFoundError as e:
        logger.error(f"Command not found: {display}")
        return CommandResult(command=display, returncode=127, stderr=str(e))

    if result.returncode != 0:
        logger.debug(f"Command failed with code {result.returncode}: {result.stderr.strip()}")

    return CommandResult(
        command=display,
        returncode=result.returncode,
        stdout=result.stdout,
        stderr=result.stderr,
    )
