"""run_shell tool for executing commands."""

import asyncio
import re
import shlex
from pathlib import Path
from typing import Any

from termx.config import get_config
from termx.logging import get_logger
from termx.tools.registry import Tool, ToolResult

log = get_logger(__name__)

_ASSIGNMENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*=.*$")
_SHELL_SEPARATOR_TOKENS = {";", "&&", "||", "|", "&"}
_SHELL_WRAPPER_TOKENS = {"command", "builtin", "nohup", "time", "exec"}


def _tokenize_shell_command(command: str) -> list[str]:
    """Tokenize shell command while preserving control operators."""
    lexer = shlex.shlex(command, posix=True, punctuation_chars=";&|")
    lexer.whitespace_split = True
    lexer.commenters = ""
    return list(lexer)


def _split_shell_segments(command: str) -> list[list[str]]:
    """Split shell command into tokenized segments separated by control operators."""
    segments: list[list[str]] = []
    current: list[str] = []
    for token in _tokenize_shell_command(command):
        if token in _SHELL_SEPARATOR_TOKENS:
            if current:
                segments.append(current)
                current = []
            continue
        current.append(token)
    if current:
        segments.append(current)
    return segments


def extract_shell_base_commands(command: str) -> list[str]:
    """Extract the executable token of every shell segment."""
    cleaned = str(command or "").strip()
    if not cleaned:
        return []
    try:
        segments = _split_shell_segments(cleaned)
    except ValueError:
        # Unbalanced quotes; fall back to whitespace splitting.
        segments = [cleaned.split()]
    base_commands: list[str] = []
    for tokens in segments:
        for token in tokens:
            if token in _SHELL_WRAPPER_TOKENS:
                continue
            # Leading environment assignments (FOO=1 cmd).
            if _ASSIGNMENT_RE.match(token):
                continue
            base_commands.append(token)
            break
    return base_commands


def is_denied_command(command: str, denied: list[str]) -> tuple[bool, str]:
    """Check every segment's base command against the denylist.

    Word entries (``rm``) match the command or its basename (``/bin/rm``);
    symbolic entries (``:(``) also match as a prefix.
    """
    base_commands = extract_shell_base_commands(command)
    if not base_commands:
        return True, "Empty command"
    for base in base_commands:
        name = Path(base).name or base
        for entry in denied:
            entry = str(entry).strip()
            if not entry:
                continue
            if base == entry or name == entry:
                return True, entry
            if not entry.isalnum() and base.startswith(entry):
                return True, entry
    return False, ""


class RunShellTool(Tool):
    """Execute shell commands."""

    name = "run_shell"
    description = (
        "Executes a shell command with a 30-second timeout. "
        "Dangerous commands like rm, sudo, dd are blocked."
    )
    mutating = True
    parameters = {
        "type": "object",
        "properties": {
            "command": {
                "type": "string",
                "description": "The shell command to execute",
            },
        },
        "required": ["command"],
    }

    def __init__(self, timeout: int | None = None, denied: list[str] | None = None):
        shell_cfg = get_config().tools.shell
        self.timeout = timeout or shell_cfg.timeout
        self.denied = list(shell_cfg.denied if denied is None else denied)

    def check_policy(self, arguments: dict[str, Any]) -> str | None:
        denied, matched = is_denied_command(str(arguments.get("command", "")), self.denied)
        if not denied:
            return None
        if matched == "Empty command":
            return matched
        return f"Denied command: {matched}"

    async def execute(self, command: str, **kwargs: Any) -> ToolResult:
        """Execute a shell command.

        Args:
            command: Shell command to execute

        Returns:
            ToolResult with stdout, or stderr as the error on non-zero exit
        """
        reason = self.check_policy({"command": command})
        if reason:
            log.warning("Blocked denied command", command=command, reason=reason)
            return ToolResult(success=False, error=reason)

        log.info("Executing shell command", command=command, timeout=self.timeout)
        try:
            process = await asyncio.create_subprocess_shell(
                command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            return ToolResult(success=False, error=f"Failed to spawn: {e}")

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            return ToolResult(success=False, error=f"Command timed out after {self.timeout} seconds")
        except asyncio.CancelledError:
            process.kill()
            await process.wait()
            raise

        stdout_text = stdout.decode("utf-8", errors="replace")
        stderr_text = stderr.decode("utf-8", errors="replace")

        if process.returncode != 0:
            detail = stderr_text.strip() or stdout_text.strip()
            return ToolResult(
                success=False,
                error=f"exit status {process.returncode}: {detail}" if detail else f"exit status {process.returncode}",
            )
        return ToolResult(success=True, content=stdout_text or "[no output]")
