"""read_file tool for reading numbered line ranges."""

from pathlib import Path
from typing import Any

from termx.config import get_config
from termx.logging import get_logger
from termx.tools.registry import Tool, ToolResult

log = get_logger(__name__)


class ReadFileTool(Tool):
    """Read a range of lines from a text file."""

    name = "read_file"
    description = "Returns the content of the file for the given path"
    parameters = {
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "Path to the file",
            },
            "start_line": {
                "type": "number",
                "description": "Starting line (optional, default 1)",
            },
            "end_line": {
                "type": "number",
                "description": "Ending line (optional, default start+200)",
            },
        },
        "required": ["path"],
    }

    def __init__(self, max_file_bytes: int | None = None, default_max_lines: int | None = None):
        read_cfg = get_config().tools.read
        self.max_file_bytes = max_file_bytes or read_cfg.max_file_bytes
        self.default_max_lines = default_max_lines or read_cfg.default_max_lines

    async def execute(
        self,
        path: str,
        start_line: int | None = None,
        end_line: int | None = None,
        **kwargs: Any,
    ) -> ToolResult:
        """Read lines ``start_line..end_line`` (1-indexed, inclusive).

        Returns:
            ToolResult with ``N: text`` lines
        """
        file_path = Path(path).expanduser()
        try:
            size = file_path.stat().st_size
        except OSError as e:
            return ToolResult(success=False, error=f"Failed to get metadata: {e}")

        if not file_path.is_file():
            return ToolResult(success=False, error=f"Not a file: {path}")
        if size > self.max_file_bytes:
            return ToolResult(
                success=False,
                error=f"File too large: {size} bytes (max: {self.max_file_bytes} bytes)",
            )

        start = max(1, int(start_line)) if start_line else 1
        end = int(end_line) if end_line else start + self.default_max_lines - 1

        lines: list[str] = []
        try:
            with open(file_path, encoding="utf-8") as f:
                for line_num, line in enumerate(f, start=1):
                    if line_num > end:
                        break
                    if line_num >= start:
                        text = line.rstrip("\r\n")
                        lines.append(f"{line_num}: {text}")
        except UnicodeDecodeError:
            return ToolResult(success=False, error="Binary or invalid UTF-8 content detected")
        except OSError as e:
            log.error("read_file failed", path=path, error=str(e))
            return ToolResult(success=False, error=f"Failed to open file: {e}")

        if not lines:
            return ToolResult(success=False, error=f"No lines found in range {start}-{end}")
        return ToolResult(success=True, content="\n".join(lines))
