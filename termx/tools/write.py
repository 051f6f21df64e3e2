"""write_file tool for creating or overwriting files."""

from pathlib import Path
from typing import Any

from termx.logging import get_logger
from termx.tools.registry import Tool, ToolResult

log = get_logger(__name__)


class WriteFileTool(Tool):
    """Write content to a file."""

    name = "write_file"
    description = "Writes content to a file. Creates a file if absent."
    mutating = True
    parameters = {
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "Path of file to write",
            },
            "content": {
                "type": "string",
                "description": "Content to write into the file",
            },
        },
        "required": ["path", "content"],
    }

    async def execute(self, path: str, content: str, **kwargs: Any) -> ToolResult:
        try:
            file_path = Path(path).expanduser()
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(content, encoding="utf-8")
        except OSError as e:
            log.error("write_file failed", path=path, error=str(e))
            return ToolResult(success=False, error=f"Failed to write file: {e}")

        return ToolResult(success=True, content=f"Successfully wrote to {path}")
