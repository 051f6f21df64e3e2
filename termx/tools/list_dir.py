"""list_dir tool for directory listings."""

import asyncio
from pathlib import Path
from typing import Any

from termx.logging import get_logger
from termx.tools.registry import Tool, ToolResult

log = get_logger(__name__)


class ListDirTool(Tool):
    """List the entries of a directory."""

    name = "list_dir"
    description = "Lists all files and directories in the given path"
    parameters = {
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "Directory path to list",
                "default": ".",
            },
        },
        "required": ["path"],
    }

    async def execute(self, path: str = ".", **kwargs: Any) -> ToolResult:
        """List a directory.

        Args:
            path: Directory to list, relative to the working directory

        Returns:
            ToolResult with one entry path per line
        """
        try:
            entries = await asyncio.to_thread(lambda: sorted(str(p) for p in Path(path).iterdir()))
        except OSError as e:
            log.error("list_dir failed", path=path, error=str(e))
            return ToolResult(success=False, error=f"Failed to read directory: {e}")

        if not entries:
            return ToolResult(success=True, content="Directory is empty")
        return ToolResult(success=True, content="\n".join(entries))
