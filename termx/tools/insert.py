"""insert_in_file tool for anchored insertions."""

from pathlib import Path
from typing import Any

from termx.logging import get_logger
from termx.tools.registry import Tool, ToolResult

log = get_logger(__name__)


class InsertInFileTool(Tool):
    """Insert content before or after an anchor string."""

    name = "insert_in_file"
    description = "Insert content before or after a specific anchor (unique string) in a file."
    mutating = True
    parameters = {
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "The file path to modify (e.g., 'src/main.py')",
            },
            "anchor": {
                "type": "string",
                "description": (
                    "A unique string that exists in the file to use as insertion point. "
                    "Should be specific enough not to have duplicates."
                ),
            },
            "content": {
                "type": "string",
                "description": "The content to insert into the file.",
            },
            "position": {
                "type": "string",
                "enum": ["before", "after"],
                "description": "Whether to insert content before or after the anchor.",
            },
            "newline": {
                "type": "boolean",
                "description": "Add newlines around the inserted content. Default: true",
                "default": True,
            },
        },
        "required": ["path", "anchor", "content", "position"],
    }

    async def execute(
        self,
        path: str,
        anchor: str,
        content: str,
        position: str,
        newline: bool = True,
        **kwargs: Any,
    ) -> ToolResult:
        if position not in ("before", "after"):
            return ToolResult(success=False, error="Position must be 'before' or 'after'")

        file_path = Path(path).expanduser()
        try:
            file_content = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            return ToolResult(success=False, error=f"Failed to read file: {e}")

        if not anchor or anchor not in file_content:
            return ToolResult(success=False, error=f"Anchor '{anchor}' not found in file")

        sep = "\n" if newline else ""
        if position == "before":
            replacement = f"{content}{sep}{anchor}"
        else:
            replacement = f"{anchor}{sep}{content}"

        try:
            file_path.write_text(file_content.replace(anchor, replacement), encoding="utf-8")
        except OSError as e:
            log.error("insert_in_file failed", path=path, error=str(e))
            return ToolResult(success=False, error=f"Failed to write file: {e}")

        return ToolResult(success=True, content=f"Successfully inserted content in {path}")
