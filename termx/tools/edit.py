"""edit_file tool for string replacement edits."""

from pathlib import Path
from typing import Any

from termx.logging import get_logger
from termx.tools.registry import Tool, ToolResult

log = get_logger(__name__)


class EditFileTool(Tool):
    """Replace every occurrence of a string in a file."""

    name = "edit_file"
    description = "Edits a file by replacing an existing string."
    mutating = True
    parameters = {
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "Path to the file",
            },
            "old_str": {
                "type": "string",
                "description": "String to be replaced",
            },
            "new_str": {
                "type": "string",
                "description": "Replacement string",
            },
        },
        "required": ["path", "old_str", "new_str"],
    }

    async def execute(self, path: str, old_str: str, new_str: str, **kwargs: Any) -> ToolResult:
        file_path = Path(path).expanduser()
        try:
            content = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            return ToolResult(success=False, error=f"Failed to read file: {e}")

        if not old_str or old_str not in content:
            return ToolResult(success=False, error=f"String to replace not found in {path}")

        occurrences = content.count(old_str)
        try:
            file_path.write_text(content.replace(old_str, new_str), encoding="utf-8")
        except OSError as e:
            log.error("edit_file failed", path=path, error=str(e))
            return ToolResult(success=False, error=f"Failed to write file: {e}")

        noun = "occurrence" if occurrences == 1 else "occurrences"
        return ToolResult(success=True, content=f"Successfully edited file {path} ({occurrences} {noun})")
