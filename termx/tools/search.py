"""search_in_files tool for recursive regex search."""

import asyncio
import os
import re
from pathlib import Path
from typing import Any

from termx.config import get_config
from termx.logging import get_logger
from termx.tools.registry import Tool, ToolResult

log = get_logger(__name__)


class SearchInFilesTool(Tool):
    """Search a file or directory tree for a regular expression."""

    name = "search_in_files"
    description = "Recursive search for a regex pattern, skipping hidden files and directories."
    parameters = {
        "type": "object",
        "properties": {
            "pattern": {
                "type": "string",
                "description": "Regular expression (Python syntax)",
            },
            "path": {
                "type": "string",
                "description": "File or directory to search",
                "default": ".",
            },
            "case_sensitive": {
                "type": "boolean",
                "description": "Case-sensitive match (default true)",
                "default": True,
            },
        },
        "required": ["pattern", "path"],
    }

    def __init__(self, max_files: int | None = None, max_matches: int | None = None):
        search_cfg = get_config().tools.search
        self.max_files = max_files or search_cfg.max_files
        self.max_matches = max_matches or search_cfg.max_matches

    def _iter_files(self, root: Path):
        if root.is_file():
            yield root
            return
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            for filename in sorted(filenames):
                if not filename.startswith("."):
                    yield Path(dirpath) / filename

    def _search(self, regex: re.Pattern[str], root: Path) -> tuple[list[str], int]:
        hits: list[str] = []
        checked = 0
        for file_path in self._iter_files(root):
            if checked >= self.max_files or len(hits) >= self.max_matches:
                break
            checked += 1
            try:
                with open(file_path, encoding="utf-8") as f:
                    for idx, line in enumerate(f, start=1):
                        if regex.search(line):
                            hits.append(f"{file_path}:{idx}:{line.rstrip()}")
                            if len(hits) >= self.max_matches:
                                break
            except (UnicodeDecodeError, OSError):
                log.debug("Skipping unreadable file", path=str(file_path))
        return hits, checked

    async def execute(
        self,
        pattern: str,
        path: str = ".",
        case_sensitive: bool = True,
        **kwargs: Any,
    ) -> ToolResult:
        flags = 0 if case_sensitive else re.IGNORECASE
        try:
            regex = re.compile(pattern, flags)
        except re.error as e:
            return ToolResult(success=False, error=f"Invalid regex: {e}")

        root = Path(path).expanduser()
        if not root.exists():
            return ToolResult(success=False, error=f"Path not found: {path}")

        hits, checked = await asyncio.to_thread(self._search, regex, root)
        if not hits:
            return ToolResult(success=False, error="no matches found")
        return ToolResult(
            success=True,
            content=f"Found {len(hits)} matches in {checked} files:\n" + "\n".join(hits),
        )
