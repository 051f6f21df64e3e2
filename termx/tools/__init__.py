"""Tools package for termx."""

from termx.llm import LLMProvider
from termx.tools.edit import EditFileTool
from termx.tools.insert import InsertInFileTool
from termx.tools.list_dir import ListDirTool
from termx.tools.orackle import AskOrackleTool
from termx.tools.read import ReadFileTool
from termx.tools.registry import Tool, ToolRegistry, ToolResult
from termx.tools.search import SearchInFilesTool
from termx.tools.shell import RunShellTool
from termx.tools.write import WriteFileTool


def create_default_registry(orackle_provider: LLMProvider | None = None) -> ToolRegistry:
    """Build the registry with every built-in tool."""
    return ToolRegistry(
        [
            ListDirTool(),
            ReadFileTool(),
            RunShellTool(),
            WriteFileTool(),
            SearchInFilesTool(),
            EditFileTool(),
            InsertInFileTool(),
            AskOrackleTool(provider=orackle_provider),
        ]
    )


__all__ = [
    "Tool",
    "ToolRegistry",
    "ToolResult",
    "create_default_registry",
    "ListDirTool",
    "ReadFileTool",
    "RunShellTool",
    "WriteFileTool",
    "SearchInFilesTool",
    "EditFileTool",
    "InsertInFileTool",
    "AskOrackleTool",
]
