"""Tool registry and base tool class."""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, model_validator

from termx.exceptions import (
    ToolArgumentError,
    ToolBlockedError,
    ToolExecutionError,
    ToolNotFoundError,
)
from termx.llm.types import ToolDefinition
from termx.logging import get_logger

log = get_logger(__name__)


class ToolResult(BaseModel):
    """Result from tool execution."""

    success: bool = True
    content: str = ""
    error: str | None = None

    @model_validator(mode="after")
    def _normalize_failure_error(self) -> "ToolResult":
        """Ensure failed results always provide an error message."""
        if not self.success and not (self.error or "").strip():
            fallback = (self.content or "").strip()
            self.error = fallback or "Tool execution failed"
        return self

    def to_observation(self) -> str:
        """Render the result as the text the model sees."""
        if self.success:
            return self.content
        return f"Error: {self.error}"


class Tool(ABC):
    """Base class for all tools.

    ``mutating`` marks tools that can alter the filesystem or run commands;
    those go through the approval gate unless auto-approve is on.
    """

    name: str = ""
    description: str = ""
    parameters: dict[str, Any] | None = None
    mutating: bool = False

    @abstractmethod
    async def execute(self, **kwargs: Any) -> ToolResult:
        """Execute the tool.

        Args:
            **kwargs: Tool-specific arguments

        Returns:
            ToolResult with success status and content
        """
        pass

    def get_definition(self) -> ToolDefinition:
        """Get the tool definition for the LLM."""
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=self.parameters or {"type": "object", "properties": {}},
        )

    def prepare_arguments(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Fill documented defaults and check required arguments.

        Raises:
            ToolArgumentError if a required argument is still missing
        """
        prepared = dict(arguments)
        properties = (self.parameters or {}).get("properties", {})
        for key, spec in properties.items():
            if key not in prepared or prepared[key] is None:
                if isinstance(spec, dict) and "default" in spec:
                    prepared[key] = spec["default"]
                else:
                    prepared.pop(key, None)

        for field in (self.parameters or {}).get("required", []):
            if field not in prepared:
                raise ToolArgumentError(self.name, f"Missing required argument: {field}")
        return prepared

    def check_policy(self, arguments: dict[str, Any]) -> str | None:
        """Return a reason to refuse these arguments, or None to allow them."""
        return None


class ToolRegistry:
    """Registry mapping tool names to handlers and their schemas."""

    def __init__(self, tools: list[Tool] | None = None):
        self._tools: dict[str, Tool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        """Register a tool.

        Args:
            tool: Tool instance to register
        """
        if not tool.name:
            raise ValueError("Tool must have a name")

        log.debug("Registering tool", tool=tool.name)
        self._tools[tool.name] = tool

    def unregister(self, name: str) -> None:
        """Unregister a tool.

        Args:
            name: Tool name to unregister
        """
        self._tools.pop(name, None)

    def has_tool(self, name: str) -> bool:
        """Return whether a tool name is currently registered."""
        return name in self._tools

    def get(self, name: str) -> Tool:
        """Get a tool by name.

        Raises:
            ToolNotFoundError if not found
        """
        if name not in self._tools:
            raise ToolNotFoundError(name)
        return self._tools[name]

    def list_tools(self) -> list[str]:
        """List all registered tool names in registration order."""
        return list(self._tools)

    def get_definitions(self) -> list[ToolDefinition]:
        """Get all tool definitions for the LLM."""
        return [tool.get_definition() for tool in self._tools.values()]

    def requires_approval(self, name: str) -> bool:
        """Whether executing ``name`` needs human approval."""
        tool = self._tools.get(name)
        return bool(tool and tool.mutating)

    async def execute(self, name: str, arguments: dict[str, Any]) -> ToolResult:
        """Execute a tool by name.

        Args:
            name: Tool name
            arguments: Decoded tool arguments

        Returns:
            ToolResult from execution

        Raises:
            ToolNotFoundError if tool not found
            ToolArgumentError if a required argument is missing
            ToolBlockedError if the tool refuses the arguments
            ToolExecutionError if execution fails
        """
        tool = self.get(name)
        prepared = tool.prepare_arguments(arguments)

        reason = tool.check_policy(prepared)
        if reason:
            log.warning("Tool call blocked", tool=name, reason=reason)
            raise ToolBlockedError(name, reason)

        try:
            log.info("Executing tool", tool=name, args=prepared)
            result = await tool.execute(**prepared)
        except TypeError as e:
            raise ToolArgumentError(name, f"Invalid arguments for '{name}': {e}")
        except Exception as e:
            log.error("Tool execution failed", tool=name, error=str(e))
            raise ToolExecutionError(name, str(e))

        if not isinstance(result, ToolResult):
            raise ToolExecutionError(name, "Tool returned invalid result payload")
        log.info("Tool executed", tool=name, success=result.success)
        return result
