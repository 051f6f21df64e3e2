"""Custom exceptions for termx."""


class TermxError(Exception):
    """Base exception for termx."""

    pass


class ConfigurationError(TermxError):
    """Configuration-related errors."""

    pass


class LLMError(TermxError):
    """LLM-related errors. Always fatal for the current run."""

    pass


class LLMAPIError(LLMError):
    """Transport failures and non-success responses from the chat endpoint."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class LLMTimeoutError(LLMError):
    """The model call did not finish within the step timeout."""

    def __init__(self, timeout: float):
        super().__init__(f"Model call timed out after {timeout:g}s")
        self.timeout = timeout


class ToolError(TermxError):
    """Tool errors. Recorded as observations, never fatal."""

    pass


class ToolExecutionError(ToolError):
    """Tool execution failed."""

    def __init__(self, tool_name: str, message: str):
        super().__init__(f"Tool '{tool_name}' failed: {message}")
        self.tool_name = tool_name


class ToolNotFoundError(ToolError):
    """Tool not found in registry."""

    def __init__(self, tool_name: str):
        super().__init__(f"Unknown tool: {tool_name}")
        self.tool_name = tool_name


class ToolArgumentError(ToolError):
    """Tool arguments could not be parsed or are missing required fields."""

    def __init__(self, tool_name: str, message: str):
        super().__init__(message)
        self.tool_name = tool_name


class ToolBlockedError(ToolError):
    """Tool execution blocked by policy."""

    def __init__(self, tool_name: str, reason: str):
        super().__init__(f"Tool '{tool_name}' blocked: {reason}")
        self.tool_name = tool_name
        self.reason = reason


class ApprovalError(TermxError):
    """The approval prompt could not be answered."""

    pass
