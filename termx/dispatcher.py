"""Concurrent tool dispatch with approval gating.

Every tool call of a turn becomes its own asyncio task. Whatever goes wrong
inside one task (bad JSON, unknown tool, denial, a crashing tool) is turned
into observation text for that call alone; sibling calls and the step keep
going. Results are re-joined in request order, not completion order.
"""

import asyncio
import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from termx.approval import ApprovalGate, format_approval_prompt
from termx.context import clip_text
from termx.exceptions import ApprovalError, ToolError
from termx.llm.types import Message, ToolCall
from termx.logging import get_logger
from termx.tools.registry import ToolRegistry

log = get_logger(__name__)

DENIED_OBSERVATION = "User denied execution"


@dataclass
class Observation:
    """The outcome of one tool call, ready to become a ``tool`` message."""

    tool_call_id: str
    name: str
    content: str

    def to_message(self) -> Message:
        return Message(role="tool", content=self.content, tool_call_id=self.tool_call_id)


ToolCallHook = Callable[[str, dict[str, Any]], None]
ToolResultHook = Callable[[str, str], None]


class ToolDispatcher:
    """Validate, gate, execute and normalize the tool calls of one turn."""

    def __init__(
        self,
        registry: ToolRegistry,
        approval_gate: ApprovalGate | None = None,
        auto_approve: bool = False,
        observation_clip: int = 4000,
        on_tool_call: ToolCallHook | None = None,
        on_tool_result: ToolResultHook | None = None,
    ):
        self.registry = registry
        self.approval_gate = approval_gate
        self.auto_approve = auto_approve
        self.observation_clip = observation_clip
        self._on_tool_call = on_tool_call
        self._on_tool_result = on_tool_result

    @staticmethod
    def parse_arguments(tool_call: ToolCall) -> dict[str, Any]:
        """Decode the raw argument payload.

        An empty payload means "no arguments". Anything that is not a JSON
        object is rejected.
        """
        raw = tool_call.arguments.strip()
        if not raw:
            return {}
        parsed = json.loads(raw)
        if not isinstance(parsed, dict):
            raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
        return parsed

    def _notify(self, hook: Callable[..., None] | None, *args: Any) -> None:
        if hook is None:
            return
        try:
            hook(*args)
        except Exception as e:
            log.warning("Dispatcher hook failed", error=str(e))

    async def _approve(self, tool_call: ToolCall, arguments: dict[str, Any]) -> str | None:
        """Return an observation that replaces execution, or None to proceed."""
        if self.auto_approve or not self.registry.requires_approval(tool_call.name):
            return None
        if self.approval_gate is None:
            log.warning("Approval required but no approver configured", tool=tool_call.name)
            return "Error: approval required but no approver is configured"

        try:
            approved = await self.approval_gate.request(
                format_approval_prompt(tool_call.name, arguments)
            )
        except ApprovalError as e:
            log.error("Approval failed", tool=tool_call.name, error=str(e))
            return f"Error: {e}"

        if not approved:
            log.info("Tool call denied", tool=tool_call.name, call_id=tool_call.id)
            return DENIED_OBSERVATION
        return None

    async def _run_one(self, tool_call: ToolCall) -> str:
        try:
            arguments = self.parse_arguments(tool_call)
        except ValueError as e:
            # json.JSONDecodeError is a ValueError
            return (
                f"Failed to parse tool arguments for '{tool_call.name}': {e}. "
                f"Raw arguments: {tool_call.arguments}"
            )

        self._notify(self._on_tool_call, tool_call.name, arguments)

        if not self.registry.has_tool(tool_call.name):
            log.warning("Unknown tool requested", tool=tool_call.name)
            return f"Error: unknown tool '{tool_call.name}'"

        replacement = await self._approve(tool_call, arguments)
        if replacement is not None:
            return replacement

        try:
            result = await self.registry.execute(tool_call.name, arguments)
        except ToolError as e:
            return f"Error: {e}"
        return result.to_observation()

    async def dispatch(self, tool_calls: list[ToolCall]) -> list[Observation]:
        """Run every call concurrently; return one observation per call, in request order."""
        tasks = [asyncio.create_task(self._run_one(tc)) for tc in tool_calls]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        observations: list[Observation] = []
        for tool_call, outcome in zip(tool_calls, outcomes):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    text = f"Error: tool task for '{tool_call.name}' was cancelled"
                else:
                    log.error(
                        "Tool task crashed",
                        tool=tool_call.name,
                        error_type=type(outcome).__name__,
                        error=str(outcome),
                    )
                    text = f"Error: {type(outcome).__name__}: {outcome}"
            else:
                text = outcome
            self._notify(self._on_tool_result, tool_call.name, text)
            observations.append(
                Observation(
                    tool_call_id=tool_call.id,
                    name=tool_call.name,
                    content=clip_text(text, self.observation_clip),
                )
            )
        return observations

    async def aclose(self) -> None:
        if self.approval_gate is not None:
            await self.approval_gate.close()
