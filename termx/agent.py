"""The agent loop: model call, tool dispatch, repeat until an answer or the step limit."""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any

from termx.approval import ApprovalGate, Approver
from termx.config import Config
from termx.context import compact_history
from termx.dispatcher import ToolDispatcher
from termx.exceptions import ConfigurationError, LLMTimeoutError
from termx.llm import LLMProvider, Message
from termx.logging import get_logger
from termx.session import Session
from termx.tools.registry import ToolRegistry

log = get_logger(__name__)


@dataclass(frozen=True)
class AgentOptions:
    """Per-run limits. Immutable for the duration of a run."""

    max_steps: int = 12
    auto_approve: bool = False
    step_timeout: float = 45.0  # seconds
    observation_clip: int = 4000  # characters per tool output

    def __post_init__(self) -> None:
        if self.max_steps < 1:
            raise ConfigurationError("max_steps must be a positive integer")
        if self.step_timeout <= 0:
            raise ConfigurationError("step_timeout must be positive")
        if self.observation_clip < 1:
            raise ConfigurationError("observation_clip must be a positive integer")

    @classmethod
    def from_config(cls, config: Config, **overrides: Any) -> "AgentOptions":
        values = {
            "max_steps": config.agent.max_steps,
            "auto_approve": config.agent.auto_approve,
            "step_timeout": config.agent.step_timeout,
            "observation_clip": config.agent.observation_clip,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


class AgentEvents:
    """Hooks for live display. The default implementation ignores everything."""

    def on_content_chunk(self, chunk: str) -> None:
        pass

    def on_tool_call(self, name: str, arguments: dict[str, Any]) -> None:
        pass

    def on_tool_result(self, name: str, observation: str) -> None:
        pass

    def on_step_limit(self, max_steps: int) -> None:
        pass


class AgentState(str, Enum):
    IDLE = "idle"
    REQUESTING_MODEL = "requesting_model"
    DISPATCHING_TOOLS = "dispatching_tools"


@dataclass
class RunResult:
    """Outcome of :meth:`Agent.run`."""

    final_answer: str | None
    steps: int
    limit_reached: bool = False


class Agent:
    """Drives one session through model calls and tool dispatch."""

    def __init__(
        self,
        provider: LLMProvider,
        tools: ToolRegistry,
        options: AgentOptions | None = None,
        approver: Approver | None = None,
        events: AgentEvents | None = None,
    ):
        self.provider = provider
        self.tools = tools
        self.options = options or AgentOptions()
        self.events = events or AgentEvents()
        self.state = AgentState.IDLE
        self.dispatcher = ToolDispatcher(
            registry=tools,
            approval_gate=ApprovalGate(approver) if approver is not None else None,
            auto_approve=self.options.auto_approve,
            observation_clip=self.options.observation_clip,
            on_tool_call=self.events.on_tool_call,
            on_tool_result=self.events.on_tool_result,
        )

    @property
    def max_steps(self) -> int:
        return self.options.max_steps

    def compact_history(self, session: Session) -> int:
        """Clip oversized tool observations in the session history."""
        clipped = compact_history(session.messages, self.options.observation_clip)
        if clipped:
            log.debug("Compacted history", clipped=clipped, session_id=session.id)
        return clipped

    async def _request_turn(self, session: Session):
        try:
            return await asyncio.wait_for(
                self.provider.complete(
                    list(session.messages),
                    self.tools.get_definitions(),
                    on_content=self.events.on_content_chunk,
                ),
                timeout=self.options.step_timeout,
            )
        except asyncio.TimeoutError:
            raise LLMTimeoutError(self.options.step_timeout) from None

    async def run_step(self, session: Session) -> str | None:
        """Run one step.

        Returns:
            The trimmed final answer, or None when the step called tools or
            produced no text.

        Raises:
            LLMError if the model call fails or times out
        """
        self.compact_history(session)

        self.state = AgentState.REQUESTING_MODEL
        turn = await self._request_turn(session)
        session.add_message(turn.to_message())

        if not turn.has_tool_calls:
            self.state = AgentState.IDLE
            text = (turn.content or "").strip()
            return text or None

        self.state = AgentState.DISPATCHING_TOOLS
        log.info("Dispatching tool calls", count=len(turn.tool_calls), session_id=session.id)
        observations = await self.dispatcher.dispatch(turn.tool_calls)
        for observation in observations:
            session.add_message(observation.to_message())
        self.state = AgentState.IDLE
        return None

    async def run(self, user_input: str | None, session: Session) -> RunResult:
        """Seed the user's input and step until an answer or ``max_steps``.

        Reaching the step limit is not an error; the history is left intact
        for the caller to inspect.
        """
        if user_input is not None:
            session.add_message(Message(role="user", content=user_input))

        try:
            for step in range(1, self.options.max_steps + 1):
                log.debug("Agent step", step=step, session_id=session.id)
                answer = await self.run_step(session)
                if answer is not None:
                    return RunResult(final_answer=answer, steps=step)

            log.info("Reached step limit without final answer", max_steps=self.options.max_steps)
            self.events.on_step_limit(self.options.max_steps)
            return RunResult(final_answer=None, steps=self.options.max_steps, limit_reached=True)
        finally:
            self.state = AgentState.IDLE
            await self.dispatcher.aclose()
