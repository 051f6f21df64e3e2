import asyncio

import pytest

from termx.agent import Agent, AgentEvents, AgentOptions, AgentState
from termx.config import Config
from termx.context import TRUNCATION_MARKER
from termx.exceptions import ConfigurationError, LLMAPIError, LLMTimeoutError
from termx.llm import LLMProvider, Message, ToolCall, ToolDefinition, Turn
from termx.session import Session
from termx.tools.registry import Tool, ToolRegistry, ToolResult


class ScriptedProvider(LLMProvider):
    """Returns pre-baked turns and records what it was sent."""

    def __init__(self, turns: list[Turn], repeat_last: bool = False):
        self.turns = list(turns)
        self.repeat_last = repeat_last
        self.calls: list[list[dict]] = []

    async def complete(self, messages, tools=None, on_content=None) -> Turn:
        self.calls.append([m.to_dict() for m in messages])
        if len(self.turns) > 1 or not self.repeat_last:
            turn = self.turns.pop(0)
        else:
            turn = self.turns[0]
        if on_content and turn.content:
            on_content(turn.content)
        return turn

    async def complete_once(self, messages, tools=None) -> Turn:
        return await self.complete(messages, tools)


class HangingProvider(LLMProvider):
    async def complete(self, messages, tools=None, on_content=None) -> Turn:
        await asyncio.sleep(10)
        return Turn(content="too late")

    async def complete_once(self, messages, tools=None) -> Turn:
        return await self.complete(messages, tools)


class FailingProvider(LLMProvider):
    async def complete(self, messages, tools=None, on_content=None) -> Turn:
        raise LLMAPIError("Chat API error 500: Internal Server Error", status_code=500)

    async def complete_once(self, messages, tools=None) -> Turn:
        return await self.complete(messages, tools)


class LookupTool(Tool):
    name = "lookup"
    description = "Look something up"
    parameters = {"type": "object", "properties": {"key": {"type": "string"}}, "required": ["key"]}

    async def execute(self, key: str, **kwargs) -> ToolResult:
        return ToolResult(success=True, content=f"value of {key}")


class RecordingEvents(AgentEvents):
    def __init__(self):
        self.chunks: list[str] = []
        self.tool_calls: list[str] = []
        self.tool_results: list[str] = []
        self.step_limits: list[int] = []

    def on_content_chunk(self, chunk: str) -> None:
        self.chunks.append(chunk)

    def on_tool_call(self, name, arguments) -> None:
        self.tool_calls.append(name)

    def on_tool_result(self, name, observation) -> None:
        self.tool_results.append(observation)

    def on_step_limit(self, max_steps: int) -> None:
        self.step_limits.append(max_steps)


def _lookup_turn(call_id: str = "call_1", key: str = "a") -> Turn:
    return Turn(tool_calls=[ToolCall(id=call_id, name="lookup", arguments=f'{{"key": "{key}"}}')])


def _agent(provider: LLMProvider, **options) -> Agent:
    return Agent(
        provider=provider,
        tools=ToolRegistry([LookupTool()]),
        options=AgentOptions(**options),
        events=RecordingEvents(),
    )


@pytest.mark.asyncio
async def test_plain_answer_ends_run_after_one_step():
    provider = ScriptedProvider([Turn(content="  The answer is 4.\n")])
    agent = _agent(provider)
    session = Session()

    result = await agent.run("what is 2+2?", session)

    assert result.final_answer == "The answer is 4."
    assert result.steps == 1
    assert result.limit_reached is False
    assert [m.role for m in session.messages] == ["user", "assistant"]
    assert agent.events.chunks == ["  The answer is 4.\n"]
    assert agent.state is AgentState.IDLE


@pytest.mark.asyncio
async def test_tool_step_then_answer():
    provider = ScriptedProvider([_lookup_turn(), Turn(content="It is value of a.")])
    agent = _agent(provider)
    session = Session()

    result = await agent.run("look up a", session)

    assert result.final_answer == "It is value of a."
    assert result.steps == 2
    assert [m.role for m in session.messages] == ["user", "assistant", "tool", "assistant"]
    tool_msg = session.messages[2]
    assert tool_msg.tool_call_id == "call_1"
    assert tool_msg.content == "value of a"
    # The second model call sees the observation.
    assert provider.calls[1][-1] == {"role": "tool", "content": "value of a", "tool_call_id": "call_1"}
    assert agent.events.tool_calls == ["lookup"]


@pytest.mark.asyncio
async def test_tool_messages_follow_request_order():
    turn = Turn(
        tool_calls=[
            ToolCall(id="c1", name="lookup", arguments='{"key": "x"}'),
            ToolCall(id="c2", name="missing_tool", arguments="{}"),
            ToolCall(id="c3", name="lookup", arguments='{"key": "z"}'),
        ]
    )
    provider = ScriptedProvider([turn, Turn(content="done")])
    session = Session()

    await _agent(provider).run("go", session)

    tool_msgs = [m for m in session.messages if m.role == "tool"]
    assert [m.tool_call_id for m in tool_msgs] == ["c1", "c2", "c3"]
    assert tool_msgs[1].content == "Error: unknown tool 'missing_tool'"


@pytest.mark.asyncio
async def test_empty_reply_is_not_a_final_answer():
    provider = ScriptedProvider([Turn(content="   "), Turn(content="real answer")])
    session = Session()

    result = await _agent(provider).run("hi", session)

    assert result.final_answer == "real answer"
    assert result.steps == 2
    assert session.messages[1].content == "   "


@pytest.mark.asyncio
async def test_reply_with_no_content_and_no_calls_is_recorded_as_empty():
    provider = ScriptedProvider([Turn()], repeat_last=True)
    agent = _agent(provider, max_steps=1)
    session = Session()

    result = await agent.run("hi", session)

    assert result.final_answer is None
    assert result.limit_reached is True
    assert session.messages[1].to_dict() == {"role": "assistant", "content": ""}


@pytest.mark.asyncio
async def test_step_limit_stops_after_max_steps():
    provider = ScriptedProvider([_lookup_turn()], repeat_last=True)
    agent = _agent(provider, max_steps=2)
    session = Session()

    result = await agent.run("loop forever", session)

    assert result.final_answer is None
    assert result.limit_reached is True
    assert result.steps == 2
    assert len(provider.calls) == 2
    assert [m.role for m in session.messages] == ["user", "assistant", "tool", "assistant", "tool"]
    assert agent.events.step_limits == [2]


@pytest.mark.asyncio
async def test_model_timeout_is_fatal():
    agent = _agent(HangingProvider(), step_timeout=0.05)
    session = Session()

    with pytest.raises(LLMTimeoutError):
        await agent.run("hello", session)

    assert [m.role for m in session.messages] == ["user"]
    assert agent.state is AgentState.IDLE


@pytest.mark.asyncio
async def test_transport_error_is_fatal_and_history_kept():
    agent = _agent(FailingProvider())
    session = Session()
    session.add_message(Message(role="system", content="sys"))

    with pytest.raises(LLMAPIError):
        await agent.run("hello", session)

    assert [m.role for m in session.messages] == ["system", "user"]


@pytest.mark.asyncio
async def test_history_is_compacted_before_each_model_call():
    provider = ScriptedProvider([Turn(content="ok")])
    agent = _agent(provider, observation_clip=10)
    session = Session()
    session.add_message(Message(role="user", content="u" * 50))
    session.add_message(_lookup_turn().to_message())
    session.add_message(Message(role="tool", content="t" * 50, tool_call_id="call_1"))

    await agent.run(None, session)

    sent = provider.calls[0]
    assert sent[0]["content"] == "u" * 50
    assert sent[2] == {"role": "tool", "content": "t" * 10 + TRUNCATION_MARKER, "tool_call_id": "call_1"}


@pytest.mark.asyncio
async def test_run_step_returns_none_for_tool_turns():
    provider = ScriptedProvider([_lookup_turn()])
    agent = _agent(provider)
    session = Session()
    session.add_message(Message(role="user", content="look"))

    answer = await agent.run_step(session)
    await agent.dispatcher.aclose()

    assert answer is None
    assert session.messages[-1].role == "tool"


def test_options_reject_non_positive_values():
    with pytest.raises(ConfigurationError):
        AgentOptions(max_steps=0)
    with pytest.raises(ConfigurationError):
        AgentOptions(step_timeout=0)
    with pytest.raises(ConfigurationError):
        AgentOptions(observation_clip=-1)


def test_options_from_config_with_overrides():
    cfg = Config()

    options = AgentOptions.from_config(cfg, max_steps=3, auto_approve=None)

    assert options.max_steps == 3
    assert options.auto_approve is False
    assert options.step_timeout == 45.0
    assert options.observation_clip == 4000


def test_tool_definitions_are_offered_to_the_model():
    registry = ToolRegistry([LookupTool()])

    definitions = registry.get_definitions()

    assert definitions == [
        ToolDefinition(name="lookup", description="Look something up", parameters=LookupTool.parameters)
    ]
