import asyncio

import pytest

from termx.approval import ApprovalGate, format_approval_prompt
from termx.dispatcher import ToolDispatcher
from termx.llm import ToolCall
from termx.tools.registry import Tool, ToolRegistry, ToolResult


class ConcurrencyTracker:
    """Async approver that records how many prompts were open at once."""

    def __init__(self):
        self.active = 0
        self.max_active = 0
        self.prompts: list[str] = []

    async def request_approval(self, prompt: str) -> bool:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        self.prompts.append(prompt)
        await asyncio.sleep(0.01)
        self.active -= 1
        return True


class TouchTool(Tool):
    name = "touch"
    description = "Mutating no-op"
    parameters = {"type": "object", "properties": {"path": {"type": "string"}}, "required": ["path"]}
    mutating = True

    async def execute(self, path: str, **kwargs) -> ToolResult:
        return ToolResult(success=True, content=f"touched {path}")


@pytest.mark.asyncio
async def test_gate_asks_one_prompt_at_a_time():
    tracker = ConcurrencyTracker()
    gate = ApprovalGate(tracker)

    results = await asyncio.gather(*(gate.request(f"prompt {i}") for i in range(5)))
    await gate.close()

    assert results == [True] * 5
    assert tracker.max_active == 1
    assert sorted(tracker.prompts) == [f"prompt {i}" for i in range(5)]


@pytest.mark.asyncio
async def test_concurrent_tool_calls_share_one_approver():
    tracker = ConcurrencyTracker()
    dispatcher = ToolDispatcher(ToolRegistry([TouchTool()]), approval_gate=ApprovalGate(tracker))
    calls = [ToolCall(id=f"c{i}", name="touch", arguments=f'{{"path": "f{i}"}}') for i in range(4)]

    observations = await dispatcher.dispatch(calls)
    await dispatcher.aclose()

    assert [o.content for o in observations] == [f"touched f{i}" for i in range(4)]
    assert tracker.max_active == 1
    assert len(tracker.prompts) == 4


@pytest.mark.asyncio
async def test_blocking_approver_runs_in_worker_thread():
    class BlockingApprover:
        def request_approval(self, prompt: str) -> bool:
            return prompt.endswith("yes")

    gate = ApprovalGate(BlockingApprover())

    assert await gate.request("say yes") is True
    assert await gate.request("say no") is False
    await gate.close()


@pytest.mark.asyncio
async def test_gate_restarts_after_close():
    tracker = ConcurrencyTracker()
    gate = ApprovalGate(tracker)

    assert await gate.request("first") is True
    await gate.close()
    assert await gate.request("second") is True
    await gate.close()

    assert tracker.prompts == ["first", "second"]


def test_prompt_names_tool_and_arguments():
    prompt = format_approval_prompt("run_shell", {"command": "ls -la"})

    assert prompt.startswith("Allow 'run_shell' to run?")
    assert '"command": "ls -la"' in prompt
