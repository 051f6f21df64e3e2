"""ask_orackle tool: a read-only advisory agent backed by a nested model call."""

from typing import Any

from termx.config import get_config
from termx.exceptions import TermxError
from termx.llm import LLMProvider, Message, create_provider
from termx.logging import get_logger
from termx.tools.registry import Tool, ToolResult

log = get_logger(__name__)

ORACKLE_SYSTEM_PROMPT = """You are Orackle, an expert coding assistant agent that provides insights and guidance to solve complex problems.
You have deep knowledge of software engineering, debugging, system architecture, and problem-solving strategies.

Your role is to:
1. Analyze the problem description thoroughly
2. Identify the core issue or bottleneck
3. Provide strategic insights and alternative approaches
4. Suggest specific, actionable solutions
5. Highlight potential pitfalls and how to avoid them

You are READ-ONLY - you cannot modify files or execute commands. Focus on analysis and guidance.
Be concise but thorough. Provide step-by-step reasoning when helpful."""

NO_INSIGHTS = "Orackle: No insights available."


class AskOrackleTool(Tool):
    """Ask a second, read-only model for strategic advice."""

    name = "ask_orackle"
    description = (
        "Ask Orackle for insights when stuck with complex problems. Orackle is a read-only "
        "expert agent that provides strategic guidance and alternative approaches."
    )
    parameters = {
        "type": "object",
        "properties": {
            "query": {
                "type": "string",
                "description": "Detailed description of the problem or situation where the main agent is stuck",
            },
        },
        "required": ["query"],
    }

    def __init__(self, provider: LLMProvider | None = None):
        self._provider = provider

    def _get_provider(self) -> LLMProvider:
        if self._provider is None:
            cfg = get_config()
            self._provider = create_provider(
                base_url=cfg.model.base_url,
                api_key=cfg.model.api_key,
                model=cfg.model.orackle_model,
                timeout=cfg.model.request_timeout,
            )
        return self._provider

    async def execute(self, query: str, **kwargs: Any) -> ToolResult:
        messages = [
            Message(role="system", content=ORACKLE_SYSTEM_PROMPT),
            Message(
                role="user",
                content=f"Main agent is stuck with this problem and needs insights:\n\n{query}",
            ),
        ]
        try:
            turn = await self._get_provider().complete_once(messages)
        except TermxError as e:
            log.warning("Orackle call failed", error=str(e))
            return ToolResult(success=False, error=f"LLM call failed: {e}")

        insights = (turn.content or "").strip()
        return ToolResult(success=True, content=insights or NO_INSIGHTS)
