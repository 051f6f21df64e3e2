"""Human approval for mutating tool calls.

Tool calls in one turn run concurrently, but the terminal can only ask one
question at a time. Every approval request therefore goes through an
:class:`ApprovalGate`, a single worker task draining a queue, which asks the
underlying :class:`Approver` strictly one prompt after another.
"""

import asyncio
import inspect
import json
from typing import Any, Protocol

from termx.exceptions import ApprovalError
from termx.logging import get_logger

log = get_logger(__name__)


class Approver(Protocol):
    """Anything that can answer a yes/no question from a human.

    ``request_approval`` may be a plain blocking function (it is run in a
    worker thread) or a coroutine function.
    """

    def request_approval(self, prompt: str) -> bool: ...


def format_approval_prompt(tool_name: str, arguments: dict[str, Any]) -> str:
    """Describe a pending tool call for the approval prompt."""
    try:
        rendered = json.dumps(arguments, indent=2, ensure_ascii=False)
    except (TypeError, ValueError):
        rendered = repr(arguments)
    return f"Allow '{tool_name}' to run?\n{rendered}"


class ApprovalGate:
    """Serialize approval prompts through one consumer task."""

    def __init__(self, approver: Approver):
        self._approver = approver
        self._queue: asyncio.Queue[tuple[str, asyncio.Future[bool]]] | None = None
        self._worker: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    def _ensure_worker(self) -> asyncio.Queue[tuple[str, asyncio.Future[bool]]]:
        loop = asyncio.get_running_loop()
        if self._queue is None or self._loop is not loop or self._worker is None or self._worker.done():
            self._loop = loop
            self._queue = asyncio.Queue()
            self._worker = loop.create_task(self._run(self._queue))
        return self._queue

    async def request(self, prompt: str) -> bool:
        """Queue a prompt and wait for the human's answer.

        Raises:
            ApprovalError if the approver could not obtain an answer
        """
        queue = self._ensure_worker()
        future: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
        await queue.put((prompt, future))
        return await future

    async def _ask(self, prompt: str) -> bool:
        request_approval = self._approver.request_approval
        if inspect.iscoroutinefunction(request_approval):
            return bool(await request_approval(prompt))
        return bool(await asyncio.to_thread(request_approval, prompt))

    async def _run(self, queue: asyncio.Queue[tuple[str, asyncio.Future[bool]]]) -> None:
        while True:
            prompt, future = await queue.get()
            try:
                if future.done():
                    continue
                try:
                    approved = await self._ask(prompt)
                except ApprovalError as e:
                    future.set_exception(e)
                except Exception as e:
                    log.warning("Approval prompt failed", error=str(e))
                    future.set_exception(ApprovalError(f"Failed to read input: {e}"))
                else:
                    log.info("Approval decided", approved=approved)
                    future.set_result(approved)
            finally:
                queue.task_done()

    async def close(self) -> None:
        """Stop the consumer task."""
        worker, self._worker = self._worker, None
        self._queue = None
        if worker is None or worker.done():
            return
        worker.cancel()
        try:
            await worker
        except asyncio.CancelledError:
            pass
