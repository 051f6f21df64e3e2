"""Reduce incremental chat-completion fragments into one complete Turn.

The chat endpoint delivers an assistant turn either as a single response
object or as a stream of Server-Sent-Events ``data:`` lines. Both are turned
into a flat sequence of :class:`Fragment` values and reduced by the same
:class:`TurnAccumulator`, so streamed and non-streamed calls can never
disagree on how tool calls are reassembled.

Tool-call deltas are keyed by the ``index`` the endpoint assigns, not by
arrival order. ``id`` and ``name`` are overwritten whenever a fragment carries
a non-empty value, while ``arguments`` fragments are appended. Any way of
splitting the same logical stream therefore yields the same Turn.
"""

import json
from collections.abc import AsyncIterable, Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from termx.exceptions import LLMAPIError
from termx.llm.types import ToolCall, Turn
from termx.logging import get_logger

log = get_logger(__name__)

SSE_DATA_PREFIX = "data:"
SSE_DONE_TOKEN = "[DONE]"

ContentCallback = Callable[[str], None]


class FragmentKind(str, Enum):
    CONTENT = "content"
    TOOL_CALL = "tool_call"
    FINISH = "finish"
    NOISE = "noise"


@dataclass(frozen=True)
class Fragment:
    """One partial piece of an assistant turn."""

    kind: FragmentKind
    text: str = ""
    index: int = 0
    id: str | None = None
    name: str | None = None
    arguments: str | None = None

    @classmethod
    def content(cls, text: str) -> "Fragment":
        return cls(FragmentKind.CONTENT, text=text)

    @classmethod
    def tool_call(
        cls,
        index: int,
        id: str | None = None,
        name: str | None = None,
        arguments: str | None = None,
    ) -> "Fragment":
        return cls(FragmentKind.TOOL_CALL, index=index, id=id, name=name, arguments=arguments)

    @classmethod
    def finish(cls) -> "Fragment":
        return cls(FragmentKind.FINISH)

    @classmethod
    def noise(cls, text: str = "") -> "Fragment":
        return cls(FragmentKind.NOISE, text=text)


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    # Some endpoints hand back already-decoded argument objects.
    return json.dumps(value)


def _tool_call_fragments(raw_calls: Any) -> list[Fragment]:
    fragments: list[Fragment] = []
    if not isinstance(raw_calls, list):
        return fragments
    for position, raw in enumerate(raw_calls):
        if not isinstance(raw, dict):
            continue
        index = raw.get("index")
        if not isinstance(index, int):
            index = position
        function = raw.get("function") or {}
        if not isinstance(function, dict):
            fragments.append(Fragment.noise(str(function)))
            continue
        fragments.append(
            Fragment.tool_call(
                index=index,
                id=_as_text(raw.get("id")),
                name=_as_text(function.get("name")),
                arguments=_as_text(function.get("arguments")),
            )
        )
    return fragments


def _raise_for_error_payload(payload: dict[str, Any]) -> None:
    error = payload.get("error")
    if not error:
        return
    if isinstance(error, dict):
        message = error.get("message") or json.dumps(error)
        code = error.get("code")
        status = code if isinstance(code, int) else None
    else:
        message, status = str(error), None
    raise LLMAPIError(f"Chat endpoint reported an error: {message}", status_code=status)


def fragments_from_chunk(payload: dict[str, Any]) -> list[Fragment]:
    """Convert one decoded streaming chunk into fragments.

    Deltas carried by the chunk are emitted before its finish signal.
    """
    if not isinstance(payload, dict):
        return [Fragment.noise(str(payload))]
    _raise_for_error_payload(payload)
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        # Usage-only or keep-alive chunk.
        return [Fragment.noise()]

    choice = choices[0]
    delta = choice.get("delta") or {}
    if not isinstance(delta, dict):
        return [Fragment.noise(str(delta))]
    fragments: list[Fragment] = []

    content = delta.get("content")
    if isinstance(content, str) and content:
        fragments.append(Fragment.content(content))
    fragments.extend(_tool_call_fragments(delta.get("tool_calls")))

    if choice.get("finish_reason"):
        fragments.append(Fragment.finish())
    return fragments


def fragments_from_response(payload: dict[str, Any]) -> list[Fragment]:
    """Convert a complete (non-streamed) response into the equivalent fragments."""
    if not isinstance(payload, dict):
        raise LLMAPIError(f"Unexpected response payload: {type(payload).__name__}")
    _raise_for_error_payload(payload)
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        raise LLMAPIError("No choices in response")

    message = choices[0].get("message") or {}
    if not isinstance(message, dict):
        raise LLMAPIError("Malformed message in response")
    fragments: list[Fragment] = []
    content = message.get("content")
    if isinstance(content, str) and content:
        fragments.append(Fragment.content(content))
    fragments.extend(_tool_call_fragments(message.get("tool_calls")))
    fragments.append(Fragment.finish())
    return fragments


def parse_sse_line(line: str) -> list[Fragment]:
    """Parse one Server-Sent-Events line.

    Lines that are not ``data:`` lines (comments, ``event:`` fields, blank
    separators) yield nothing. Undecodable payloads yield a single noise
    fragment so the caller can keep going.
    """
    stripped = line.strip()
    if not stripped.startswith(SSE_DATA_PREFIX):
        return []
    data = stripped[len(SSE_DATA_PREFIX):].strip()
    if not data:
        return []
    if data == SSE_DONE_TOKEN:
        return [Fragment.finish()]
    try:
        payload = json.loads(data)
    except json.JSONDecodeError:
        return [Fragment.noise(data)]
    if not isinstance(payload, dict):
        return [Fragment.noise(data)]
    return fragments_from_chunk(payload)


class TurnAccumulator:
    """Stateful reducer from fragments to a :class:`Turn`."""

    def __init__(self, on_content: ContentCallback | None = None):
        self._on_content = on_content
        self._content_parts: list[str] = []
        self._calls: dict[int, ToolCall] = {}
        self.finished = False

    def _emit_content(self, text: str) -> None:
        if self._on_content is None:
            return
        try:
            self._on_content(text)
        except Exception as e:
            # Display problems must not change what gets accumulated.
            log.warning("Content callback failed", error=str(e))

    def feed(self, fragment: Fragment) -> None:
        """Apply one fragment. Fragments after a finish signal are ignored."""
        if self.finished:
            return

        if fragment.kind is FragmentKind.CONTENT:
            if fragment.text:
                self._content_parts.append(fragment.text)
                self._emit_content(fragment.text)
        elif fragment.kind is FragmentKind.TOOL_CALL:
            entry = self._calls.get(fragment.index)
            if entry is None:
                entry = ToolCall(id="", name="", arguments="")
                self._calls[fragment.index] = entry
            if fragment.id:
                entry.id = fragment.id
            if fragment.name:
                entry.name = fragment.name
            if fragment.arguments:
                entry.arguments += fragment.arguments
        elif fragment.kind is FragmentKind.FINISH:
            self.finished = True
        else:
            log.debug("Skipping unparsable stream fragment", fragment=fragment.text[:200])

    def feed_all(self, fragments: Iterable[Fragment]) -> "TurnAccumulator":
        for fragment in fragments:
            self.feed(fragment)
            if self.finished:
                break
        return self

    def build(self) -> Turn:
        content = "".join(self._content_parts) if self._content_parts else None
        tool_calls = None
        if self._calls:
            tool_calls = [
                ToolCall(id=call.id, name=call.name, arguments=call.arguments)
                for _, call in sorted(self._calls.items())
            ]
        return Turn(content=content, tool_calls=tool_calls)


async def accumulate(
    fragments: AsyncIterable[Fragment],
    on_content: ContentCallback | None = None,
) -> Turn:
    """Consume fragments until a finish signal or exhaustion and build the Turn."""
    accumulator = TurnAccumulator(on_content=on_content)
    async for fragment in fragments:
        accumulator.feed(fragment)
        if accumulator.finished:
            break
    return accumulator.build()


def accumulate_response(
    payload: dict[str, Any],
    on_content: ContentCallback | None = None,
) -> Turn:
    """Reduce a complete response through the same path as a stream."""
    return TurnAccumulator(on_content=on_content).feed_all(fragments_from_response(payload)).build()
