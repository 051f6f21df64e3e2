"""Context size helpers: observation clipping and history compaction."""

from termx.llm.types import Message

TRUNCATION_MARKER = "… [truncated]"


def clip_text(text: str, max_chars: int) -> str:
    """Clip ``text`` to ``max_chars`` characters followed by the truncation marker.

    Text that is already a clipped result for the same limit is returned
    unchanged, so clipping is idempotent.
    """
    if len(text) <= max_chars:
        return text
    if text.endswith(TRUNCATION_MARKER) and len(text) <= max_chars + len(TRUNCATION_MARKER):
        return text
    return text[:max_chars] + TRUNCATION_MARKER


def compact_history(messages: list[Message], observation_clip: int) -> int:
    """Clip oversized tool observations in place.

    Only ``tool`` messages are touched, and only their content; role and
    ``tool_call_id`` stay as they were. No message is dropped.

    Returns:
        Number of messages that were clipped
    """
    clipped = 0
    for message in messages:
        if message.role != "tool" or message.content is None:
            continue
        new_content = clip_text(message.content, observation_clip)
        if new_content != message.content:
            message.content = new_content
            clipped += 1
    return clipped
