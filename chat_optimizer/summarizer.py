"""Collapse old conversation turns into one synthetic system message."""

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence

from .tokenizer import estimate_tokens
from .types import Role

DEFAULT_MAX_RECENT = 10
SUMMARY_MAX_SENTENCES = 5
SUMMARY_MAX_TOKENS = 200
SUMMARY_TRUNCATE_CHARS = 600
MIN_SENTENCE_CHARS = 10

_SENTENCE_SPLIT = re.compile(r"[.!?]+")


def message_text(message: Mapping[str, Any]) -> str:
    content = message.get("content", "")
    if content is None:
        return ""
    return content if isinstance(content, str) else json.dumps(content)


def message_tokens(messages: Sequence[Mapping[str, Any]]) -> int:
    return sum(estimate_tokens(message_text(m)) for m in messages)


def first_sentence(text: str) -> str:
    for sentence in _SENTENCE_SPLIT.split(text):
        if len(sentence.strip()) > MIN_SENTENCE_CHARS:
            return sentence.strip()
    return ""


def summarize_messages(messages: Sequence[Mapping[str, Any]]) -> str:
    key_points = [point for point in (first_sentence(message_text(m)) for m in messages) if point]
    if not key_points:
        return ""
    summary = ". ".join(key_points[:SUMMARY_MAX_SENTENCES]) + "."
    if estimate_tokens(summary) > SUMMARY_MAX_TOKENS:
        summary = summary[:SUMMARY_TRUNCATE_CHARS] + "..."
    return summary


@dataclass
class SessionPartition:
    system: List[Mapping[str, Any]]
    old: List[Mapping[str, Any]]
    recent: List[Mapping[str, Any]]


def partition(messages: Sequence[Mapping[str, Any]], max_recent: int) -> SessionPartition:
    """Split into system messages, old turns to summarize, and the verbatim recent window.

    Every system message is kept, including one that also sits in the recent window.
    """
    max_recent = max(1, max_recent)
    cut = max(0, len(messages) - max_recent)
    return SessionPartition(
        system=[m for m in messages if m.get("role") == Role.SYSTEM.value],
        old=[m for m in messages[:cut] if m.get("role") != Role.SYSTEM.value],
        recent=list(messages[cut:]),
    )


def build_summary_message(old: Sequence[Mapping[str, Any]]) -> Dict[str, str]:
    return {
        "role": Role.SYSTEM.value,
        "content": f"[Previous conversation summary ({len(old)} messages)]: {summarize_messages(old)}",
    }
