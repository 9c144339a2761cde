import math
from typing import Optional

CHARS_PER_TOKEN = 4


def estimate_tokens(text: Optional[str]) -> int:
    """Estimate the number of tokens in a text string (~4 chars per token)."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def savings_percent(original_tokens: int, optimized_tokens: int) -> float:
    if original_tokens <= 0:
        return 0.0
    return round((original_tokens - optimized_tokens) / original_tokens * 100, 2)


def format_bytes(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"
