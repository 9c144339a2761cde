import re
from typing import List

DEDUPE_MIN_CHARS = 20

_EXTRA_NEWLINES = re.compile(r"\n{3,}")
_EXTRA_SPACES = re.compile(r" {2,}")


def collapse_whitespace(content: str) -> str:
    content = _EXTRA_NEWLINES.sub("\n\n", content)
    content = _EXTRA_SPACES.sub(" ", content)
    return content.strip()


def dedupe_lines(content: str, min_chars: int = DEDUPE_MIN_CHARS) -> str:
    # short lines such as list bullets repeat legitimately
    seen = set()
    kept: List[str] = []
    for line in content.split("\n"):
        normalized = line.strip().lower()
        if len(normalized) < min_chars:
            kept.append(line)
            continue
        if normalized in seen:
            continue
        seen.add(normalized)
        kept.append(line)
    return "\n".join(kept)


def compact_text(content: str) -> str:
    return dedupe_lines(collapse_whitespace(content))
