"""Pull large fenced code blocks and JSON blobs out of a message into the content store."""

import logging
import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from .cache import ContentStore, FileTooLargeError
from .tokenizer import estimate_tokens

log = logging.getLogger("gateway.optimizer")

CODE_BLOCK_MIN_TOKENS = 500
JSON_BLOCK_MIN_CHARS = 500
JSON_BLOCK_MIN_TOKENS = 300

FENCE = "```"
OPENING_FENCE = re.compile(r"^```([\w+#.-]*)\s*$")


@dataclass
class ExtractionResult:
    content: str
    savings: int = 0
    extracted_ids: Optional[List[str]] = None

    @property
    def fired(self) -> bool:
        return self.savings > 0


@dataclass
class FencedBlock:
    start_line: int
    end_line: int
    language: str
    body: str


def find_fenced_blocks(lines: List[str]) -> Iterator[FencedBlock]:
    """Yield closed ``` blocks; an opening fence with no closing fence is ignored."""
    idx = 0
    while idx < len(lines):
        opening = OPENING_FENCE.match(lines[idx].strip())
        if not opening:
            idx += 1
            continue
        close = next((j for j in range(idx + 1, len(lines)) if lines[j].strip() == FENCE), None)
        if close is None:
            return
        yield FencedBlock(
            start_line=idx,
            end_line=close,
            language=opening.group(1) or "text",
            body="\n".join(lines[idx + 1:close]),
        )
        idx = close + 1


def find_brace_regions(text: str, min_chars: int = JSON_BLOCK_MIN_CHARS) -> Iterator[Tuple[int, int]]:
    """Yield (start, end) spans of balanced top-level {...} regions of at least min_chars.

    One left-to-right pass. An unmatched ``{`` never closes, so balanced regions
    nested inside it are still reported once the text ends.
    """
    opened: List[int] = []
    matched: List[Tuple[int, int]] = []
    in_string = False
    escaped = False
    for pos, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"' and opened:
            in_string = True
        elif ch == "{":
            opened.append(pos)
        elif ch == "}" and opened:
            matched.append((opened.pop(), pos + 1))

    # outer pairs sort before the pairs nested in them
    last_end = -1
    for start, end in sorted(matched):
        if start < last_end:
            continue
        last_end = end
        if end - start >= min_chars:
            yield start, end


class ContentExtractor:
    def __init__(self, store: ContentStore):
        self.store = store

    def extract_code_blocks(self, content: str) -> ExtractionResult:
        lines = content.split("\n")
        output: List[str] = []
        savings = 0
        extracted: List[str] = []
        cursor = 0
        for block in find_fenced_blocks(lines):
            block_tokens = estimate_tokens(block.body)
            if block_tokens <= CODE_BLOCK_MIN_TOKENS:
                continue
            content_id = self._store(block.body, f"{block.language} code block")
            if not content_id:
                continue
            marker = f"[Code: {block.language} ({block_tokens} tokens) - ID: {content_id}]"
            output.extend(lines[cursor:block.start_line])
            output.append(marker)
            cursor = block.end_line + 1
            savings += block_tokens - estimate_tokens(marker)
            extracted.append(content_id)
        if not extracted:
            return ExtractionResult(content=content)
        output.extend(lines[cursor:])
        return ExtractionResult(content="\n".join(output), savings=max(0, savings), extracted_ids=extracted)

    def extract_json_blocks(self, content: str) -> ExtractionResult:
        pieces: List[str] = []
        savings = 0
        extracted: List[str] = []
        cursor = 0
        for start, end in find_brace_regions(content):
            block = content[start:end]
            block_tokens = estimate_tokens(block)
            if block_tokens <= JSON_BLOCK_MIN_TOKENS:
                continue
            content_id = self._store(block, "JSON block")
            if not content_id:
                continue
            marker = f"[JSON Data ({block_tokens} tokens) - ID: {content_id}]"
            pieces.append(content[cursor:start])
            pieces.append(marker)
            cursor = end
            savings += block_tokens - estimate_tokens(marker)
            extracted.append(content_id)
        if not extracted:
            return ExtractionResult(content=content)
        pieces.append(content[cursor:])
        return ExtractionResult(content="".join(pieces), savings=max(0, savings), extracted_ids=extracted)

    def _store(self, block: str, label: str) -> Optional[str]:
        try:
            entry, _ = self.store.put(block)
        except FileTooLargeError as e:
            log.warning(f"Leaving {label} inline: {e}")
            return None
        log.debug(f"Extracted {label} ({estimate_tokens(block)} tokens) as {entry.id}")
        return entry.id
