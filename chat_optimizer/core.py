import asyncio
import json
import logging
from typing import Any, List, Mapping, Optional, Sequence

from .cache import ContentStore, StoredContent
from .config import OptimizerConfig
from .extractor import ContentExtractor
from .shrinker import compact_text
from .summarizer import (
    DEFAULT_MAX_RECENT,
    build_summary_message,
    message_tokens,
    partition,
)
from .templates import PromptTemplate, TemplateMatcher
from .tokenizer import estimate_tokens
from .types import OptimizationResult, OptimizerStats, Strategy

log = logging.getLogger("gateway.optimizer")


class ChatOptimizer:
    """Cuts token usage before a request reaches a paid provider.

    One instance owns the content store and the template table. The HTTP layer
    constructs it, hands it to request handlers and runs ``run_sweeper`` for
    the periodic expiry pass.
    """

    def __init__(self, config: Optional[OptimizerConfig] = None, store: Optional[ContentStore] = None):
        self.config = config or OptimizerConfig()
        if store is None:
            store = ContentStore(
                max_total_bytes=self.config.max_cache_bytes,
                max_item_bytes=self.config.max_file_bytes,
            )
        self.store = store
        self.templates = TemplateMatcher()
        self.extractor = ContentExtractor(self.store)

    def optimize_prompt(self, prompt: Optional[str], template_id: Optional[str] = None) -> OptimizationResult:
        if not prompt or not prompt.strip():
            return OptimizationResult.passthrough(prompt or "")

        original_tokens = estimate_tokens(prompt)
        template = self.templates.get(template_id) if template_id else self.templates.detect(prompt)
        optimized = self.templates.apply(template, prompt)
        if estimate_tokens(optimized) >= original_tokens:
            optimized = prompt
        return OptimizationResult.build(original_tokens, optimized, f"template:{template.id}")

    def optimize_message(self, message: Optional[str]) -> OptimizationResult:
        if not message:
            return OptimizationResult.passthrough("")

        original_tokens = estimate_tokens(message)
        strategies: List[str] = []
        optimized = message

        code = self.extractor.extract_code_blocks(optimized)
        if code.fired:
            optimized = code.content
            strategies.append(Strategy.CODE_BLOCKS.value)

        data = self.extractor.extract_json_blocks(optimized)
        if data.fired:
            optimized = data.content
            strategies.append(Strategy.DATA_UPLOAD.value)

        optimized = compact_text(optimized)
        strategy = "+".join(strategies) or Strategy.BASIC_COMPRESSION.value
        return OptimizationResult.build(original_tokens, optimized, strategy)

    def optimize_session(
        self, messages: Sequence[Mapping[str, Any]], max_recent: int = DEFAULT_MAX_RECENT
    ) -> OptimizationResult:
        messages = list(messages or [])
        max_recent = max(1, max_recent)
        original_tokens = message_tokens(messages)
        unchanged = OptimizationResult.from_counts(
            original_tokens,
            original_tokens,
            Strategy.NO_OPTIMIZATION_NEEDED.value,
            json.dumps(messages),
        )
        if len(messages) <= max_recent:
            return unchanged

        parts = partition(messages, max_recent)
        summary = build_summary_message(parts.old)
        optimized = [*parts.system, summary, *parts.recent]
        optimized_tokens = message_tokens(optimized)
        if optimized_tokens >= original_tokens:
            log.debug(f"Summary of {len(parts.old)} messages is not smaller, keeping session as is")
            return unchanged
        return OptimizationResult.from_counts(
            original_tokens,
            optimized_tokens,
            f"context-summarization:{len(parts.old)}→1",
            json.dumps(optimized),
        )

    async def optimize_file_attachment(self, content: str, filename: str, mime_type: str) -> OptimizationResult:
        original_tokens = estimate_tokens(content)
        entry, reference = self.store.put(content, filename=filename, mime_type=mime_type)
        log.info(f"Stored {filename} as {entry.id} ({original_tokens} tokens)")
        # the entry stays retrievable even when inlining the body is cheaper
        if estimate_tokens(reference) >= original_tokens:
            reference = content
        return OptimizationResult.build(original_tokens, reference, Strategy.FILE_REFERENCE.value)

    def get_stored_content(self, content_id: str) -> Optional[str]:
        return self.store.get(content_id)

    def get_file_reference(self, content_id: str) -> Optional[StoredContent]:
        return self.store.get_entry(content_id)

    def add_template(self, template: PromptTemplate) -> None:
        self.templates.add(template)

    def list_templates(self) -> List[PromptTemplate]:
        return list(self.templates.templates.values())

    def get_stats(self) -> OptimizerStats:
        store_stats = self.store.stats()
        return OptimizerStats(templates_available=len(self.templates), **store_stats)

    def clear_expired(self, max_age_ms: Optional[int] = None) -> int:
        if max_age_ms is None:
            max_age_ms = self.config.max_age_ms
        return self.store.clear_expired(max_age_ms)

    async def run_sweeper(self) -> None:
        interval = self.config.sweep_interval_sec
        log.info(f"Cache sweeper running every {interval}s")
        try:
            while True:
                await asyncio.sleep(interval)
                self.clear_expired()
        except asyncio.CancelledError:
            log.info("Cache sweeper stopped")
            raise
