from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from .tokenizer import estimate_tokens, savings_percent


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class Strategy(str, Enum):
    NONE = "none"
    BASIC_COMPRESSION = "basic-compression"
    CODE_BLOCKS = "code-blocks"
    DATA_UPLOAD = "data-upload"
    FILE_REFERENCE = "file-reference"
    NO_OPTIMIZATION_NEEDED = "no-optimization-needed"


@dataclass
class OptimizationResult:
    original_tokens: int
    optimized_tokens: int
    savings: int
    savings_percent: float
    strategy: str
    optimized_content: str

    @classmethod
    def build(cls, original_tokens: int, optimized_content: str, strategy: str) -> "OptimizationResult":
        optimized_tokens = estimate_tokens(optimized_content)
        return cls.from_counts(original_tokens, optimized_tokens, strategy, optimized_content)

    @classmethod
    def from_counts(
        cls, original_tokens: int, optimized_tokens: int, strategy: str, optimized_content: str
    ) -> "OptimizationResult":
        return cls(
            original_tokens=original_tokens,
            optimized_tokens=optimized_tokens,
            savings=original_tokens - optimized_tokens,
            savings_percent=savings_percent(original_tokens, optimized_tokens),
            strategy=strategy,
            optimized_content=optimized_content,
        )

    @classmethod
    def passthrough(cls, content: str, strategy: str = Strategy.NONE.value) -> "OptimizationResult":
        tokens = estimate_tokens(content)
        return cls.from_counts(tokens, tokens, strategy, content)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "originalTokens": self.original_tokens,
            "optimizedTokens": self.optimized_tokens,
            "savings": self.savings,
            "savingsPercent": self.savings_percent,
            "strategy": self.strategy,
            "optimizedContent": self.optimized_content,
        }


@dataclass
class OptimizerStats:
    templates_available: int
    files_referenced: int
    cache_size: int
    total_bytes_cached: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "templatesAvailable": self.templates_available,
            "filesReferenced": self.files_referenced,
            "cacheSize": self.cache_size,
            "totalBytesCached": self.total_bytes_cached,
        }
