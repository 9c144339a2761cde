from .cache import ContentStore, FileTooLargeError, StoredContent
from .config import OptimizerConfig
from .core import ChatOptimizer
from .templates import PromptTemplate
from .tokenizer import estimate_tokens
from .types import OptimizationResult, OptimizerStats, Role

__all__ = [
    "ChatOptimizer",
    "ContentStore",
    "FileTooLargeError",
    "OptimizationResult",
    "OptimizerConfig",
    "OptimizerStats",
    "PromptTemplate",
    "Role",
    "StoredContent",
    "estimate_tokens",
]
