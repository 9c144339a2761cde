import os
from dataclasses import dataclass

from .cache import MB


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


@dataclass
class OptimizerConfig:
    max_cache_mb: int = 100
    max_file_mb: int = 10
    sweep_interval_sec: int = 3600
    max_age_sec: int = 3600

    @property
    def max_cache_bytes(self) -> int:
        return self.max_cache_mb * MB

    @property
    def max_file_bytes(self) -> int:
        return self.max_file_mb * MB

    @property
    def max_age_ms(self) -> int:
        return self.max_age_sec * 1000

    @classmethod
    def from_env(cls) -> "OptimizerConfig":
        return cls(
            max_cache_mb=_env_int("OPTIMIZER_MAX_CACHE_MB", cls.max_cache_mb),
            max_file_mb=_env_int("OPTIMIZER_MAX_FILE_MB", cls.max_file_mb),
            sweep_interval_sec=_env_int("OPTIMIZER_SWEEP_INTERVAL_SEC", cls.sweep_interval_sec),
            max_age_sec=_env_int("OPTIMIZER_MAX_AGE_SEC", cls.max_age_sec),
        )
