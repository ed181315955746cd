"""
authstate 配置模块
SQLite 连接调优参数，可通过环境变量覆盖
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from authstate.errors import ConfigError

_ENV_PREFIX = "AUTHSTATE_"

# =============================================================================
# 默认 PRAGMA 配置
# =============================================================================
DEFAULT_JOURNAL_MODE = "WAL"
DEFAULT_SYNCHRONOUS = "NORMAL"
DEFAULT_TEMP_STORE = "MEMORY"
DEFAULT_MMAP_SIZE = 268435456  # 256 MiB
DEFAULT_CACHE_SIZE = -64000  # negative = KiB, not pages

# Keywords SQLite accepts for each PRAGMA
JOURNAL_MODES = {"DELETE", "TRUNCATE", "PERSIST", "MEMORY", "WAL", "OFF"}
SYNCHRONOUS_LEVELS = {"OFF", "NORMAL", "FULL", "EXTRA", "0", "1", "2", "3"}
TEMP_STORES = {"DEFAULT", "FILE", "MEMORY", "0", "1", "2"}


def _get_env_var(name: str, default: str) -> str:
    value = os.getenv(_ENV_PREFIX + name)
    return value if value else default


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env_var(name, str(default))
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{_ENV_PREFIX}{name} must be an integer, got {raw!r}") from e


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env_var(name, "1" if default else "0")
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _keyword(name: str, value: str, allowed: set[str]) -> str:
    normalized = str(value).strip().upper()
    if normalized not in allowed:
        raise ConfigError(f"{name} must be one of {sorted(allowed)}, got {value!r}")
    return normalized


@dataclass
class AuthStateConfig:
    """SQLite tuning and engine options.

    Args:
        journal_mode: PRAGMA journal_mode applied to every connection.
        synchronous: PRAGMA synchronous level.
        temp_store: PRAGMA temp_store.
        mmap_size: Memory-mapped I/O region in bytes.
        cache_size: PRAGMA cache_size; negative values are KiB.
        pool_size: SQLAlchemy connection pool size.
        echo: Enable SQLAlchemy SQL logging.
    """

    journal_mode: str = DEFAULT_JOURNAL_MODE
    synchronous: str = DEFAULT_SYNCHRONOUS
    temp_store: str = DEFAULT_TEMP_STORE
    mmap_size: int = DEFAULT_MMAP_SIZE
    cache_size: int = DEFAULT_CACHE_SIZE
    pool_size: int = 5
    echo: bool = False

    def __post_init__(self):
        self.journal_mode = _keyword("journal_mode", self.journal_mode, JOURNAL_MODES)
        self.synchronous = _keyword("synchronous", self.synchronous, SYNCHRONOUS_LEVELS)
        self.temp_store = _keyword("temp_store", self.temp_store, TEMP_STORES)

    @classmethod
    def from_env(cls) -> "AuthStateConfig":
        """Build a config from AUTHSTATE_* environment variables (.env supported)."""
        load_dotenv()
        return cls(
            journal_mode=_get_env_var("JOURNAL_MODE", DEFAULT_JOURNAL_MODE),
            synchronous=_get_env_var("SYNCHRONOUS", DEFAULT_SYNCHRONOUS),
            temp_store=_get_env_var("TEMP_STORE", DEFAULT_TEMP_STORE),
            mmap_size=_get_env_int("MMAP_SIZE", DEFAULT_MMAP_SIZE),
            cache_size=_get_env_int("CACHE_SIZE", DEFAULT_CACHE_SIZE),
            pool_size=_get_env_int("POOL_SIZE", 5),
            echo=_get_env_bool("ECHO", False),
        )

    def pragmas(self) -> list[str]:
        """PRAGMA statements executed on each new connection, in order."""
        return [
            f"PRAGMA journal_mode = {self.journal_mode}",
            f"PRAGMA synchronous = {self.synchronous}",
            f"PRAGMA temp_store = {self.temp_store}",
            f"PRAGMA mmap_size = {int(self.mmap_size)}",
            f"PRAGMA cache_size = {int(self.cache_size)}",
        ]
