import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import dotenv_values


def _load_env_from_files():
    """
    Load variables from:
    - <repo>/.env
    - the current working directory's .env
    Values stay in memory; os.environ is never written.
    """
    here = Path(__file__).parent
    candidates = [here / ".env", Path.cwd() / ".env"]
    env = {}
    for p in candidates:
        if p.exists():
            env.update(dotenv_values(p))
    return env


def _get(env: dict, name: str, default: str) -> str:
    value = os.environ.get(name)
    if value is None:
        value = env.get(name)
    if value is None or not str(value).strip():
        return default
    return str(value).strip()


def _get_int(env: dict, name: str, default: int) -> int:
    raw = _get(env, name, str(default))
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"
    progress_interval: int = 10_000
    max_iterations: int = 5_000_000


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    env = _load_env_from_files()
    return Settings(
        log_level=_get(env, "BLACKJACK_LOG_LEVEL", "INFO").upper(),
        progress_interval=max(1, _get_int(env, "BLACKJACK_PROGRESS_INTERVAL", 10_000)),
        max_iterations=max(0, _get_int(env, "BLACKJACK_MAX_ITERATIONS", 5_000_000)),
    )
