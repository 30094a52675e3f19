"""
Engine configuration.

Defaults live on EngineConfig. load_config() reads a .env file from the working directory (if present)
and then IRONWARS_* environment variables:

    IRONWARS_STARTING_GOLD=120
    IRONWARS_STARTING_RELIC_COUNT=2
    IRONWARS_CURSE_DIFFICULTY_THRESHOLD=2
    IRONWARS_GOLD_PER_REWARD_TIER=50
    IRONWARS_REWARD_CHOICES=3
    IRONWARS_SAVE_PATH=saves/ironwars_save.json
    IRONWARS_CONTENT_PATH=content/ironwars.json
    IRONWARS_LOG_LEVEL=INFO
"""

import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

from dotenv import find_dotenv, load_dotenv

ENV_PREFIX = "IRONWARS_"


@dataclass
class EngineConfig:
    """Tunable run constants."""
    starting_gold: int = 120
    starting_relic_count: int = 2
    curse_difficulty_threshold: int = 2
    gold_per_reward_tier: int = 50
    reward_choices: int = 3
    save_path: str = "saves/ironwars_save.json"
    content_path: Optional[str] = None
    log_level: str = "INFO"


def load_config(env: Optional[Mapping[str, str]] = None, dotenv: bool = True) -> EngineConfig:
    """
    Build an EngineConfig from the environment.

    Args:
        env: Mapping to read instead of os.environ (tests)
        dotenv: Load a .env file into os.environ first
    """
    if env is None:
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))
        env = os.environ

    config = EngineConfig()
    for f in fields(EngineConfig):
        raw = env.get(ENV_PREFIX + f.name.upper())
        if raw is None or raw == "":
            continue
        if f.type in (int, "int"):
            try:
                value = int(raw)
            except ValueError as e:
                raise ValueError(f"{ENV_PREFIX}{f.name.upper()} must be an integer, got {raw!r}") from e
        else:
            value = raw
        setattr(config, f.name, value)
    return config
