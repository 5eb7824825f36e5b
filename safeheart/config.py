"""
SafeHeart Ledger configuration.

Settings come from the environment:
    SAFEHEART_DIFFICULTY   Proof of Work difficulty (default 2)
    SAFEHEART_CHAIN_FILE   Path of the persisted chain (default data/chain.json)
    SAFEHEART_LOG_LEVEL    Logging level name (default INFO)
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .blockchain.ledger import DEFAULT_DIFFICULTY


DEFAULT_CHAIN_FILE = Path("data") / "chain.json"
DEFAULT_LOG_LEVEL = "INFO"


@dataclass(frozen=True)
class LedgerConfig:
    difficulty: int = DEFAULT_DIFFICULTY
    chain_file: Path = DEFAULT_CHAIN_FILE
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'LedgerConfig':
        """
        Build a config from environment variables.

        Raises:
            ValueError: If SAFEHEART_DIFFICULTY is not a non-negative integer
        """
        env = os.environ if environ is None else environ

        raw_difficulty = env.get("SAFEHEART_DIFFICULTY", "").strip()
        difficulty = DEFAULT_DIFFICULTY
        if raw_difficulty:
            try:
                difficulty = int(raw_difficulty)
            except ValueError:
                raise ValueError(
                    f"SAFEHEART_DIFFICULTY must be an integer, got {raw_difficulty!r}"
                ) from None
            if difficulty < 0:
                raise ValueError("SAFEHEART_DIFFICULTY must not be negative")

        chain_file = env.get("SAFEHEART_CHAIN_FILE", "").strip()
        log_level = env.get("SAFEHEART_LOG_LEVEL", "").strip().upper()

        return cls(
            difficulty=difficulty,
            chain_file=Path(chain_file) if chain_file else DEFAULT_CHAIN_FILE,
            log_level=log_level or DEFAULT_LOG_LEVEL,
        )
