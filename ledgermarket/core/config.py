"""
Marketplace configuration parameters for ledgermarket.

Defines storage locations, logging and optional auction policies.
Values come from defaults, an optional .env file and LEDGERMARKET_*
environment variables (environment wins over the file).
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from dotenv import dotenv_values


ENV_PREFIX = "LEDGERMARKET_"

# Seconds per auction duration unit
SECONDS_PER_HOUR = 3600


@dataclass
class MarketConfig:
    """Marketplace-wide configuration parameters"""

    # Storage
    data_dir: Path = Path("data")
    db_name: str = "market.db"

    # Logging
    log_dir: Path = Path("logs")
    log_level: int = logging.INFO
    log_to_file: bool = False

    # Auction policy
    verify_asset_ownership: bool = False  # Check registry ownership at creation
    default_asset: str = "XLM"            # Settlement tag offered by the CLI

    # Asset registry
    registry_contract_id: str = "registry"

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name

    def ensure_dirs(self) -> None:
        """Create necessary directories"""
        self.data_dir.mkdir(exist_ok=True, parents=True)
        if self.log_to_file:
            self.log_dir.mkdir(exist_ok=True, parents=True)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_level(value: str) -> int:
    value = value.strip()
    if value.isdigit():
        return int(value)
    level = logging.getLevelName(value.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {value}")
    return level


_PARSERS = {
    "data_dir": Path,
    "db_name": str,
    "log_dir": Path,
    "log_level": _parse_level,
    "log_to_file": _parse_bool,
    "verify_asset_ownership": _parse_bool,
    "default_asset": str,
    "registry_contract_id": str,
}


def load_config(env_file: Optional[str] = None, **overrides) -> MarketConfig:
    """
    Load configuration from a .env file and the process environment.

    Args:
        env_file: Optional path to a .env file
        **overrides: Explicit field values (highest precedence)

    Returns:
        MarketConfig instance
    """
    raw: Dict[str, str] = {}
    if env_file:
        raw.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
    raw.update(os.environ)

    values = {}
    for key, value in raw.items():
        if not key.startswith(ENV_PREFIX):
            continue
        name = key[len(ENV_PREFIX):].lower()
        if name in _PARSERS:
            values[name] = _PARSERS[name](value)

    values.update(overrides)
    return MarketConfig(**values)
