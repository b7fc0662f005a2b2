"""
Pet Sitter configuration.

Two layers:
- TIMINGS: fixed loop constants (frozen dataclass, not environment-driven)
- SitterConfig: per-deployment settings read from the environment / .env

load_config() never calls sys.exit; it raises ConfigError and lets main.py
decide how to die.
"""

import os
import re
from dataclasses import dataclass, field
from typing import Final, Optional

from dotenv import load_dotenv

from .errors import ConfigError


# ============================================================
# CHAIN DEFAULTS
# ============================================================

BASE_CHAIN = {
    "chain_id": 8453,
    "name": "Base",
    "rpc": "https://mainnet.base.org",
    "explorer": "https://basescan.org",
    "native_symbol": "ETH",
}

# Tried in order after BASE_RPC_URL when the ledger picks an endpoint
FALLBACK_RPC_URLS: Final[tuple[str, ...]] = (
    "https://base.llamarpc.com",
    "https://base-mainnet.public.blastapi.io",
    "https://1rpc.io/base",
)

DEFAULT_DIAMOND_ADDRESS: Final[str] = "0xA99c4B08201F2913Db8D28e71d020c4298F29dBF"


# ============================================================
# LOOP TIMINGS
# ============================================================

@dataclass(frozen=True)
class SitterTimings:
    TICK_INTERVAL_SECONDS: Final[float] = 60.0          # scheduler check period
    INITIAL_TICK_DELAY_SECONDS: Final[float] = 1.0      # first check after start()
    SETTLE_DELAY_SECONDS: Final[float] = 2.0            # after primary tx, before verify
    CONTROL_DELAY_SECONDS: Final[float] = 10.0          # control tx after settle
    RECENCY_WINDOW_SECONDS: Final[float] = 3600.0       # verifier fallback window
    STATUS_REPORT_INTERVAL_SECONDS: Final[float] = 1800.0
    NEXT_PET_LOG_EVERY_MINUTES: Final[int] = 30
    RPC_TIMEOUT_SECONDS: Final[int] = 30
    RECEIPT_TIMEOUT_SECONDS: Final[int] = 120
    GAS_BUFFER: Final[float] = 1.2                      # estimate * 1.2


TIMINGS = SitterTimings()


# ============================================================
# ENVIRONMENT CONFIG
# ============================================================

_PRIVATE_KEY_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


@dataclass(frozen=True)
class SitterConfig:
    private_key: str = field(repr=False)
    target_address: str
    telegram_bot_token: str = field(repr=False)
    telegram_chat_id: str
    rpc_urls: tuple[str, ...] = (BASE_CHAIN["rpc"],) + FALLBACK_RPC_URLS
    diamond_address: str = DEFAULT_DIAMOND_ADDRESS
    pet_interval_hours: int = 12
    health_check_interval_minutes: int = 30
    log_level: str = "INFO"

    @property
    def cooldown_seconds(self) -> float:
        return self.pet_interval_hours * 3600.0

    @property
    def health_check_seconds(self) -> float:
        return self.health_check_interval_minutes * 60.0

    def validate(self) -> None:
        if not _PRIVATE_KEY_RE.match(self.private_key):
            raise ConfigError("Invalid private key format")
        if not _is_address(self.target_address):
            raise ConfigError("Invalid target address format")
        if not _is_address(self.diamond_address):
            raise ConfigError("Invalid diamond contract address format")
        if self.pet_interval_hours <= 0:
            raise ConfigError("Pet interval must be positive")
        if self.health_check_interval_minutes <= 0:
            raise ConfigError("Health check interval must be positive")


def _is_address(value: str) -> bool:
    return value.startswith("0x") and len(value) == 42


def _require_env(name: str, env: dict) -> str:
    value = env.get(name, "")
    if not value:
        raise ConfigError(f"Missing required environment variable: {name}")
    return value


def _env_int(name: str, default: int, env: dict) -> int:
    value = env.get(name, "")
    if not value:
        return default
    try:
        return int(value, 10)
    except ValueError:
        raise ConfigError(f"Invalid number for environment variable {name}: {value}")


def load_config(env: Optional[dict] = None, dotenv: bool = True) -> SitterConfig:
    """
    Build and validate a SitterConfig.

    Args:
        env: Mapping to read from (defaults to os.environ)
        dotenv: Load a .env file into os.environ first
    """
    if env is None:
        if dotenv:
            load_dotenv()
        env = dict(os.environ)

    primary_rpc = env.get("BASE_RPC_URL") or BASE_CHAIN["rpc"]
    rpc_urls = (primary_rpc,) + tuple(u for u in FALLBACK_RPC_URLS if u != primary_rpc)

    config = SitterConfig(
        private_key=_require_env("PRIVATE_KEY", env),
        target_address=_require_env("TARGET_ADDRESS", env),
        telegram_bot_token=_require_env("TELEGRAM_BOT_TOKEN", env),
        telegram_chat_id=_require_env("TELEGRAM_CHAT_ID", env),
        rpc_urls=rpc_urls,
        diamond_address=env.get("DIAMOND_CONTRACT_ADDRESS") or DEFAULT_DIAMOND_ADDRESS,
        pet_interval_hours=_env_int("PET_INTERVAL_HOURS", 12, env),
        health_check_interval_minutes=_env_int("HEALTH_CHECK_INTERVAL_MINUTES", 30, env),
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
    )
    config.validate()
    return config
