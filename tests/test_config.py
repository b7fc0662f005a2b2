"""Tests for environment-driven configuration."""

import pytest

from sitter.config import BASE_CHAIN, DEFAULT_DIAMOND_ADDRESS, FALLBACK_RPC_URLS, load_config
from sitter.errors import ConfigError

KEY = "0x" + "1f" * 32
TARGET = "0x" + "ab" * 20


def _env(**overrides) -> dict:
    env = {
        "PRIVATE_KEY": KEY,
        "TARGET_ADDRESS": TARGET,
        "TELEGRAM_BOT_TOKEN": "123:abc",
        "TELEGRAM_CHAT_ID": "-100200",
    }
    env.update(overrides)
    return {k: v for k, v in env.items() if v is not None}


def test_minimal_env_uses_defaults():
    config = load_config(_env())

    assert config.target_address == TARGET
    assert config.diamond_address == DEFAULT_DIAMOND_ADDRESS
    assert config.pet_interval_hours == 12
    assert config.cooldown_seconds == 43_200
    assert config.health_check_seconds == 1800
    assert config.log_level == "INFO"
    assert config.rpc_urls[0] == BASE_CHAIN["rpc"]


def test_overrides():
    config = load_config(_env(
        PET_INTERVAL_HOURS="6",
        HEALTH_CHECK_INTERVAL_MINUTES="5",
        LOG_LEVEL="debug",
        DIAMOND_CONTRACT_ADDRESS="0x" + "cd" * 20,
    ))

    assert config.cooldown_seconds == 6 * 3600
    assert config.health_check_seconds == 300
    assert config.log_level == "DEBUG"
    assert config.diamond_address == "0x" + "cd" * 20


def test_custom_rpc_goes_first_without_duplicates():
    custom = FALLBACK_RPC_URLS[1]
    config = load_config(_env(BASE_RPC_URL=custom))

    assert config.rpc_urls[0] == custom
    assert config.rpc_urls.count(custom) == 1
    assert set(FALLBACK_RPC_URLS) <= set(config.rpc_urls)


@pytest.mark.parametrize("name", ["PRIVATE_KEY", "TARGET_ADDRESS", "TELEGRAM_BOT_TOKEN", "TELEGRAM_CHAT_ID"])
def test_missing_required(name):
    with pytest.raises(ConfigError, match=f"Missing required environment variable: {name}"):
        load_config(_env(**{name: None}))


def test_non_numeric_interval():
    with pytest.raises(ConfigError, match="PET_INTERVAL_HOURS"):
        load_config(_env(PET_INTERVAL_HOURS="twelve"))


def test_zero_interval_rejected():
    with pytest.raises(ConfigError, match="positive"):
        load_config(_env(PET_INTERVAL_HOURS="0"))


@pytest.mark.parametrize("key", ["1f" * 32, "0x1234", "0x" + "zz" * 32])
def test_bad_private_key(key):
    with pytest.raises(ConfigError, match="private key"):
        load_config(_env(PRIVATE_KEY=key))


def test_bad_target_address():
    with pytest.raises(ConfigError, match="target address"):
        load_config(_env(TARGET_ADDRESS="0xabc"))


def test_repr_hides_secrets():
    config = load_config(_env())
    text = repr(config)
    assert KEY not in text
    assert "123:abc" not in text
    assert TARGET in text
