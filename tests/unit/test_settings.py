import pytest
from pydantic import ValidationError

from core.config.settings import (
    MAINNET_API_URL,
    TESTNET_API_URL,
    ExchangeSettings,
    LoggingSettings,
    RetrySettings,
    Settings,
    WalletSettings,
)


def test_base_url_follows_network():
    assert ExchangeSettings().base_url == MAINNET_API_URL
    assert ExchangeSettings(is_mainnet=False).base_url == TESTNET_API_URL

    custom = ExchangeSettings(base_url="https://proxy.local/")
    assert custom.base_url == "https://proxy.local"
    assert custom.action_path == "/exchange"


def test_action_path_needs_leading_slash():
    with pytest.raises(ValidationError):
        ExchangeSettings(action_path="exchange")


def test_retry_bounds():
    assert RetrySettings().max_retries == 3
    with pytest.raises(ValidationError):
        RetrySettings(backoff_multiplier=1.0)
    with pytest.raises(ValidationError):
        RetrySettings(initial_backoff_ms=1000, max_backoff_ms=500)


def test_log_level_is_normalized():
    assert LoggingSettings(level="debug").level == "DEBUG"
    with pytest.raises(ValidationError):
        LoggingSettings(level="verbose")


def test_nested_environment_variables(monkeypatch, test_key):
    monkeypatch.setenv("EXCHANGE__IS_MAINNET", "false")
    monkeypatch.setenv("RETRY__MAX_RETRIES", "5")
    monkeypatch.setenv("SIGNING__STRICT_ADDRESSES", "false")
    monkeypatch.setenv("WALLETS", f'[{{"private_key": "{test_key}"}}]')

    settings = Settings(_env_file=None)

    assert settings.exchange.is_mainnet is False
    assert settings.exchange.base_url == TESTNET_API_URL
    assert settings.retry.max_retries == 5
    assert settings.signing.strict_addresses is False
    assert settings.wallets[0].private_key.get_secret_value() == test_key


def test_private_keys_are_masked(test_settings, test_key):
    assert test_key not in repr(test_settings)
    assert test_key not in str(test_settings.model_dump())


def test_logging_level_from_environment(monkeypatch):
    monkeypatch.setenv("LOGGING__LEVEL", "debug")
    settings = Settings(_env_file=None)
    assert settings.logging.level == "DEBUG"
    assert not hasattr(settings, "log_level")


def test_default_vault_address_is_validated_on_load():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, signing={"default_vault_address": "0x12"})

    settings = Settings(_env_file=None, signing={"default_vault_address": "0x" + "AB" * 20})
    assert settings.signing.default_vault_address == "0x" + "ab" * 20


@pytest.mark.parametrize("wallet", [
    {"private_key": "0x1234"},
    {"private_key": "not-a-key"},
    {"private_key": "0x" + "00" * 32},
])
def test_wallet_key_is_validated_on_load(wallet):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, wallets=[wallet])


def test_wallet_address_is_validated_on_load(test_key):
    with pytest.raises(ValidationError):
        WalletSettings(private_key=test_key, address="0x1234")

    wallet = WalletSettings(private_key=test_key, address="0x" + "CD" * 20)
    assert wallet.address == "0x" + "cd" * 20
    assert wallet.private_key.get_secret_value() == test_key


def test_key_validation_error_does_not_echo_key(test_key):
    bad_key = test_key[:-2]
    with pytest.raises(ValidationError) as exc_info:
        WalletSettings(private_key=bad_key)
    assert bad_key[2:] not in str(exc_info.value)
