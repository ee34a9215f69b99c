"""
Pytest configuration and shared fixtures for HypeGate tests.
"""
import pytest
from decimal import Decimal

from core.config.settings import ExchangeSettings, Settings, WalletSettings
from core.signing.keys import SigningKey
from core.signing.wallets import WalletRegistry
from core.trading.assets import AssetDirectory, AssetInfo
from core.trading.models import PlaceOrder

# Well-known secp256k1 test vectors; never funded
TEST_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
TEST_ADDRESS = "0x2c7536e3605d9c16a7a3d7b1898e529396a65c23"
ONE_KEY = "0x" + "00" * 31 + "01"
ONE_ADDRESS = "0x7e5f4552091a69125d5dfcb7b8c2659029395bdf"

VAULT_ADDRESS = "0x" + "ab" * 20


@pytest.fixture
def test_key():
    return TEST_KEY


@pytest.fixture
def test_address():
    return TEST_ADDRESS


@pytest.fixture
def one_key():
    return ONE_KEY


@pytest.fixture
def one_address():
    return ONE_ADDRESS


@pytest.fixture
def vault_address():
    return VAULT_ADDRESS


@pytest.fixture
def test_settings():
    """Testnet settings with a single registered wallet."""
    return Settings(
        _env_file=None,
        environment="testing",
        exchange=ExchangeSettings(is_mainnet=False, base_url="https://api.test"),
        wallets=[WalletSettings(private_key=TEST_KEY)],
    )


@pytest.fixture
def signing_key():
    return SigningKey(TEST_KEY)


@pytest.fixture
def registry():
    reg = WalletRegistry([TEST_KEY])
    yield reg
    reg.close()


@pytest.fixture
def directory():
    return AssetDirectory({
        "BTC": AssetInfo(index=0, decimals=5, price_decimals=1),
        "ETH": AssetInfo(index=1, decimals=4, price_decimals=2),
        "PURR/USDC": AssetInfo(index=10000, decimals=0, price_decimals=8),
        "USDC": AssetInfo(index=0, decimals=6),
    })


@pytest.fixture
def btc_order():
    return PlaceOrder(
        coin="BTC",
        is_buy=True,
        size=Decimal("0.01"),
        limit_price=Decimal("65000.5"),
    )
