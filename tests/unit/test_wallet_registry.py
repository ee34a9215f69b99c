import pickle

import pytest

from core.config.settings import Settings, WalletSettings
from core.signing.keys import SECP256K1_N, SigningKey
from core.signing.wallets import WalletRegistry
from core.utils.exceptions import (
    InvalidAddressError,
    InvalidKeyError,
    NoWalletsError,
    WalletIndexError,
    WalletNotFoundError,
)


def test_register_derives_primary_address(test_key, test_address):
    registry = WalletRegistry()
    primary = registry.register(test_key)
    assert primary.to_hex() == test_address
    assert registry.resolve(test_address.upper().replace("0X", "0x")).address.to_hex() == test_address
    assert test_address in registry
    assert len(registry) == 1


def test_register_accepts_unprefixed_and_raw_bytes(test_key, test_address):
    registry = WalletRegistry()
    registry.register(test_key[2:])
    assert registry.resolve(test_address).address.to_hex() == test_address

    other = WalletRegistry()
    other.register(bytes.fromhex(test_key[2:]))
    assert other.addresses()[0].to_hex() == test_address


def test_explicit_address_binds_api_wallet(one_key, one_address, test_address):
    registry = WalletRegistry()
    registry.register(one_key, test_address)

    key = registry.resolve(test_address)
    assert key.address.to_hex() == one_address
    assert one_address not in registry


def test_later_registration_wins(test_key, test_address, one_key, one_address):
    registry = WalletRegistry([test_key])
    original = registry.resolve(test_address)

    registry.register(one_key, test_address)

    assert len(registry) == 1
    assert registry.resolve(test_address).address.to_hex() == one_address
    assert original.is_wiped


@pytest.mark.parametrize("material", [
    "0x1234",
    "not-hex",
    "",
    "0x" + "00" * 32,
    hex(SECP256K1_N),
    "0x" + "11" * 33,
    b"\x01" * 31,
])
def test_invalid_key_material_leaves_registry_unchanged(test_key, material):
    registry = WalletRegistry([test_key])
    with pytest.raises(InvalidKeyError):
        registry.register(material)
    assert len(registry) == 1


def test_invalid_explicit_address_leaves_registry_unchanged(one_key):
    registry = WalletRegistry()
    with pytest.raises(InvalidAddressError):
        registry.register(one_key, "0x1234")
    assert len(registry) == 0


def test_resolve_unknown_and_malformed(registry, one_address):
    with pytest.raises(WalletNotFoundError) as exc_info:
        registry.resolve(one_address)
    assert exc_info.value.address == one_address

    with pytest.raises(InvalidAddressError):
        registry.resolve("0x1234")
    assert "0x1234" not in registry


def test_resolve_by_index_follows_insertion_order(test_key, test_address, one_key, one_address):
    registry = WalletRegistry([test_key, one_key])
    assert registry.resolve_by_index(0).address.to_hex() == test_address
    assert registry.resolve_by_index(1).address.to_hex() == one_address

    with pytest.raises(WalletIndexError) as exc_info:
        registry.resolve_by_index(2)
    assert exc_info.value.index == 2
    assert exc_info.value.size == 2

    with pytest.raises(WalletIndexError):
        registry.resolve_by_index(-1)


def test_single_returns_first_registered(test_key, test_address, one_key):
    with pytest.raises(NoWalletsError):
        WalletRegistry().single()

    registry = WalletRegistry([test_key, one_key])
    assert registry.single().address.to_hex() == test_address


def test_primary_address_of_reports_lookup_address(one_key, test_address):
    registry = WalletRegistry([(one_key, test_address)])
    key = registry.single()
    assert registry.primary_address_of(key).to_hex() == test_address

    with pytest.raises(WalletNotFoundError):
        registry.primary_address_of(SigningKey(one_key))


def test_close_wipes_keys(test_key):
    registry = WalletRegistry([test_key])
    key = registry.single()
    registry.close()
    assert key.is_wiped
    assert len(registry) == 0


def test_key_never_leaks_through_repr_or_pickle(test_key):
    key = SigningKey(test_key)
    assert test_key[2:] not in repr(key)
    assert test_key[2:] not in str(key)
    assert test_key[2:] not in repr(WalletRegistry([test_key]))
    with pytest.raises(TypeError):
        pickle.dumps(key)


def test_from_settings(test_key, one_key, test_address, one_address):
    settings = Settings(
        _env_file=None,
        wallets=[
            WalletSettings(private_key=test_key),
            WalletSettings(private_key=one_key, address="0x" + "cd" * 20),
        ],
    )
    registry = WalletRegistry.from_settings(settings)
    assert [a.to_hex() for a in registry.addresses()] == [test_address, "0x" + "cd" * 20]
    assert registry.resolve("0x" + "cd" * 20).address.to_hex() == one_address


def test_same_key_registered_twice_keeps_second(test_key, test_address):
    registry = WalletRegistry([test_key])
    first = registry.resolve(test_address)
    registry.register(test_key)

    second = registry.resolve(test_address)
    assert len(registry) == 1
    assert second is not first
    assert first.is_wiped
    assert not second.is_wiped
