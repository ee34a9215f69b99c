"""
Wallet registry: signing keys indexed by their primary account address.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Union

from core.config.settings import Settings
from core.logging import get_logger
from core.signing.address import Address, normalize_address
from core.signing.keys import SigningKey
from core.utils.exceptions import (
    InvalidAddressError,
    NoWalletsError,
    WalletIndexError,
    WalletNotFoundError,
)

logger = get_logger(__name__, component="wallets")

AddressLike = Union[str, bytes, Address]


class WalletRegistry:
    """Insertion-ordered mapping of primary address -> SigningKey.

    Populated during setup and read-only afterwards, so concurrent
    ``resolve`` / ``resolve_by_index`` / ``single`` calls need no locking.
    ``register`` is not safe against concurrent readers.
    """

    def __init__(self, keys: Optional[Iterable[Union[str, tuple]]] = None):
        self._wallets: Dict[Address, SigningKey] = {}
        for item in keys or ():
            if isinstance(item, tuple):
                self.register(*item)
            else:
                self.register(item)

    @classmethod
    def from_settings(cls, settings: Settings) -> "WalletRegistry":
        registry = cls()
        for wallet in settings.wallets:
            registry.register(wallet.private_key.get_secret_value(), wallet.address)
        return registry

    def register(self, secret_key_material: Union[str, bytes],
                 explicit_address: Optional[AddressLike] = None) -> Address:
        """Validate key material and add it under its primary address.

        When ``explicit_address`` is given it becomes the lookup address even
        if it differs from the derived one (API wallet signing on behalf of a
        primary account). A later registration under the same address
        replaces the earlier key.

        Raises:
            InvalidKeyError: key material rejected; the registry is unchanged
            InvalidAddressError: explicit address rejected; registry unchanged
        """
        key = SigningKey(secret_key_material)
        primary = (
            normalize_address(explicit_address, strict=True)
            if explicit_address is not None
            else key.address
        )

        previous = self._wallets.get(primary)
        if previous is not None:
            logger.warning(
                "Replacing signing key for address",
                address=primary.to_hex(),
            )
            previous.wipe()

        self._wallets[primary] = key
        logger.debug(
            "Registered signing key",
            address=primary.to_hex(),
            delegated=primary != key.address,
            wallet_count=len(self._wallets),
        )
        return primary

    def resolve(self, address: AddressLike) -> SigningKey:
        primary = normalize_address(address, strict=True)
        try:
            return self._wallets[primary]
        except KeyError:
            raise WalletNotFoundError(
                f"No wallet registered for address {primary.to_hex()}",
                address=primary.to_hex(),
            ) from None

    def resolve_by_index(self, index: int) -> SigningKey:
        size = len(self._wallets)
        if index < 0 or index >= size:
            raise WalletIndexError(
                f"Wallet index {index} out of range for {size} registered wallets",
                index=index,
                size=size,
            )
        return list(self._wallets.values())[index]

    def single(self) -> SigningKey:
        """Return the first registered key.

        With several wallets registered this is still the first one; callers
        that need a specific key must resolve by address or index.
        """
        if not self._wallets:
            raise NoWalletsError("No wallets registered")
        return next(iter(self._wallets.values()))

    def primary_address_of(self, key: SigningKey) -> Address:
        for address, candidate in self._wallets.items():
            if candidate is key:
                return address
        raise WalletNotFoundError("Signing key is not registered", address=key.address.to_hex())

    def addresses(self) -> List[Address]:
        return list(self._wallets)

    def close(self) -> None:
        """Wipe every held secret and empty the registry."""
        for key in self._wallets.values():
            key.wipe()
        self._wallets.clear()

    def __len__(self) -> int:
        return len(self._wallets)

    def __contains__(self, address: object) -> bool:
        if isinstance(address, (str, bytes, Address)):
            try:
                return normalize_address(address, strict=True) in self._wallets
            except InvalidAddressError:
                return False
        return False

    def __repr__(self) -> str:
        return f"WalletRegistry(addresses={[a.to_hex() for a in self._wallets]})"
