"""
Exchange client: wires settings, wallet registry, asset directory and
dispatcher into a sign-and-submit pipeline.
"""

from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple, Union

from core.config.settings import RetrySettings, Settings
from core.logging import bind_signer_context, get_logger
from core.signing.address import Address
from core.signing.keys import SigningKey
from core.signing.signer import SignedRequest, sign_action
from core.signing.wallets import WalletRegistry
from core.trading.assets import AssetDirectory
from core.utils.exceptions import create_error_context

from .dispatcher import Dispatcher, SubmitResult

logger = get_logger(__name__, component="exchange_client")

SignerRef = Union[None, int, str, Address]

# Stands for "use the configured default vault"; None signs without a vault
DEFAULT_VAULT: Any = object()


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff schedule for resending an identical signed payload."""

    max_retries: int = 3
    initial_backoff_ms: int = 500
    max_backoff_ms: int = 5000
    backoff_multiplier: float = 2.0

    @classmethod
    def from_settings(cls, retry: RetrySettings) -> "RetryPolicy":
        return cls(
            max_retries=retry.max_retries,
            initial_backoff_ms=retry.initial_backoff_ms,
            max_backoff_ms=retry.max_backoff_ms,
            backoff_multiplier=retry.backoff_multiplier,
        )

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait before retry number ``attempt`` (0-based)."""
        delay_ms = self.initial_backoff_ms * (self.backoff_multiplier ** attempt)
        return min(delay_ms, self.max_backoff_ms) / 1000.0


class ExchangeClient:
    def __init__(self, settings: Settings, wallets: WalletRegistry, directory: AssetDirectory,
                 dispatcher: Optional[Dispatcher] = None):
        self.settings = settings
        self.wallets = wallets
        self.directory = directory
        self.dispatcher = dispatcher or Dispatcher.from_settings(settings)
        self._nonce_lock = threading.Lock()
        self._last_nonce = 0

    def next_nonce(self) -> int:
        """Millisecond timestamp, strictly increasing for this client."""
        with self._nonce_lock:
            nonce = max(int(time.time() * 1000), self._last_nonce + 1)
            self._last_nonce = nonce
            return nonce

    def update_directory(self, directory: AssetDirectory) -> None:
        """Swap in a freshly loaded asset directory."""
        self.directory = directory

    def resolve_signer(self, signer: SignerRef = None) -> Tuple[Address, SigningKey]:
        if signer is None:
            key = self.wallets.single()
        elif isinstance(signer, int) and not isinstance(signer, bool):
            key = self.wallets.resolve_by_index(signer)
        else:
            key = self.wallets.resolve(signer)
        return self.wallets.primary_address_of(key), key

    def sign(self, action: Any, nonce: Optional[int] = None, signer: SignerRef = None,
             vault_address: Optional[Union[str, Address]] = DEFAULT_VAULT,
             expires_after: Optional[int] = None) -> SignedRequest:
        """Encode and sign ``action``; no network access."""
        primary, key = self.resolve_signer(signer)
        if nonce is None:
            nonce = self.next_nonce()
        if vault_address is DEFAULT_VAULT:
            vault_address = self.settings.signing.default_vault_address

        return sign_action(
            action,
            nonce,
            key,
            self.directory,
            vault_address=vault_address,
            expires_after=expires_after,
            is_mainnet=self.settings.exchange.is_mainnet,
            strict_addresses=self.settings.signing.strict_addresses,
            signer=primary,
        )

    async def submit(self, request: SignedRequest) -> SubmitResult:
        return await self.dispatcher.submit(request)

    async def execute(self, action: Any, nonce: Optional[int] = None, signer: SignerRef = None,
                      vault_address: Optional[Union[str, Address]] = DEFAULT_VAULT,
                      expires_after: Optional[int] = None) -> SubmitResult:
        """Sign then submit once. Local errors raise; dispatch errors are returned."""
        request = self.sign(
            action,
            nonce=nonce,
            signer=signer,
            vault_address=vault_address,
            expires_after=expires_after,
        )
        return await self.submit(request)

    async def submit_with_retry(
        self,
        request: SignedRequest,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> SubmitResult:
        """Resend the identical signed payload while the error is retryable.

        Never re-signs and never changes the nonce; permanent errors and
        successes return immediately.
        """
        policy = policy or RetryPolicy.from_settings(self.settings.retry)
        log = bind_signer_context(
            logger,
            request.signer.to_hex() if request.signer else "unknown",
            request.vault_address.to_hex() if request.vault_address else None,
        )

        attempt = 0
        while True:
            result = await self.submit(request)
            if result.ok or not result.retryable or attempt >= policy.max_retries:
                return result
            delay = policy.delay_for(attempt)
            # The policy delay replaces the generic estimate from the error context
            log.info(
                "Retrying identical signed payload",
                **create_error_context(
                    result.error,
                    "submit_with_retry",
                    {"attempt": attempt + 1, "next_retry_delay": delay, "nonce": request.nonce},
                ),
            )
            await sleep(delay)
            attempt += 1

    async def aclose(self) -> None:
        await self.dispatcher.aclose()

    async def __aenter__(self) -> "ExchangeClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
