"""
Dispatcher: posts signed requests and classifies the outcome.

Errors come back as values inside SubmitResult so a caller-supplied policy
can decide on retries without parsing messages. Nothing here retries:
resending a nonce-bearing action is only safe when the caller knows the
previous attempt did not land.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from core.logging import get_logger
from core.signing.signer import SignedRequest
from core.utils.exceptions import (
    ApiError,
    ClientHypeError,
    NetworkHypeError,
    ProtocolHypeError,
    ServerHypeError,
    is_retryable_error,
)

logger = get_logger(__name__, component="dispatcher")


@dataclass(frozen=True)
class ExchangeResponse:
    """Successful ``status: ok`` envelope."""

    status_code: int
    status: str
    response: Any
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SubmitResult:
    response: Optional[ExchangeResponse] = None
    error: Optional[ApiError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def retryable(self) -> bool:
        """True when resending the identical signed payload is safe."""
        return self.error is not None and is_retryable_error(self.error)

    def unwrap(self) -> ExchangeResponse:
        if self.error is not None:
            raise self.error
        return self.response


def build_envelope(request: SignedRequest) -> Dict[str, Any]:
    envelope: Dict[str, Any] = {
        "action": request.wire_action,
        "nonce": request.nonce,
        "signature": request.signature.to_dict(),
        "vaultAddress": request.vault_address.to_hex() if request.vault_address else None,
    }
    if request.expires_after is not None:
        envelope["expiresAfter"] = request.expires_after
    return envelope


def classify_response(status_code: int, text: str) -> SubmitResult:
    """Map an HTTP status and body onto success or an ApiError."""
    if 400 <= status_code < 500:
        return SubmitResult(error=ClientHypeError(
            f"HTTP {status_code}: {text}", status_code=status_code, body=text,
        ))
    if 500 <= status_code < 600:
        return SubmitResult(error=ServerHypeError(
            f"HTTP {status_code}: {text}", status_code=status_code, body=text,
        ))
    if not 200 <= status_code < 300:
        return SubmitResult(error=ProtocolHypeError(
            f"Unexpected HTTP status {status_code}", detail=text, status_code=status_code,
        ))

    try:
        body = json.loads(text)
    except ValueError:
        return SubmitResult(error=ProtocolHypeError(
            "Response body is not JSON", detail=text, status_code=status_code,
        ))
    if not isinstance(body, dict) or "status" not in body:
        return SubmitResult(error=ProtocolHypeError(
            "Response is not an exchange envelope", detail=body, status_code=status_code,
        ))

    status = body.get("status")
    if status == "err":
        # Accepted by the transport, rejected by the exchange after signing
        return SubmitResult(error=ClientHypeError(
            f"Exchange rejected action: {body.get('response')}",
            status_code=status_code,
            body=body,
        ))
    if status != "ok":
        return SubmitResult(error=ProtocolHypeError(
            f"Unknown envelope status '{status}'", detail=body, status_code=status_code,
        ))
    return SubmitResult(response=ExchangeResponse(
        status_code=status_code,
        status=status,
        response=body.get("response"),
        raw=body,
    ))


class Dispatcher:
    """Posts signed envelopes over one pooled httpx.AsyncClient.

    Concurrent ``submit`` calls do not serialize on each other.
    """

    def __init__(self, base_url: str, timeout: float = 10.0, action_path: str = "/exchange",
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self.action_path = action_path
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @classmethod
    def from_settings(cls, settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "Dispatcher":
        return cls(
            base_url=settings.exchange.base_url,
            timeout=settings.exchange.timeout_seconds,
            action_path=settings.exchange.action_path,
            transport=transport,
        )

    async def submit(self, request: SignedRequest) -> SubmitResult:
        envelope = build_envelope(request)
        action_type = request.wire_action.get("type")
        try:
            response = await self._client.post(self.action_path, json=envelope)
        except httpx.TransportError as e:
            # Timeouts included: the action may or may not have landed
            logger.warning(
                "Network error submitting action",
                action_type=action_type,
                nonce=request.nonce,
                error=str(e),
                error_type=type(e).__name__,
            )
            return SubmitResult(error=NetworkHypeError(
                f"Network error for POST {self.action_path}: {e}", cause=e,
            ))

        result = classify_response(response.status_code, response.text)
        if result.ok:
            logger.info(
                "Action accepted",
                action_type=action_type,
                nonce=request.nonce,
                status_code=response.status_code,
            )
        else:
            logger.warning(
                "Action submission failed",
                action_type=action_type,
                nonce=request.nonce,
                status_code=response.status_code,
                error_type=type(result.error).__name__,
                retryable=result.retryable,
            )
        return result

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "Dispatcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
