"""
Exchange gateway: signs actions with registered wallets and submits them.
"""

from .dispatcher import (
    Dispatcher,
    ExchangeResponse,
    SubmitResult,
    build_envelope,
    classify_response,
)
from .client import ExchangeClient, RetryPolicy

__all__ = [
    "Dispatcher",
    "ExchangeResponse",
    "SubmitResult",
    "build_envelope",
    "classify_response",
    "ExchangeClient",
    "RetryPolicy",
]
