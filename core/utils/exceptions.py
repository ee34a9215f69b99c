# Structured exception hierarchy for the HypeGate signing pipeline

from typing import Dict, Any, Optional
from datetime import datetime, timezone


class HypeGateException(Exception):
    """Base exception for all HypeGate specific errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None,
                 correlation_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.correlation_id = correlation_id
        self.timestamp = datetime.now(timezone.utc)


class TransientError(HypeGateException):
    """Base class for transient errors where resending the same signed payload is safe"""

    def __init__(self, message: str, retry_count: int = 0, max_retries: int = 5,
                 details: Optional[Dict[str, Any]] = None, correlation_id: Optional[str] = None):
        super().__init__(message, details, correlation_id)
        self.retry_count = retry_count
        self.max_retries = max_retries
        self.retryable = retry_count < max_retries


class PermanentError(HypeGateException):
    """Base class for permanent errors that must not be retried with the same payload"""
    pass


# Local input errors - raised before anything is signed or sent
class InvalidAddressError(PermanentError):
    """Malformed hex address"""

    def __init__(self, message: str, address: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.address = address


class InvalidKeyError(PermanentError):
    """Private key material is not a valid secp256k1 scalar"""
    pass


class WalletNotFoundError(PermanentError):
    """No signing key registered under the requested address"""

    def __init__(self, message: str, address: str, **kwargs):
        super().__init__(message, **kwargs)
        self.address = address


class WalletIndexError(PermanentError):
    """Wallet index outside the registered range"""

    def __init__(self, message: str, index: int, size: int, **kwargs):
        super().__init__(message, **kwargs)
        self.index = index
        self.size = size


class NoWalletsError(PermanentError):
    """Registry holds no signing keys"""
    pass


class UnknownAssetError(PermanentError):
    """Symbol missing from the asset directory - refresh the directory and retry"""

    def __init__(self, message: str, symbol: str, **kwargs):
        super().__init__(message, **kwargs)
        self.symbol = symbol


class InvalidActionError(PermanentError):
    """Inconsistent action - never signed, never sent"""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value


class SigningError(PermanentError):
    """Signing failed on key material that passed registration; a programming error"""
    pass


# Dispatcher errors - returned as values inside SubmitResult
class ApiError(HypeGateException):
    """Marker base for errors produced while submitting a signed request"""
    pass


class ClientHypeError(ApiError, PermanentError):
    """Exchange rejected the signed request (4xx or status=err) - bad signature, nonce, balance"""

    def __init__(self, message: str, status_code: int, body: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.body = body


class ServerHypeError(ApiError, TransientError):
    """Exchange-side failure (5xx) - same signed payload may be resent"""

    def __init__(self, message: str, status_code: int, body: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.body = body


class NetworkHypeError(ApiError, TransientError):
    """Transport failure (timeout, refused, DNS) - outcome unknown, same payload may be resent"""

    def __init__(self, message: str, cause: Optional[BaseException] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.cause = cause


class ProtocolHypeError(ApiError, PermanentError):
    """Response could not be interpreted as an exchange envelope"""

    def __init__(self, message: str, detail: Any = None, status_code: Optional[int] = None,
                 **kwargs):
        super().__init__(message, **kwargs)
        self.detail = detail
        self.status_code = status_code


def is_retryable_error(error: Exception) -> bool:
    """
    Determine if an error should be retried

    Returns:
        True if error is transient and retryable, False otherwise
    """
    if isinstance(error, TransientError):
        return error.retryable
    return False


def get_retry_delay(error: TransientError, base_delay: float = 1.0,
                    multiplier: float = 2.0, max_delay: Optional[float] = None) -> float:
    """
    Calculate exponential backoff delay for retrying transient errors

    Args:
        error: The transient error to retry
        base_delay: Base delay in seconds
        multiplier: Backoff growth factor
        max_delay: Upper bound in seconds

    Returns:
        Delay in seconds before retry
    """
    if not isinstance(error, TransientError):
        return 0.0

    delay = base_delay * (multiplier ** error.retry_count)
    if max_delay is not None:
        delay = min(delay, max_delay)
    return delay


def create_error_context(error: Exception, operation: str,
                        additional_context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Create structured error context for logging

    Args:
        error: The exception that occurred
        operation: The operation that failed
        additional_context: Additional context information

    Returns:
        Structured error context dictionary
    """
    context = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "operation": operation,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "retryable": is_retryable_error(error)
    }

    if isinstance(error, HypeGateException):
        if error.correlation_id:
            context["correlation_id"] = error.correlation_id
        if error.details:
            context["error_details"] = error.details

        if isinstance(error, TransientError):
            context["retry_count"] = error.retry_count
            context["max_retries"] = error.max_retries
            context["next_retry_delay"] = get_retry_delay(error)

        status_code = getattr(error, "status_code", None)
        if status_code is not None:
            context["status_code"] = status_code

        if isinstance(error, UnknownAssetError):
            context["symbol"] = error.symbol

    if additional_context:
        context.update(additional_context)

    return context
