# Structured logging for the signing pipeline
import sys
import logging
import structlog
from typing import Optional, Dict, Any, Iterable

from core.config.settings import Settings

# Global flag to prevent duplicate logging configuration
_logging_configured = False

REDACTED = "[REDACTED]"

DEFAULT_REDACT_KEYS = (
    "private_key", "secret", "secret_key", "api_secret", "api-secret",
    "password", "token", "authorization", "mnemonic",
)


def make_redactor(keys: Optional[Iterable[str]] = None):
    """Build a structlog processor that masks sensitive fields recursively."""
    keys_to_redact = {k.lower() for k in (keys or DEFAULT_REDACT_KEYS)}

    def _redact(obj):
        if isinstance(obj, dict):
            out = {}
            for k, v in obj.items():
                if isinstance(k, str) and k.lower() in keys_to_redact:
                    out[k] = REDACTED
                else:
                    out[k] = _redact(v)
            return out
        if isinstance(obj, (list, tuple)):
            return [_redact(v) for v in obj]
        return obj

    def redact_sensitive(logger, name, event_dict):
        """Redact sensitive fields from event dict recursively."""
        return _redact(event_dict)

    return redact_sensitive


def _standard_context(settings: Settings):
    def add_standard_context(logger, name, event_dict):
        """Bind standard context fields once from settings."""
        event_dict.setdefault("env", settings.environment.value)
        event_dict.setdefault("service", settings.app_name)
        event_dict.setdefault("version", settings.version)
        return event_dict

    return add_standard_context


def configure_logging(settings: Settings, force: bool = False) -> None:
    """Configure stdlib logging and structlog from settings."""
    global _logging_configured

    # Prevent duplicate configuration
    if _logging_configured and not force:
        return

    level = settings.logging.level

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level.upper(),
        force=force,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.logging.json_format
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            _standard_context(settings),
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            make_redactor(settings.logging.redact_keys),
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    _logging_configured = True


def get_logger(name: str, component: Optional[str] = None) -> structlog.BoundLogger:
    """Get a structured logger instance.

    Stays lazy until first use so module-level loggers pick up
    configure_logging() even when created at import time.
    """
    if component:
        return structlog.get_logger(name, component=component)
    return structlog.get_logger(name)


def bind_signer_context(logger: structlog.BoundLogger, signer: str,
                        vault_address: Optional[str] = None) -> structlog.BoundLogger:
    """Bind signer context consistently to a logger.

    Only public addresses are bound; key material never enters log context.
    """
    ctx: Dict[str, Any] = {"signer": signer}
    if vault_address:
        ctx["vault_address"] = vault_address
    return logger.bind(**ctx)


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_signer_context",
    "make_redactor",
    "REDACTED",
    "DEFAULT_REDACT_KEYS",
]
