# Complete settings for the signing and submission pipeline
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator
from enum import Enum
from typing import List, Optional

from core.signing.address import normalize_address
from core.signing.keys import parse_key_material
from core.utils.exceptions import InvalidAddressError, InvalidKeyError


MAINNET_API_URL = "https://api.hyperliquid.xyz"
TESTNET_API_URL = "https://api.hyperliquid-testnet.xyz"


def _strict_address(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    try:
        return normalize_address(v, strict=True).to_hex()
    except InvalidAddressError as e:
        raise ValueError(e.message) from None


class Environment(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class ExchangeSettings(BaseModel):
    """Exchange endpoint configuration"""
    is_mainnet: bool = True
    # Derived from is_mainnet when left empty
    base_url: str = ""
    action_path: str = "/exchange"
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Transport timeout for a single submission round trip"
    )

    @model_validator(mode="after")
    def fill_base_url(self) -> "ExchangeSettings":
        if not self.base_url:
            self.base_url = MAINNET_API_URL if self.is_mainnet else TESTNET_API_URL
        self.base_url = self.base_url.rstrip("/")
        return self

    @field_validator("action_path")
    @classmethod
    def validate_action_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("action_path must start with '/'")
        return v


class SigningSettings(BaseModel):
    # Address mode the exchange client passes on every call
    strict_addresses: bool = True
    default_vault_address: Optional[str] = None

    @field_validator("default_vault_address")
    @classmethod
    def validate_default_vault_address(cls, v: Optional[str]) -> Optional[str]:
        return _strict_address(v)


class WalletSettings(BaseModel):
    """One signing key, optionally bound to a different primary account"""
    model_config = ConfigDict(hide_input_in_errors=True)

    private_key: SecretStr
    # Primary account for API-wallet keys signing on behalf of another address
    address: Optional[str] = None

    @field_validator("private_key")
    @classmethod
    def validate_private_key(cls, v: SecretStr) -> SecretStr:
        try:
            material = parse_key_material(v.get_secret_value())
        except InvalidKeyError as e:
            raise ValueError(e.message) from None
        material[:] = bytes(len(material))
        return v

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: Optional[str]) -> Optional[str]:
        return _strict_address(v)


class RetrySettings(BaseModel):
    """Caller-side retry policy for identical signed payloads"""
    max_retries: int = Field(default=3, ge=0)
    initial_backoff_ms: int = Field(default=500, ge=0)
    max_backoff_ms: int = Field(default=5000, ge=0)
    backoff_multiplier: float = 2.0

    @field_validator("backoff_multiplier")
    @classmethod
    def validate_multiplier(cls, v: float) -> float:
        if v <= 1.0:
            raise ValueError("backoff_multiplier must be greater than 1.0")
        return v

    @model_validator(mode="after")
    def validate_bounds(self) -> "RetrySettings":
        if self.max_backoff_ms < self.initial_backoff_ms:
            raise ValueError("max_backoff_ms must be >= initial_backoff_ms")
        return self


class LoggingSettings(BaseModel):
    level: str = "INFO"
    json_format: bool = True
    # Redaction
    redact_keys: list[str] = [
        "private_key", "secret", "secret_key", "api_secret", "api-secret",
        "password", "token", "authorization", "mnemonic"
    ]

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Unsupported log level: {v}")
        return v.upper()


class Settings(BaseSettings):
    """Main application settings, loaded from environment variables"""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore"
    )

    app_name: str = "HypeGate"
    version: str = "0.3.0"
    environment: Environment = Environment.DEVELOPMENT

    exchange: ExchangeSettings = ExchangeSettings()
    signing: SigningSettings = SigningSettings()
    wallets: List[WalletSettings] = Field(
        default_factory=list,
        description="Signing keys, registered in order"
    )
    retry: RetrySettings = RetrySettings()
    logging: LoggingSettings = LoggingSettings()


# No global settings instance - use dependency injection instead
