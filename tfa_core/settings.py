"""
Engine configuration using pydantic-settings.

Security considerations:
- encryption_key and hash_salt MUST be set via environment in production
  (TFA_ENCRYPTION_KEY / TFA_HASH_SALT); the defaults are empty on purpose so
  a misconfigured install fails closed.
- Settings are passed explicitly to the components, never looked up
  globally from inside the engine.
"""
from enum import Enum
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tfa_core.otp_core import DEFAULT_DIGITS, MAX_DIGITS, MIN_DIGITS


class CipherMethod(str, Enum):
    AES_GCM = "aes_gcm"
    AES_ECB = "aes_ecb"


class TfaSettings(BaseSettings):
    """
    Strictly typed engine settings.

    Priority for loading:
    1. Constructor arguments
    2. Environment variables prefixed TFA_
    3. .env file
    4. Defaults
    """

    # Process-wide secrets
    encryption_key: str = ""
    hash_salt: str = ""

    cipher_method: CipherMethod = CipherMethod.AES_GCM

    # How many counter values ahead of the stored one are tried. This is a
    # counter distance, not a duration.
    max_counter_skew: int = Field(default=10, ge=1)

    code_length: int = Field(default=DEFAULT_DIGITS, ge=MIN_DIGITS, le=MAX_DIGITS)

    # Alternate factor identifiers offered when this one cannot be used
    fallbacks: List[str] = ["tfa_recovery_code"]

    database_file: str = "database/tfa_database.db"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="TFA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.strip().upper()


@lru_cache()
def get_settings() -> TfaSettings:
    """Cached settings instance for the app and the CLI."""
    return TfaSettings()
