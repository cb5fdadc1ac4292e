"""
Exception hierarchy for the 2FA engine.

Validation rejections are NOT exceptions (see validator.Rejection). Only
configuration problems and storage failures are raised.
"""


class TfaError(Exception):
    """Base class for every error raised by the engine."""


class ConfigurationError(TfaError):
    """Settings are invalid or reference an unknown cipher method."""


class CipherUnavailableError(ConfigurationError):
    """The configured cipher has unmet dependencies."""

    def __init__(self, method_id: str, missing: list[str]):
        self.method_id = method_id
        self.missing = list(missing)
        super().__init__(f"Cipher '{method_id}' unavailable: {'; '.join(self.missing)}")


class StoreError(TfaError):
    """The backing secret store failed to read or write."""
