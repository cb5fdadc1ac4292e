"""
tfa_core package
================

HOTP second-factor validation (RFC 4226) with encrypted seed storage and
replay protection.

──────────────────────────────────────────────
Core algorithm
──────────────────────────────────────────────
- HOTP (HMAC-based One-Time Password):
  code = Truncate(HMAC-SHA1(key=seed, msg=counter)) mod 10^digits
  → The token's counter moves forward on every button press, so the server
    tries a bounded window of counters after the last accepted one
    (max_counter_skew) and jumps to the one that matched.

- Replay protection:
  Every accepted code is remembered as sha256(salt || code), so the same
  code cannot be used twice even while it is still inside the window.

- Seed at rest:
  The base32 seed is encrypted with a configurable CipherSuite
  (AES-GCM by default, AES-ECB for legacy data). A seed that does not
  decrypt is treated as "not enrolled".

──────────────────────────────────────────────
Notes for developers
──────────────────────────────────────────────

1. Backend Developers
   - Build one validator at startup and call validate() per login:
        from tfa_core import TfaSettings, build_validator
        from tfa_database import SqliteSecretStore
        settings = TfaSettings()
        validator = build_validator(settings, SqliteSecretStore(settings.database_file))
        result = validator.validate(user_id, submitted_code)
        if not result: show message_for(result)

2. Frontend Developers
   - Show the QR code for format_otpauth_uri(seed, account) at enrollment.
   - When the reason is "already_used", tell the user to wait for a new code.

3. Database Administrators
   - Only encrypted seeds, the last counter and code fingerprints are stored
     (namespace "tfa"). Rotating TFA_ENCRYPTION_KEY disables every enrolled
     seed until users enroll again.
"""
from tfa_core.ciphers import (
    AesEcbCipher,
    AesGcmCipher,
    CipherOptions,
    CipherSuite,
    get_cipher_suite,
    require_available,
)
from tfa_core.exceptions import CipherUnavailableError, ConfigurationError, StoreError, TfaError
from tfa_core.otp_core import decode_seed, format_otpauth_uri, generate_base32_secret, hotp
from tfa_core.replay_guard import ReplayGuard
from tfa_core.seed_vault import EncryptedSeedRecord, SeedVault
from tfa_core.settings import CipherMethod, TfaSettings, get_settings
from tfa_core.store import NAMESPACE, SecretStore
from tfa_core.validator import HotpValidator, Rejection, ValidationResult, build_validator, message_for

__all__ = [
    'AesEcbCipher',
    'AesGcmCipher',
    'CipherMethod',
    'CipherOptions',
    'CipherSuite',
    'CipherUnavailableError',
    'ConfigurationError',
    'EncryptedSeedRecord',
    'HotpValidator',
    'NAMESPACE',
    'Rejection',
    'ReplayGuard',
    'SecretStore',
    'SeedVault',
    'StoreError',
    'TfaError',
    'TfaSettings',
    'ValidationResult',
    'build_validator',
    'decode_seed',
    'format_otpauth_uri',
    'generate_base32_secret',
    'get_cipher_suite',
    'get_settings',
    'hotp',
    'message_for',
    'require_available',
]
