"""
ciphers.py - pluggable symmetric encryption for the OTP seed at rest.

Two methods form a closed set selected by configuration:

- "aes_gcm": AES-GCM with a random nonce (authenticated). Default.
- "aes_ecb": AES-ECB with NUL padding, bit-compatible with seeds written by
  the legacy mcrypt-based installs. No integrity protection.

Contract shared by every method:
- check_availability() never raises; it returns unmet dependencies.
- decrypt() never raises on garbled input; it returns whatever bytes come
  out (b"" when nothing sensible does). Interpreting the result is the
  caller's job (see SeedVault).
- Keys are truncated by byte length, not re-hashed.
"""

import abc
import base64
import binascii
import logging
import os
from dataclasses import dataclass
from typing import Mapping

from tfa_core.exceptions import CipherUnavailableError, ConfigurationError

logger = logging.getLogger(__name__)

AES_KEY_SIZES = (16, 24, 32)
AES_BLOCK_SIZE = 16
GCM_NONCE_SIZE = 12
GCM_TAG_SIZE = 16

# Characters PHP's trim() removes; legacy plaintexts were stripped of these.
_LEGACY_TRIM = b" \t\n\r\x00\x0b"


@dataclass(frozen=True)
class CipherOptions:
    """Per-call options. base64=False means raw bytes in and out."""
    base64: bool = True


def _coerce_options(options) -> CipherOptions:
    if options is None:
        return CipherOptions()
    if isinstance(options, CipherOptions):
        return options
    if isinstance(options, Mapping):
        # Only an explicit False disables the encoding.
        return CipherOptions(base64=options.get("base64", True) is not False)
    raise TypeError(f"Unsupported cipher options: {options!r}")


def _to_bytes(value: str | bytes) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def derive_key(key: str | bytes, max_length: int = 32) -> bytes:
    """
    Fit an arbitrary key to an AES key size.

    The key is truncated to max_length bytes, then NUL-padded up to the next
    valid AES key size (16, 24 or 32), which is what mcrypt did implicitly.
    """
    raw = _to_bytes(key)[:max_length]
    for size in AES_KEY_SIZES:
        if len(raw) <= size:
            return raw.ljust(size, b"\x00")
    return raw


class CipherSuite(abc.ABC):
    """Base class for seed encryption methods."""

    method_id: str = ""
    title: str = ""

    @abc.abstractmethod
    def check_availability(self) -> list[str]:
        """Return human-readable descriptions of unmet dependencies."""

    @abc.abstractmethod
    def _encrypt_bytes(self, data: bytes, key: bytes) -> bytes:
        ...

    @abc.abstractmethod
    def _decrypt_bytes(self, data: bytes, key: bytes) -> bytes:
        ...

    def encrypt(self, text: str | bytes, key: str | bytes, options=None) -> str | bytes:
        """
        Encrypt text with key.

        Returns base64 text unless options say base64=False, in which case
        the raw ciphertext bytes are returned.
        """
        opts = _coerce_options(options)
        processed = self._encrypt_bytes(_to_bytes(text), derive_key(key))
        if opts.base64:
            return base64.b64encode(processed).decode("ascii")
        return processed

    def decrypt(self, text: str | bytes, key: str | bytes, options=None) -> bytes:
        """
        Inverse of encrypt() under the same key and options.

        Never raises on garbled input. Undecodable base64 yields b"".
        """
        opts = _coerce_options(options)
        data = _to_bytes(text)
        if opts.base64:
            try:
                data = base64.b64decode(data)
            except (binascii.Error, ValueError):
                return b""
        return self._decrypt_bytes(data, derive_key(key))

    def __repr__(self):
        return f"<{type(self).__name__} {self.method_id}>"


def _cryptography_missing() -> list[str]:
    """Probe the cryptography package without importing it at module load."""
    try:
        from cryptography.hazmat.primitives.ciphers import Cipher  # noqa: F401
    except ImportError:
        return ["Python package 'cryptography' not installed."]
    return []


class AesEcbCipher(CipherSuite):
    """
    AES in ECB mode with NUL padding (legacy mcrypt layout).

    Decrypt trims NULs and whitespace from both ends, so only text without
    surrounding whitespace round-trips. Base32 seeds always do.
    """

    method_id = "aes_ecb"
    title = "AES ECB (legacy)"

    def check_availability(self) -> list[str]:
        return _cryptography_missing()

    def _cipher(self, key: bytes):
        from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
        return Cipher(algorithms.AES(key), modes.ECB())

    def _encrypt_bytes(self, data: bytes, key: bytes) -> bytes:
        padded = data + b"\x00" * (-len(data) % AES_BLOCK_SIZE)
        encryptor = self._cipher(key).encryptor()
        return encryptor.update(padded) + encryptor.finalize()

    def _decrypt_bytes(self, data: bytes, key: bytes) -> bytes:
        # mcrypt zero-filled partial blocks instead of failing
        padded = data + b"\x00" * (-len(data) % AES_BLOCK_SIZE)
        decryptor = self._cipher(key).decryptor()
        return (decryptor.update(padded) + decryptor.finalize()).strip(_LEGACY_TRIM)


class AesGcmCipher(CipherSuite):
    """AES-GCM; output is nonce || ciphertext || tag."""

    method_id = "aes_gcm"
    title = "AES GCM (authenticated)"

    def check_availability(self) -> list[str]:
        missing = _cryptography_missing()
        if missing:
            return missing
        try:
            from cryptography.hazmat.primitives.ciphers.aead import AESGCM  # noqa: F401
        except ImportError:
            return ["Installed 'cryptography' does not provide AESGCM."]
        return []

    def _encrypt_bytes(self, data: bytes, key: bytes) -> bytes:
        from cryptography.hazmat.primitives.ciphers.aead import AESGCM
        nonce = os.urandom(GCM_NONCE_SIZE)
        return nonce + AESGCM(key).encrypt(nonce, data, None)

    def _decrypt_bytes(self, data: bytes, key: bytes) -> bytes:
        from cryptography.exceptions import InvalidTag
        from cryptography.hazmat.primitives.ciphers.aead import AESGCM
        if len(data) < GCM_NONCE_SIZE + GCM_TAG_SIZE:
            return b""
        nonce, sealed = data[:GCM_NONCE_SIZE], data[GCM_NONCE_SIZE:]
        try:
            return AESGCM(key).decrypt(nonce, sealed, None)
        except InvalidTag:
            return b""


CIPHER_SUITES: dict[str, type[CipherSuite]] = {
    AesGcmCipher.method_id: AesGcmCipher,
    AesEcbCipher.method_id: AesEcbCipher,
}


def get_cipher_suite(method_id: str) -> CipherSuite:
    """Instantiate the cipher registered under method_id."""
    try:
        return CIPHER_SUITES[method_id]()
    except KeyError:
        raise ConfigurationError(
            f"Unknown cipher method '{method_id}'. Choose one of: {', '.join(CIPHER_SUITES)}"
        ) from None


def require_available(cipher: CipherSuite) -> CipherSuite:
    """Raise CipherUnavailableError if the cipher cannot run here."""
    missing = cipher.check_availability()
    if missing:
        logger.error("Cipher %s unavailable: %s", cipher.method_id, "; ".join(missing))
        raise CipherUnavailableError(cipher.method_id, missing)
    return cipher
