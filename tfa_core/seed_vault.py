"""
SeedVault - encrypted storage of the per-account OTP seed.

Persisted layout (stable across implementations):

    namespace "tfa", key "seed" -> {"seed": <base64 ciphertext>, "created": <unix ts>}

The cipher runs with its default options (base64 text output) and the vault
base64-encodes that text once more, matching records written by legacy installs.

A seed that cannot be decrypted into meaningful text is reported as absent.
A wrong, rotated or missing key therefore disables the factor instead of
raising.
"""
import base64
import binascii
import logging
import time
from dataclasses import dataclass
from typing import Callable

from tfa_core.ciphers import CipherSuite
from tfa_core.exceptions import ConfigurationError
from tfa_core.store import NAMESPACE, AccountId, SecretStore

logger = logging.getLogger(__name__)

SEED_KEY = "seed"


@dataclass(frozen=True)
class EncryptedSeedRecord:
    ciphertext_b64: str
    created_at: int

    def to_dict(self) -> dict:
        return {"seed": self.ciphertext_b64, "created": self.created_at}

    @classmethod
    def from_dict(cls, data) -> "EncryptedSeedRecord | None":
        if not isinstance(data, dict) or not data.get("seed"):
            return None
        return cls(ciphertext_b64=str(data["seed"]), created_at=int(data.get("created") or 0))


def _meaningful(plain: bytes) -> str | None:
    """Return plain as text if it looks like a real seed, else None."""
    if not plain:
        return None
    try:
        text = plain.decode("ascii")
    except UnicodeDecodeError:
        return None
    if not text.isprintable():
        return None
    return text


class SeedVault:
    def __init__(
        self,
        store: SecretStore,
        cipher: CipherSuite,
        encryption_key: str | bytes,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.cipher = cipher
        self.encryption_key = encryption_key
        self.clock = clock

    def get_record(self, account: AccountId) -> EncryptedSeedRecord | None:
        return EncryptedSeedRecord.from_dict(self.store.get(NAMESPACE, SEED_KEY, account))

    def get_seed(self, account: AccountId) -> str | None:
        """
        Decrypt and return the account's base32 seed.

        Returns None when no encryption key is configured, when no record
        exists, or when the stored ciphertext does not decrypt to printable
        ASCII under the configured key.
        """
        if not self.encryption_key:
            return None

        record = self.get_record(account)
        if record is None:
            return None

        try:
            encrypted = base64.b64decode(record.ciphertext_b64)
        except (binascii.Error, ValueError):
            logger.warning("Stored seed for account %s is not valid base64", account)
            return None

        seed = _meaningful(self.cipher.decrypt(encrypted, self.encryption_key))
        if seed is None:
            logger.warning("Stored seed for account %s did not decrypt; treating as absent", account)
        return seed

    def store_seed(self, account: AccountId, seed: str) -> EncryptedSeedRecord:
        """
        Encrypt and persist seed, replacing any previous record.

        Raises:
            ConfigurationError: no encryption key is configured
        """
        if not self.encryption_key:
            raise ConfigurationError("Cannot store an OTP seed without an encryption key")
        encrypted = self.cipher.encrypt(seed, self.encryption_key).encode("ascii")
        record = EncryptedSeedRecord(
            ciphertext_b64=base64.b64encode(encrypted).decode("ascii"),
            created_at=int(self.clock()),
        )
        self.store.set(NAMESPACE, {SEED_KEY: record.to_dict()}, account)
        logger.info("Stored OTP seed for account %s (%s)", account, self.cipher.method_id)
        return record

    def delete_seed(self, account: AccountId) -> None:
        """Remove the seed record. Deleting a missing seed is a no-op."""
        self.store.delete(NAMESPACE, SEED_KEY, account)
        logger.info("Deleted OTP seed for account %s", account)
