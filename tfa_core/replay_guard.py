"""
ReplayGuard - blocks reuse of an already accepted code.

Accepted codes are never stored in clear: the record key is
"accepted_code_" + sha256(salt || code). Records are not expired here;
garbage collection belongs to the store.
"""
import hashlib
import logging
import time
from typing import Callable

from tfa_core.store import NAMESPACE, AccountId, SecretStore

logger = logging.getLogger(__name__)

ACCEPTED_CODE_PREFIX = "accepted_code_"


def normalize_code(code: str) -> str:
    """Strip all whitespace from a user-submitted code."""
    return "".join(str(code).split())


class ReplayGuard:
    def __init__(self, store: SecretStore, hash_salt: str, clock: Callable[[], float] = time.time):
        if not hash_salt:
            logger.warning("Replay fingerprint salt is empty; set TFA_HASH_SALT")
        self.store = store
        self.hash_salt = hash_salt
        self.clock = clock

    def fingerprint(self, code: str) -> str:
        data = (self.hash_salt + normalize_code(code)).encode("utf-8")
        return hashlib.sha256(data).hexdigest()

    def _key(self, code: str) -> str:
        return ACCEPTED_CODE_PREFIX + self.fingerprint(code)

    def was_accepted(self, account: AccountId, code: str) -> bool:
        """True if this code was already accepted for account."""
        return self.store.get(NAMESPACE, self._key(code), account) is not None

    def record_accepted(self, account: AccountId, code: str) -> None:
        # Store the acceptance time so a later audit can tell when it was used
        self.store.set(NAMESPACE, {self._key(code): int(self.clock())}, account)
