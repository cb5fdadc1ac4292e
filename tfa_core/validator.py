"""
HotpValidator - decides whether a submitted code is a valid, unused HOTP
code for an account and advances the stored counter.

Each validate() call is one pass of:

    normalize -> replay check -> load seed -> load counter -> decode seed
    -> resync search -> persist counter + accepted code

Nothing is written unless the code is accepted.

Calls for the same account are serialized with an in-process lock. Hosts
running several worker processes against one store must serialize per
account themselves (advisory lock or compare-and-swap on the counter).
"""
import hmac
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum

from tfa_core.ciphers import get_cipher_suite, require_available
from tfa_core.otp_core import DEFAULT_DIGITS, decode_seed, hotp
from tfa_core.replay_guard import ReplayGuard, normalize_code
from tfa_core.seed_vault import SeedVault
from tfa_core.settings import TfaSettings
from tfa_core.store import NAMESPACE, AccountId, SecretStore

logger = logging.getLogger(__name__)

COUNTER_KEY = "hotp_counter"
NO_COUNTER = -1

INVALID_CODE_MESSAGE = "Invalid application code. Please try again."
ALREADY_USED_MESSAGE = (
    "Invalid code, it was recently used for a login. "
    "Please wait for the application to generate a new code."
)


class Rejection(str, Enum):
    ALREADY_USED = "already_used"
    NO_SEED_CONFIGURED = "no_seed_configured"
    INVALID_SEED = "invalid_seed"
    CODE_MISMATCH = "code_mismatch"


@dataclass(frozen=True)
class ValidationResult:
    accepted: bool
    reason: Rejection | None = None
    counter: int = NO_COUNTER

    def __bool__(self):
        return self.accepted

    @classmethod
    def rejected(cls, reason: Rejection, counter: int = NO_COUNTER) -> "ValidationResult":
        return cls(accepted=False, reason=reason, counter=counter)


def message_for(result: ValidationResult) -> list[str]:
    """User-facing error messages for a rejected result (empty if accepted)."""
    if result.accepted:
        return []
    messages = [INVALID_CODE_MESSAGE]
    if result.reason is Rejection.ALREADY_USED:
        messages.append(ALREADY_USED_MESSAGE)
    return messages


class HotpValidator:
    def __init__(
        self,
        store: SecretStore,
        seed_vault: SeedVault,
        replay_guard: ReplayGuard,
        max_counter_skew: int = 10,
        code_length: int = DEFAULT_DIGITS,
        fallbacks: list[str] | None = None,
    ):
        if max_counter_skew < 1:
            raise ValueError("max_counter_skew must be at least 1")
        self.store = store
        self.seed_vault = seed_vault
        self.replay_guard = replay_guard
        self.max_counter_skew = max_counter_skew
        self.code_length = code_length
        self.fallbacks = list(fallbacks or [])
        # account -> (lock, number of callers using it); entries go away with
        # their last caller
        self._locks: dict[AccountId, tuple[threading.Lock, int]] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _account_lock(self, account: AccountId):
        with self._locks_guard:
            lock, users = self._locks.get(account, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._locks[account] = (lock, users + 1)
        try:
            with lock:
                yield
        finally:
            with self._locks_guard:
                lock, users = self._locks[account]
                if users == 1:
                    del self._locks[account]
                else:
                    self._locks[account] = (lock, users - 1)

    # --- Exposed operations --------------------------------------------------
    def ready(self, account: AccountId) -> bool:
        """Whether the account has a usable seed (factor enrolled)."""
        return self.seed_vault.get_seed(account) is not None

    def store_seed(self, account: AccountId, seed: str) -> None:
        self.seed_vault.store_seed(account, seed)

    def delete_seed(self, account: AccountId) -> None:
        self.seed_vault.delete_seed(account)

    def get_fallbacks(self) -> list[str]:
        return list(self.fallbacks)

    def get_hotp_counter(self, account: AccountId) -> int:
        """Last accepted counter value, or -1 if no code was ever accepted."""
        value = self.store.get(NAMESPACE, COUNTER_KEY, account)
        if value is None:
            return NO_COUNTER
        return int(value)

    def validate(self, account: AccountId, raw_code: str) -> ValidationResult:
        with self._account_lock(account):
            result = self._validate(account, normalize_code(raw_code))
        if result.accepted:
            logger.info("HOTP code accepted for account %s at counter %d", account, result.counter)
        else:
            logger.warning("HOTP code rejected for account %s: %s", account, result.reason.value)
        return result

    # --- State machine -------------------------------------------------------
    def _validate(self, account: AccountId, code: str) -> ValidationResult:
        if self.replay_guard.was_accepted(account, code):
            return ValidationResult.rejected(Rejection.ALREADY_USED)

        seed = self.seed_vault.get_seed(account)
        if seed is None:
            return ValidationResult.rejected(Rejection.NO_SEED_CONFIGURED)

        counter = self.get_hotp_counter(account)

        try:
            key = decode_seed(seed)
        except ValueError:
            return ValidationResult.rejected(Rejection.INVALID_SEED, counter)

        matched = self._resync(key, counter, code)
        if matched is None:
            return ValidationResult.rejected(Rejection.CODE_MISMATCH, counter)

        # The resync search may have jumped ahead; store the matched value.
        self.store.set(NAMESPACE, {COUNTER_KEY: matched}, account)
        self.replay_guard.record_accepted(account, code)
        return ValidationResult(accepted=True, counter=matched)

    def _resync(self, key: bytes, counter: int, code: str) -> int | None:
        """First counter in (counter, counter + max_counter_skew] whose code matches."""
        submitted = code.encode("utf-8")
        start = max(counter + 1, 0)
        for candidate in range(start, counter + self.max_counter_skew + 1):
            expected = hotp(key, candidate, self.code_length).encode("ascii")
            if hmac.compare_digest(expected, submitted):
                return candidate
        return None


def build_validator(settings: TfaSettings, store: SecretStore) -> HotpValidator:
    """
    Wire a validator from settings.

    Raises:
        ConfigurationError: unknown cipher method
        CipherUnavailableError: the cipher's dependencies are missing
    """
    cipher = require_available(get_cipher_suite(settings.cipher_method.value))
    if not settings.encryption_key:
        logger.warning("Seed encryption key is empty; the factor stays disabled until TFA_ENCRYPTION_KEY is set")
    return HotpValidator(
        store=store,
        seed_vault=SeedVault(store, cipher, settings.encryption_key),
        replay_guard=ReplayGuard(store, settings.hash_salt),
        max_counter_skew=settings.max_counter_skew,
        code_length=settings.code_length,
        fallbacks=settings.fallbacks,
    )
