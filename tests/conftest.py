"""
Test configuration and fixtures for the HOTP second factor.
"""
import pyotp
import pytest

from tfa_core.settings import TfaSettings
from tfa_core.validator import build_validator
from tfa_database import MemorySecretStore

# RFC 4226 Appendix D secret "12345678901234567890"
RFC_SEED = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"
RFC_CODES = ["755224", "287082", "359152", "969429", "338314",
             "254676", "287922", "162583", "399871", "520489"]

SEED = "JBSWY3DPEHPK3PXP"
ENCRYPTION_KEY = "unit-test-encryption-key-0123456789"
HASH_SALT = "unit-test-salt"


def code_at(seed: str, counter: int, digits: int = 6) -> str:
    """Independent HOTP oracle."""
    return pyotp.HOTP(seed, digits=digits).at(counter)


def make_settings(**overrides) -> TfaSettings:
    values = dict(
        encryption_key=ENCRYPTION_KEY,
        hash_salt=HASH_SALT,
        max_counter_skew=5,
    )
    values.update(overrides)
    return TfaSettings(_env_file=None, **values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def store():
    return MemorySecretStore()


@pytest.fixture
def validator(settings, store):
    return build_validator(settings, store)


@pytest.fixture
def enrolled(validator):
    """Validator with SEED stored for account 1 and no counter yet."""
    validator.store_seed(1, SEED)
    return validator
