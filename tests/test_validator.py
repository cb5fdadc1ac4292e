"""
Tests for the HOTP validation state machine.
"""
import threading

import pytest

from tests.conftest import ENCRYPTION_KEY, SEED, code_at, make_settings
from tfa_core.ciphers import AesGcmCipher
from tfa_core.exceptions import CipherUnavailableError, ConfigurationError, StoreError
from tfa_core.store import NAMESPACE
from tfa_core.validator import (
    ALREADY_USED_MESSAGE,
    COUNTER_KEY,
    INVALID_CODE_MESSAGE,
    NO_COUNTER,
    HotpValidator,
    Rejection,
    ValidationResult,
    build_validator,
    message_for,
)

WINDOW = 5


class TestValidationFlow:
    """Acceptance, resync and counter persistence."""

    def test_first_code_accepted(self, enrolled):
        result = enrolled.validate(1, code_at(SEED, 0))
        assert result == ValidationResult(accepted=True, counter=0)
        assert enrolled.get_hotp_counter(1) == 0

    def test_next_counter_accepted(self, enrolled, store):
        store.set(NAMESPACE, {COUNTER_KEY: 10}, 1)
        assert enrolled.validate(1, code_at(SEED, 11))
        assert enrolled.get_hotp_counter(1) == 11

    @pytest.mark.parametrize("k", range(1, WINDOW + 1))
    def test_resync_within_window(self, enrolled, store, k):
        store.set(NAMESPACE, {COUNTER_KEY: 20}, 1)
        result = enrolled.validate(1, code_at(SEED, 20 + k))
        assert result.accepted
        assert enrolled.get_hotp_counter(1) == 20 + k

    def test_beyond_window_rejected(self, enrolled, store):
        store.set(NAMESPACE, {COUNTER_KEY: 20}, 1)
        result = enrolled.validate(1, code_at(SEED, 20 + WINDOW + 1))
        assert result.reason is Rejection.CODE_MISMATCH
        assert enrolled.get_hotp_counter(1) == 20

    def test_current_counter_not_accepted_again(self, enrolled, store):
        store.set(NAMESPACE, {COUNTER_KEY: 4}, 1)
        assert enrolled.validate(1, code_at(SEED, 4)).reason is Rejection.CODE_MISMATCH

    def test_whitespace_in_code_is_ignored(self, enrolled):
        code = code_at(SEED, 0)
        assert enrolled.validate(1, f" {code[:3]} {code[3:]}\n")

    def test_garbage_code(self, enrolled):
        assert enrolled.validate(1, "abc-é").reason is Rejection.CODE_MISMATCH

    def test_mismatch_writes_nothing(self, enrolled, store):
        before = store.keys(NAMESPACE, 1)
        enrolled.validate(1, "000000" if code_at(SEED, 0) != "000000" else "111111")
        assert store.keys(NAMESPACE, 1) == before

    def test_scenario(self, enrolled):
        assert enrolled.get_hotp_counter(1) == NO_COUNTER

        assert enrolled.validate(1, code_at(SEED, 0)).accepted
        assert enrolled.get_hotp_counter(1) == 0

        assert enrolled.validate(1, code_at(SEED, 0)).reason is Rejection.ALREADY_USED

        assert enrolled.validate(1, code_at(SEED, 5)).accepted
        assert enrolled.get_hotp_counter(1) == 5

        assert enrolled.validate(1, code_at(SEED, 3)).reason is Rejection.CODE_MISMATCH
        assert enrolled.get_hotp_counter(1) == 5


class TestReplay:
    def test_same_code_twice(self, enrolled):
        code = code_at(SEED, 0)
        assert enrolled.validate(1, code).accepted

        second = enrolled.validate(1, code)

        assert second.reason is Rejection.ALREADY_USED
        assert enrolled.get_hotp_counter(1) == 0

    def test_replay_checked_before_seed(self, enrolled):
        code = code_at(SEED, 0)
        enrolled.validate(1, code)
        enrolled.delete_seed(1)
        assert enrolled.validate(1, code).reason is Rejection.ALREADY_USED

    def test_concurrent_submissions_accept_once(self, enrolled):
        code = code_at(SEED, 0)
        results = []
        barrier = threading.Barrier(8)

        def submit():
            barrier.wait()
            results.append(enrolled.validate(1, code))

        threads = [threading.Thread(target=submit) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sum(r.accepted for r in results) == 1
        assert {r.reason for r in results if not r.accepted} == {Rejection.ALREADY_USED}


    def test_lock_table_released_after_concurrent_calls(self, enrolled):
        barrier = threading.Barrier(4)

        def submit():
            barrier.wait()
            enrolled.validate(1, code_at(SEED, 0))

        threads = [threading.Thread(target=submit) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert enrolled._locks == {}

    def test_lock_table_does_not_grow_with_accounts(self, validator):
        for i in range(200):
            validator.validate(f"unknown-{i}", "123456")
        assert validator._locks == {}

    def test_lock_released_when_store_fails(self, enrolled, store, monkeypatch):
        def broken_get(*args, **kwargs):
            raise StoreError("down")

        monkeypatch.setattr(store, "get", broken_get)
        with pytest.raises(StoreError):
            enrolled.validate(1, "123456")
        assert enrolled._locks == {}


class TestRejections:
    def test_no_seed(self, validator):
        assert not validator.ready(1)
        for code in ("123456", "", code_at(SEED, 0)):
            assert validator.validate(1, code).reason is Rejection.NO_SEED_CONFIGURED

    def test_invalid_seed(self, validator):
        validator.store_seed(1, "not base32!")
        assert validator.ready(1)
        assert validator.validate(1, "123456").reason is Rejection.INVALID_SEED

    def test_rotated_key_means_no_seed(self, store):
        build_validator(make_settings(), store).store_seed(1, SEED)
        rotated = build_validator(make_settings(encryption_key="another-key"), store)

        assert not rotated.ready(1)
        assert rotated.validate(1, code_at(SEED, 0)).reason is Rejection.NO_SEED_CONFIGURED

    def test_missing_encryption_key_fails_closed(self, store):
        build_validator(make_settings(), store).store_seed(1, SEED)
        keyless = build_validator(make_settings(encryption_key=""), store)

        with pytest.raises(ConfigurationError):
            keyless.store_seed(2, SEED)
        assert not keyless.ready(1)
        assert keyless.validate(1, code_at(SEED, 0)).reason is Rejection.NO_SEED_CONFIGURED
        assert keyless.get_hotp_counter(1) == NO_COUNTER

    def test_rejection_is_falsy(self, validator):
        assert not validator.validate(1, "123456")


class TestMessages:
    def test_accepted_has_no_messages(self):
        assert message_for(ValidationResult(accepted=True, counter=0)) == []

    def test_generic_message(self):
        assert message_for(ValidationResult.rejected(Rejection.CODE_MISMATCH)) == [INVALID_CODE_MESSAGE]

    def test_already_used_hint(self):
        assert message_for(ValidationResult.rejected(Rejection.ALREADY_USED)) == [
            INVALID_CODE_MESSAGE,
            ALREADY_USED_MESSAGE,
        ]


class TestExposedOperations:
    def test_ready_after_store(self, enrolled):
        assert enrolled.ready(1)

    def test_delete_seed(self, enrolled):
        enrolled.delete_seed(1)
        assert not enrolled.ready(1)

    def test_delete_seed_twice(self, enrolled):
        enrolled.delete_seed(1)
        enrolled.delete_seed(1)
        assert not enrolled.ready(1)

    def test_counter_zero_is_kept(self, enrolled, store):
        store.set(NAMESPACE, {COUNTER_KEY: 0}, 1)
        assert enrolled.get_hotp_counter(1) == 0

    def test_fallbacks(self, validator):
        assert validator.get_fallbacks() == ["tfa_recovery_code"]

    def test_custom_fallbacks_and_length(self, store):
        validator = build_validator(make_settings(fallbacks=[], code_length=8), store)
        validator.store_seed(1, SEED)
        assert validator.get_fallbacks() == []
        assert validator.validate(1, code_at(SEED, 0, digits=8)).accepted


class TestConstruction:
    def test_window_must_be_positive(self, store, validator):
        with pytest.raises(ValueError):
            HotpValidator(store, validator.seed_vault, validator.replay_guard, max_counter_skew=0)

    def test_settings_reject_zero_window(self):
        with pytest.raises(ValueError):
            make_settings(max_counter_skew=0)

    def test_uses_configured_cipher(self, store):
        validator = build_validator(make_settings(cipher_method="aes_ecb"), store)
        assert validator.seed_vault.cipher.method_id == "aes_ecb"
        assert validator.seed_vault.encryption_key == ENCRYPTION_KEY

    def test_unavailable_cipher_fails_fast(self, store, monkeypatch):
        monkeypatch.setattr(AesGcmCipher, "check_availability", lambda self: ["missing lib"])
        with pytest.raises(CipherUnavailableError):
            build_validator(make_settings(), store)
