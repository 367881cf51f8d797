from datetime import datetime, timedelta, timezone

import pytest

from marketplace.services.otp import (
    REASON_EXHAUSTED,
    REASON_EXPIRED,
    REASON_MISMATCH,
    REASON_NOT_FOUND,
    OTPChallengeManager,
    generate_otp_code,
)


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def manager(db, clock):
    return OTPChallengeManager(db, ttl_seconds=50, max_attempts=3, clock=clock)


def _wrong(code):
    return "000000" if code != "000000" else "111111"


def test_code_is_six_digits():
    for _ in range(50):
        code = generate_otp_code()
        assert len(code) == 6 and code.isdigit()


def test_verify_within_ttl(manager, clock):
    code = manager.issue_challenge("acc_1")
    clock.advance(49)
    assert manager.verify_challenge("acc_1", code).ok


def test_expired_challenge(manager, clock):
    code = manager.issue_challenge("acc_1")
    clock.advance(50)
    result = manager.verify_challenge("acc_1", code)
    assert not result.ok
    assert result.reason == REASON_EXPIRED


def test_success_consumes_challenge(manager):
    code = manager.issue_challenge("acc_1")
    assert manager.verify_challenge("acc_1", code).ok
    replay = manager.verify_challenge("acc_1", code)
    assert not replay.ok
    assert replay.reason == REASON_EXPIRED


def test_new_challenge_supersedes_old(manager):
    old = manager.issue_challenge("acc_1")
    new = manager.issue_challenge("acc_1")
    if old != new:
        assert manager.verify_challenge("acc_1", old).reason == REASON_MISMATCH
    assert manager.verify_challenge("acc_1", new).ok


def test_no_challenge(manager):
    assert manager.verify_challenge("acc_missing", "123456").reason == REASON_NOT_FOUND


def test_challenges_are_per_account(manager):
    code = manager.issue_challenge("acc_1")
    manager.issue_challenge("acc_2")
    assert manager.verify_challenge("acc_1", code).ok


def test_attempt_cap_exhausts_challenge(manager):
    code = manager.issue_challenge("acc_1")
    first = manager.verify_challenge("acc_1", _wrong(code))
    assert first.reason == REASON_MISMATCH
    assert first.attempts_left == 2
    manager.verify_challenge("acc_1", _wrong(code))
    third = manager.verify_challenge("acc_1", _wrong(code))
    assert third.reason == REASON_EXHAUSTED
    # even the right code is refused now
    assert manager.verify_challenge("acc_1", code).reason == REASON_EXHAUSTED


def _two_managers(database, clock):
    first, second = database.session(), database.session()
    return (
        first,
        second,
        OTPChallengeManager(first, ttl_seconds=50, max_attempts=5, clock=clock),
        OTPChallengeManager(second, ttl_seconds=50, max_attempts=5, clock=clock),
    )


def test_concurrent_mismatches_are_all_counted(database, clock):
    first, second, a, b = _two_managers(database, clock)
    try:
        code = a.issue_challenge("acc_1")
        first.commit()
        # both requests have loaded the challenge before either one writes
        a.latest_challenge("acc_1")
        b.latest_challenge("acc_1")

        assert a.verify_challenge("acc_1", _wrong(code)).attempts_left == 4
        first.commit()
        assert b.verify_challenge("acc_1", _wrong(code)).attempts_left == 3
        second.commit()
    finally:
        first.close()
        second.close()

    check = database.session()
    try:
        manager = OTPChallengeManager(check, clock=clock)
        assert manager.latest_challenge("acc_1").failed_attempts == 2
    finally:
        check.close()


def test_concurrent_correct_codes_consume_once(database, clock):
    first, second, a, b = _two_managers(database, clock)
    try:
        code = a.issue_challenge("acc_1")
        first.commit()
        a.latest_challenge("acc_1")
        b.latest_challenge("acc_1")

        assert a.verify_challenge("acc_1", code).ok
        first.commit()
        late = b.verify_challenge("acc_1", code)
        second.commit()
        assert not late.ok
        assert late.reason == REASON_EXPIRED
    finally:
        first.close()
        second.close()
