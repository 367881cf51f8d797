"""OTP challenge manager: 6-digit codes bound to an account, single use, short-lived.

Issuing a challenge never touches older rows; verification always looks at the
newest challenge for the account, so a fresh issue supersedes everything before it.
Concurrent issues for the same account are last-writer-wins.
"""
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy.orm import Session

from marketplace.database import latest
from marketplace.models.otp import OTPChallenge
from marketplace.utils import as_utc, utcnow

log = logging.getLogger("uvicorn.error")

OTP_LENGTH = 6
DEFAULT_OTP_TTL_SECONDS = 50
DEFAULT_MAX_ATTEMPTS = 5

REASON_NOT_FOUND = "not_found"
REASON_EXPIRED = "expired"
REASON_MISMATCH = "mismatch"
REASON_EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class ChallengeResult:
    ok: bool
    reason: str | None = None
    attempts_left: int | None = None


def generate_otp_code() -> str:
    # secrets draws from the OS CSPRNG on every call; no shared seeded state
    return f"{secrets.randbelow(10 ** OTP_LENGTH):0{OTP_LENGTH}d}"


class OTPChallengeManager:
    """Never commits; the caller owns the transaction (mismatch counters need a commit too)."""

    def __init__(
        self,
        db: Session,
        ttl_seconds: int = DEFAULT_OTP_TTL_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.ttl = timedelta(seconds=ttl_seconds)
        self.max_attempts = max_attempts
        self.clock = clock

    def issue_challenge(self, account_uuid: str) -> str:
        code = generate_otp_code()
        challenge = OTPChallenge(
            account_uuid=account_uuid,
            code=code,
            expires_at=self.clock() + self.ttl,
            failed_attempts=0,
        )
        self.db.add(challenge)
        self.db.flush()
        log.info("OTP challenge %s issued for account_uuid=%s", challenge.id, account_uuid)
        return code

    def latest_challenge(self, account_uuid: str) -> OTPChallenge | None:
        return latest(self.db, OTPChallenge, account_uuid=account_uuid)

    def _open(self, challenge_id: int, now: datetime):
        """The challenge row, only while it is unexpired and under the attempt cap."""
        return self.db.query(OTPChallenge).filter(
            OTPChallenge.id == challenge_id,
            OTPChallenge.failed_attempts < self.max_attempts,
            OTPChallenge.expires_at > now,
        )

    def _closed_result(self, challenge: OTPChallenge) -> ChallengeResult:
        if challenge.failed_attempts >= self.max_attempts:
            return ChallengeResult(ok=False, reason=REASON_EXHAUSTED, attempts_left=0)
        return ChallengeResult(ok=False, reason=REASON_EXPIRED)

    def verify_challenge(self, account_uuid: str, submitted_code: str) -> ChallengeResult:
        """Counter and consumption are guarded UPDATEs, so concurrent submissions
        can neither lose a failed attempt nor consume the same code twice."""
        challenge = self.latest_challenge(account_uuid)
        if challenge is None:
            return ChallengeResult(ok=False, reason=REASON_NOT_FOUND)

        now = self.clock()
        if challenge.failed_attempts >= self.max_attempts or as_utc(challenge.expires_at) <= now:
            return self._closed_result(challenge)

        if challenge.code != (submitted_code or "").strip():
            counted = self._open(challenge.id, now).update(
                {OTPChallenge.failed_attempts: OTPChallenge.failed_attempts + 1}, synchronize_session=False
            )
            self.db.refresh(challenge)
            if counted != 1:
                return self._closed_result(challenge)
            left = self.max_attempts - challenge.failed_attempts
            if left <= 0:
                self.db.query(OTPChallenge).filter(OTPChallenge.id == challenge.id).update(
                    {OTPChallenge.expires_at: now}, synchronize_session=False
                )
                self.db.refresh(challenge)
                log.warning("OTP challenge %s exhausted for account_uuid=%s", challenge.id, account_uuid)
                return ChallengeResult(ok=False, reason=REASON_EXHAUSTED, attempts_left=0)
            return ChallengeResult(ok=False, reason=REASON_MISMATCH, attempts_left=left)

        # Consume: a matched code can never be replayed
        consumed = self._open(challenge.id, now).update({OTPChallenge.expires_at: now}, synchronize_session=False)
        self.db.refresh(challenge)
        if consumed != 1:
            return self._closed_result(challenge)
        return ChallengeResult(ok=True)
