from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from folio_auth.domain.entities import Credential


@dataclass(frozen=True)
class LockoutPolicy:
    """
    Consecutive failed-login tracking on a Credential.

    The policy only mutates the credential; persisting it is the caller's job.
    Concurrent failures may race on the counter (last write wins), which can
    shift the exact attempt at which the lock kicks in but never disables it.
    """

    # columns record_failure / record_success touch
    FIELDS = ("failed_login_attempts", "lock_until")

    max_attempts: int = 5
    lockout_seconds: int = 3600

    @staticmethod
    def _now(now: datetime | None) -> datetime:
        return now or datetime.now(timezone.utc)

    def check_locked(self, credential: Credential, now: datetime | None = None) -> bool:
        """True iff a lock is set and still in the future. Expired locks are left in place."""
        return (
            credential.lock_until is not None
            and credential.lock_until > self._now(now)
        )

    def record_failure(
        self, credential: Credential, now: datetime | None = None
    ) -> Credential:
        now = self._now(now)
        if credential.lock_until is not None and credential.lock_until <= now:
            # previous lock has run out: start a fresh streak
            credential.failed_login_attempts = 1
            credential.lock_until = None
            return credential

        credential.failed_login_attempts += 1
        if credential.failed_login_attempts >= self.max_attempts:
            credential.lock_until = now + timedelta(seconds=self.lockout_seconds)
        return credential

    def record_success(self, credential: Credential) -> Credential:
        credential.failed_login_attempts = 0
        credential.lock_until = None
        return credential
