"""Credential freshness policy

Pure decision logic, no I/O. ``now`` may be injected for tests.
"""

import datetime
import math
from typing import Optional

from .jwt_utils import decode_jwt

DEFAULT_GRACE_SECONDS = 300
DEFAULT_MAX_AGE_DAYS = 7


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def parse_iso_timestamp(value: Optional[str]) -> Optional[datetime.datetime]:
    """Parse an ISO 8601 timestamp (``Z`` suffix allowed); naive values are UTC"""
    if not isinstance(value, str) or not value.strip():
        return None

    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.datetime.fromisoformat(value)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed.astimezone(datetime.timezone.utc)


def is_token_expired(
    id_token: Optional[str],
    grace_seconds: int = DEFAULT_GRACE_SECONDS,
    now: Optional[datetime.datetime] = None,
) -> bool:
    """Check if a JWT is expired or about to expire

    Unparseable tokens and tokens without a finite numeric ``exp`` claim count as
    expired, so callers fall back to re-authentication.

    Args:
        id_token: JWT to inspect
        grace_seconds: Tokens expiring within this window count as expired
        now: Current time override

    Returns:
        True if the token is expired, expiring soon, or unreadable
    """
    claims = decode_jwt(id_token) if id_token else None
    if not claims:
        return True

    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)) or not math.isfinite(exp):
        return True

    now = now or _utcnow()
    return exp < now.timestamp() + grace_seconds


def should_refresh(
    last_refresh: Optional[str],
    id_token: Optional[str] = None,
    max_age_days: float = DEFAULT_MAX_AGE_DAYS,
    grace_seconds: int = DEFAULT_GRACE_SECONDS,
    now: Optional[datetime.datetime] = None,
) -> bool:
    """Check if stored credentials should be refreshed

    Args:
        last_refresh: ISO 8601 timestamp of the last refresh
        id_token: Identity token accompanying the credential, if any
        max_age_days: Refresh credentials older than this
        grace_seconds: Expiry grace window for the identity token
        now: Current time override

    Returns:
        True if the timestamp is unreadable or too old, or if the identity
        token is missing or expired
    """
    now = now or _utcnow()

    refreshed_at = parse_iso_timestamp(last_refresh)
    if refreshed_at is None:
        return True

    if now - refreshed_at > datetime.timedelta(days=max_age_days):
        return True

    if not id_token:
        return True

    return is_token_expired(id_token, grace_seconds=grace_seconds, now=now)


class CredentialPolicy:
    """Freshness thresholds bound to one configuration"""

    def __init__(
        self,
        grace_seconds: int = DEFAULT_GRACE_SECONDS,
        max_age_days: float = DEFAULT_MAX_AGE_DAYS,
    ):
        self.grace_seconds = grace_seconds
        self.max_age_days = max_age_days

    def is_token_expired(self, id_token: Optional[str], now: Optional[datetime.datetime] = None) -> bool:
        return is_token_expired(id_token, grace_seconds=self.grace_seconds, now=now)

    def should_refresh(
        self,
        last_refresh: Optional[str],
        id_token: Optional[str] = None,
        now: Optional[datetime.datetime] = None,
    ) -> bool:
        return should_refresh(
            last_refresh,
            id_token,
            max_age_days=self.max_age_days,
            grace_seconds=self.grace_seconds,
            now=now,
        )
