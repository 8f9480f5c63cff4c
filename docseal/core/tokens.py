import secrets
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenIssuer:
    """Issues bearer tokens for public signer links and computes their expiry."""

    TOKEN_BYTES = 32
    DEFAULT_TTL = timedelta(hours=48)

    def __init__(self, ttl: timedelta = DEFAULT_TTL, clock: Clock = utc_now) -> None:
        if ttl <= timedelta(0):
            raise ValueError("Token ttl must be positive")
        self._ttl = ttl
        self._clock = clock

    def issue_token(self) -> str:
        """Return a URL-safe token with 256 bits of randomness."""
        return secrets.token_urlsafe(self.TOKEN_BYTES)

    def now(self) -> datetime:
        return self._clock()

    def expiry_for(self, issued_at: datetime) -> datetime:
        return issued_at + self._ttl

    def is_expired(self, expires_at: datetime, now: datetime | None = None) -> bool:
        """Evaluate expiry against the clock at the moment of access."""
        current = now if now is not None else self._clock()
        return current >= expires_at
