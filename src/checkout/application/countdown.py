"""Countdown shown next to an instant-transfer QR code."""

from __future__ import annotations

from datetime import datetime, timedelta

from checkout.application.clock import Clock, utc_now

EXPIRED_LABEL = "Expirado"


class Countdown:
    """Derived purely from ``expires_at - now`` on every read.

    Nothing is accumulated between reads, so the display cannot drift
    from the server-provided timestamp.
    """

    def __init__(self, expires_at: datetime, clock: Clock = utc_now) -> None:
        self.expires_at = expires_at
        self._clock = clock

    def remaining(self) -> timedelta:
        left = self.expires_at - self._clock()
        return max(left, timedelta(0))

    @property
    def expired(self) -> bool:
        return self.remaining() == timedelta(0)

    def label(self) -> str:
        seconds_left = int(self.remaining().total_seconds())
        minutes, seconds = divmod(seconds_left, 60)
        if minutes > 0:
            return f"{minutes} min {seconds} seg"
        if seconds > 0:
            return f"{seconds} seg"
        return EXPIRED_LABEL
