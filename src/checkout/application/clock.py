"""Time sources injected into the async use cases.

Every deadline, countdown and expiry check reads ``Clock``; every wait
goes through ``Sleep``.  Tests swap both for a fake that advances
instantly.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Awaitable, Callable

Clock = Callable[[], datetime]
Sleep = Callable[[float], Awaitable[None]]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


async def real_sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)
