"""
UID and token issuance.

Both identifiers combine the current time with 64 bits from `secrets`, so
they can be issued concurrently without any shared counter.
"""

import secrets
from datetime import datetime, timezone
from typing import Callable, Optional

RANDOM_BYTES = 8  # 16 hex chars


def _stamp(now: Optional[datetime]) -> tuple[str, str]:
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y%m%d"), now.strftime("%H%M%S")


def generate_uid(
    actor_id: int,
    company_id: int,
    now: Optional[datetime] = None,
    random_hex: Callable[[int], str] = secrets.token_hex,
) -> str:
    """UID-<YYYYMMDD>-<HHMMSS>-USR<actor>-CPY<company>-<16 hex>"""
    date, time = _stamp(now)
    return f"UID-{date}-{time}-USR{actor_id:04d}-CPY{company_id:04d}-{random_hex(RANDOM_BYTES)}"


def generate_token(
    now: Optional[datetime] = None,
    random_hex: Callable[[int], str] = secrets.token_hex,
) -> str:
    """DOC-<YYYYMMDD>-<HHMMSS>-<16 hex>"""
    date, time = _stamp(now)
    return f"DOC-{date}-{time}-{random_hex(RANDOM_BYTES)}"
