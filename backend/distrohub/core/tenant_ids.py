# ============================
# FILE: distrohub/core/tenant_ids.py
# Sequential tenant ID allocation ("001", "002", ...)
# ============================
from __future__ import annotations

import logging
import re
import time
from collections.abc import Awaitable, Callable
from typing import Optional

logger = logging.getLogger(__name__)

NUMERIC_TENANT_ID_RE = re.compile(r"^[0-9]{3}$")
TENANT_ID_WIDTH = 3
# first number that no longer fits in TENANT_ID_WIDTH digits
TENANT_ID_CEILING = 10 ** TENANT_ID_WIDTH

MaxIdLookup = Callable[[], Awaitable[Optional[str]]]
ExistsLookup = Callable[[str], Awaitable[bool]]


def format_tenant_id(number: int) -> str:
    return str(number).zfill(TENANT_ID_WIDTH)


def fallback_tenant_id(now_ms: Optional[int] = None) -> str:
    """
    Degraded-mode ID: "T" + base-36 millisecond timestamp, e.g. "TMG3K9ZQ1".
    Unique in practice, not guaranteed.
    """
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    digits = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    n = max(int(now_ms), 0)
    out = ""
    while True:
        n, rem = divmod(n, 36)
        out = digits[rem] + out
        if n == 0:
            break
    return f"T{out}"


class TenantIdAllocator:
    """
    Allocates the next tenant ID as max(existing numeric ids) + 1.

    Collaborators are injected so the algorithm can run against the database
    (see `distrohub.crud.company.sql_tenant_id_allocator`) or an in-memory fake:
      - max_numeric_id(): highest existing ID matching ^[0-9]{3}$, or None
      - exists(tenant_id): True if the ID is already taken

    The probe and the caller's insert are NOT atomic. Two registrations racing
    can still compute the same ID; the unique index on companies.tenant_id is
    what finally rejects the loser.
    """

    def __init__(
        self,
        max_numeric_id: MaxIdLookup,
        exists: ExistsLookup,
        *,
        max_probes: int = 999,
        clock_ms: Optional[Callable[[], int]] = None,
    ):
        self._max_numeric_id = max_numeric_id
        self._exists = exists
        self._max_probes = max_probes
        self._clock_ms = clock_ms

    def _fallback(self) -> str:
        now_ms = self._clock_ms() if self._clock_ms else None
        return fallback_tenant_id(now_ms)

    async def next_candidate(self) -> int:
        last = await self._max_numeric_id()
        if last and NUMERIC_TENANT_ID_RE.match(last):
            return int(last) + 1
        return 1

    async def allocate(self) -> str:
        try:
            candidate = await self.next_candidate()

            probes = 0
            while candidate < TENANT_ID_CEILING and probes < self._max_probes:
                tenant_id = format_tenant_id(candidate)
                if not await self._exists(tenant_id):
                    if probes:
                        logger.warning(f"Tenant ID allocation lost {probes} race(s); using {tenant_id}")
                    return tenant_id
                candidate += 1
                probes += 1

            tenant_id = self._fallback()
            logger.error(f"Numeric tenant ID space exhausted; using fallback {tenant_id}")
            return tenant_id
        except Exception:
            tenant_id = self._fallback()
            logger.exception(f"Error generating tenant ID; using fallback {tenant_id}")
            return tenant_id
