"""Which data source should serve requests right now.

The decision is cached for ``check_interval_seconds``; within that window
``resolve()`` never touches the network. Failed probes are cached the same
way so a dead backend is not probed on every request.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from qa_insights.integrations.contracts.records import DataSource

logger = logging.getLogger(__name__)

DEFAULT_CHECK_INTERVAL_SECONDS = 60.0


class SourceResolver:
    def __init__(
        self,
        client,
        *,
        enabled: bool,
        check_interval_seconds: float = DEFAULT_CHECK_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._enabled = enabled
        self._check_interval = check_interval_seconds
        self._clock = clock
        self._probe_lock = asyncio.Lock()

        self.current_source = DataSource.LOCAL
        self.remote_available = False
        self.last_checked_at: Optional[float] = None
        self.checked_at: Optional[datetime] = None
        self.probe_count = 0

    @property
    def enabled(self) -> bool:
        return self._enabled

    def _is_fresh(self) -> bool:
        if self.last_checked_at is None:
            return False
        return self._clock() - self.last_checked_at < self._check_interval

    async def resolve(self) -> DataSource:
        if not self._enabled:
            self.current_source = DataSource.LOCAL
            return DataSource.LOCAL

        if self._is_fresh():
            return self.current_source

        async with self._probe_lock:
            # another caller may have probed while we waited on the lock
            if self._is_fresh():
                return self.current_source
            return await self._probe()

    async def _probe(self) -> DataSource:
        previous = self.current_source
        self.probe_count += 1
        try:
            available = bool(await self._client.ping())
        except Exception as exc:
            logger.warning("Error checking search backend availability: %s", exc)
            available = False

        self.remote_available = available
        self.current_source = DataSource.REMOTE if available else DataSource.LOCAL
        self.last_checked_at = self._clock()
        self.checked_at = datetime.now(timezone.utc)

        if self.current_source is not previous or self.probe_count == 1:
            if available:
                logger.info("Connected to search backend")
            else:
                logger.info("Search backend not available, using local snapshot")
        return self.current_source

    def invalidate(self) -> None:
        """Force the next resolve() to probe."""
        self.last_checked_at = None
