"""
Fixed-cadence dashboard polling of the analytics snapshot.
"""

import asyncio
from typing import Callable, Optional, Set

import httpx
from pydantic import ValidationError

from shared.logging import get_logger

from service_gateway.app.domain.models import AnalyticsSnapshot

DEFAULT_POLL_INTERVAL_SECONDS = 30.0


class DashboardPoller:
    """Polls ``/api/analytics`` and keeps the latest snapshot.

    A slow poll may overlap the next tick; whichever completes last is the
    one displayed. ``highest_concurrent`` is a session high-water mark and
    never decreases.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        on_update: Optional[Callable[[AnalyticsSnapshot], None]] = None,
    ):
        self.http = http
        self.interval = interval
        self.on_update = on_update
        self.snapshot: Optional[AnalyticsSnapshot] = None
        self.highest_concurrent = 0
        self._ticker_task: Optional[asyncio.Task] = None
        self._polls: Set[asyncio.Task] = set()
        self.logger = get_logger("client.dashboard")

    async def poll_once(self) -> Optional[AnalyticsSnapshot]:
        try:
            response = await self.http.get("/api/analytics")
            response.raise_for_status()
            snapshot = AnalyticsSnapshot.model_validate(response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as e:
            self.logger.warning("Analytics fetch error", error=str(e))
            return None

        self.highest_concurrent = max(
            self.highest_concurrent,
            snapshot.highest_concurrent,
            snapshot.concurrent_users,
        )
        self.snapshot = snapshot
        if self.on_update is not None:
            self.on_update(snapshot)
        return snapshot

    def start(self) -> None:
        if self._ticker_task is None or self._ticker_task.done():
            self._ticker_task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while True:
            poll = asyncio.get_running_loop().create_task(self.poll_once())
            self._polls.add(poll)
            poll.add_done_callback(self._polls.discard)
            await asyncio.sleep(self.interval)

    async def stop(self) -> None:
        tasks = list(self._polls)
        if self._ticker_task is not None:
            tasks.append(self._ticker_task)
            self._ticker_task = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
