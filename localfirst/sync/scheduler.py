"""Periodic sync of several repositories with failure backoff."""

import asyncio
import logging
from datetime import datetime
from typing import Any

from ..errors import SyncError
from .repository import OfflineFirstRepository, SyncResult

logger = logging.getLogger(__name__)


class SyncScheduler:
    """Runs ``sync()`` on a set of repositories, retrying on an interval.

    A failing kind does not stop the others. The wait between rounds
    doubles for every consecutive round with a failure, up to
    ``max_backoff_seconds``.
    """

    def __init__(
        self,
        repositories: list[OfflineFirstRepository],
        interval_seconds: float = 300,
        max_backoff_seconds: float = 3600,
        timeout: float | None = None,
    ):
        self.repositories = repositories
        self.interval_seconds = interval_seconds
        self.max_backoff_seconds = max_backoff_seconds
        self.timeout = timeout
        self._last_run: datetime | None = None
        self._consecutive_failures = 0
        self._last_errors: dict[str, str] = {}

    async def sync_all(self) -> dict[str, SyncResult | SyncError]:
        """Sync every repository once, in order.

        Returns:
            Per kind, the SyncResult or the SyncError it failed with.
        """
        outcomes: dict[str, SyncResult | SyncError] = {}

        for repository in self.repositories:
            kind = repository.kind.name
            try:
                outcomes[kind] = await repository.sync(timeout=self.timeout)
            except SyncError as e:
                logger.error(f"Sync of {kind} failed: {e}")
                outcomes[kind] = e

        self._last_errors = {
            kind: str(outcome)
            for kind, outcome in outcomes.items()
            if isinstance(outcome, SyncError)
        }
        if self._last_errors:
            self._consecutive_failures += 1
        else:
            self._consecutive_failures = 0
        self._last_run = datetime.now()

        return outcomes

    def next_wait(self) -> float:
        """Seconds to wait before the next round."""
        if self._consecutive_failures == 0:
            return self.interval_seconds
        return min(
            self.interval_seconds * (2 ** self._consecutive_failures),
            self.max_backoff_seconds,
        )

    async def run(self, stop_event: asyncio.Event | None = None) -> None:
        """Sync in a loop until ``stop_event`` is set.

        Args:
            stop_event: Event to signal loop should stop.
        """
        logger.info(
            f"Starting sync loop for {len(self.repositories)} kinds "
            f"with {self.interval_seconds}s interval"
        )

        while True:
            if stop_event and stop_event.is_set():
                break

            try:
                outcomes = await self.sync_all()
                applied = sum(
                    o.applied for o in outcomes.values() if isinstance(o, SyncResult)
                )
                logger.info(
                    f"Sync round: applied={applied}, failed={len(self._last_errors)}"
                )
            except Exception as e:
                logger.error(f"Sync loop error: {e}")
                self._consecutive_failures += 1

            wait_time = self.next_wait()
            if self._consecutive_failures > 0:
                logger.debug(f"Backing off sync for {wait_time}s")

            if stop_event:
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=wait_time)
                    break  # Stop event was set
                except asyncio.TimeoutError:
                    pass  # Normal timeout, continue loop
            else:
                await asyncio.sleep(wait_time)

        logger.info("Sync loop stopped")

    @property
    def last_run(self) -> datetime | None:
        """Timestamp of the last completed round."""
        return self._last_run

    def status(self) -> dict[str, Any]:
        return {
            "kinds": [r.kind.name for r in self.repositories],
            "last_run": self._last_run.isoformat() if self._last_run else None,
            "consecutive_failures": self._consecutive_failures,
            "last_errors": dict(self._last_errors),
        }
