"""Worker wiring for periodic sync cycles."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from loguru import logger

from stampcard.schemas.sync import SyncResult

SyncRunner = Callable[[], Awaitable[SyncResult]]


class AutoSyncWorker:
    """Runs a sync cycle immediately and then on a fixed interval until stopped."""

    def __init__(self, runner: SyncRunner, *, interval_seconds: float = 30) -> None:
        self._runner = runner
        self.interval_seconds = interval_seconds
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None
        self.is_running: bool = False
        self.cycles: int = 0

    def start(self) -> None:
        if self._task and not self._task.done():
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop())
        self.is_running = True
        logger.info("Auto sync worker started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        """Prevent further cycles; a cycle already in flight runs to completion."""

        if not self._task:
            return
        self._stop_event.set()
        await self._task
        self._task = None
        self.is_running = False
        logger.info("Auto sync worker stopped", cycles=self.cycles)

    async def run_once(self) -> SyncResult:
        result = await self._runner()
        self.cycles += 1
        if result.errors:
            logger.warning(
                "Auto sync cycle finished with errors",
                pushed=result.pushed,
                pulled=result.pulled,
                errors=result.errors,
            )
        else:
            logger.debug("Auto sync cycle completed", pushed=result.pushed, pulled=result.pulled)
        return result

    async def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await self.run_once()
            except Exception as exc:  # pragma: no cover - runner failures are logged
                logger.exception("Auto sync iteration failed", error=str(exc))
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue


__all__ = ["AutoSyncWorker"]
