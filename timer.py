# ─────────────────────────────────────────────────────────────────
# timer.py — Background Scheduler Trigger
#
# Invokes the offline check on a fixed cadence (every 60 seconds by
# default) while the API keeps serving requests.
#
# HOW IT WORKS:
#   - One background coroutine wakes up every `interval` seconds
#   - Each wake-up spawns the cycle as its OWN task and goes straight
#     back to sleep, so a slow cycle never pushes the next tick back
#   - If a tick starts while the previous one is still running, both
#     run side by side; cycles share no state
#   - A tick that blows up is logged and forgotten; the next tick
#     runs as usual
# ─────────────────────────────────────────────────────────────────

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

logger = logging.getLogger("timer")


class Ticker:
    """Calls `job()` every `interval` seconds until stopped."""

    def __init__(self, job: Callable[[], Awaitable], interval: float = 60, on_result: Optional[Callable] = None):
        self.job = job
        self.interval = interval
        self.on_result = on_result
        self.ticks = 0
        self._loop_task: Optional[asyncio.Task] = None
        self._in_flight: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    async def _tick(self, tick_no: int):
        try:
            result = await self.job()
            if self.on_result is not None:
                self.on_result(result)
        except asyncio.CancelledError:
            logger.info(f"⏱️  Tick #{tick_no} cancelled")
            raise
        except Exception as e:
            logger.exception(f"❌ Tick #{tick_no} failed: {e}")

    async def _run(self):
        try:
            while True:
                self.ticks += 1
                task = asyncio.create_task(self._tick(self.ticks))
                self._in_flight.add(task)
                task.add_done_callback(self._in_flight.discard)

                # Pause ONLY this coroutine until the next tick is due
                await asyncio.sleep(self.interval)

        except asyncio.CancelledError:
            logger.info("⏱️  Scheduler loop stopped")
            raise

    def start(self):
        if self.running:
            logger.warning("Scheduler already running")
            return

        self._loop_task = asyncio.create_task(self._run())
        logger.info(f"⏱️  Scheduler started — running every {self.interval}s")

    async def stop(self):
        """Stop ticking and wait for in-flight cycles to finish."""
        if self._loop_task is not None:
            self._loop_task.cancel()
            await asyncio.gather(self._loop_task, return_exceptions=True)
            self._loop_task = None

        if self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)
