"""
Local timer scheduling

Timers run as independent asyncio tasks. Starting a timer returns at once; the
task sleeps for the requested duration and then raises an alert and an audible
chime through the alert sink. Several timers may be outstanding and they
complete in any order relative to the main pipeline.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from .speech import AlertSink

LOGGER = logging.getLogger("jarvis-assistant.timer")


@dataclass
class TimerScheduler:
    alerts: AlertSink
    _tasks: set[asyncio.Task] = field(default_factory=set, init=False)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def start_timer(self, milliseconds: int, duration: int, unit: str) -> asyncio.Task:
        if milliseconds <= 0:
            raise ValueError("Timer duration must be positive")
        task = asyncio.get_running_loop().create_task(self._local_timer(milliseconds / 1000, duration, unit))
        self._track(task)
        LOGGER.info("[timer] Timer started for %s %s (%d ms)", duration, unit, milliseconds)
        return task

    async def cancel_all(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _local_timer(self, delay: float, duration: int, unit: str) -> None:
        await asyncio.sleep(delay)
        try:
            await self.alerts.notify("Timer Complete", f"Your {duration} {unit} timer has finished!")
            await self.alerts.chime()
        except Exception as exc:
            LOGGER.warning("[timer] Failed to deliver timer alert: %s", exc)

    def _track(self, task: asyncio.Task) -> None:
        self._tasks.add(task)

        def _cleanup(_task: asyncio.Task) -> None:
            self._tasks.discard(_task)

        task.add_done_callback(_cleanup)
