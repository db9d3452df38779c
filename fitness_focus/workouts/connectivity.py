"""Online/offline detection by polling a probe coroutine.

The monitor reports the first observation and every change after it to
``on_change``; the controller uses that to drain the queue when the service
comes back.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger("fitness_focus.connectivity")

Probe = Callable[[], Awaitable[bool]]
ChangeHandler = Callable[[bool], Awaitable[None]]


class ConnectivityMonitor:
    """Poll ``probe`` every ``interval`` seconds.

    Usage::

        monitor = ConnectivityMonitor(backend.ping, controller.set_online)
        task = asyncio.create_task(monitor.run())
        ...
        monitor.stop()
    """

    def __init__(
        self,
        probe: Probe,
        on_change: ChangeHandler | None = None,
        interval: float = 15.0,
    ) -> None:
        self._probe = probe
        self._on_change = on_change
        self._interval = interval
        self._stop = asyncio.Event()
        self.online: bool | None = None

    async def check_once(self) -> bool:
        try:
            online = bool(await self._probe())
        except Exception as exc:
            logger.warning("Connectivity probe raised: %s", exc)
            online = False

        if online != self.online:
            logger.info("Connectivity changed: %s", "online" if online else "offline")
            self.online = online
            if self._on_change:
                await self._on_change(online)
        return online

    async def run(self) -> None:
        self._stop.clear()
        while not self._stop.is_set():
            await self.check_once()
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass

    def stop(self) -> None:
        self._stop.set()
