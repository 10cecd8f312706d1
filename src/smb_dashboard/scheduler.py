# SMB Dashboard - Financial Dashboard & Insights application for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Debounced scheduling of AI alert requests.

Every change to sales or expenses should eventually refresh the financial
alerts, but a burst of edits must not trigger a burst of requests.
``AlertScheduler`` coalesces notifications:

- ``notify_change()`` cancels the pending debounce timer (if any) and starts
  a new one. Only the last notification of a burst leads to a request.
- Each notification bumps a generation counter. A request is tagged with the
  generation current when it was dispatched; its result is delivered only if
  no newer notification arrived in the meantime, otherwise it is dropped.
- ``aclose()`` cancels the timer and any request still in flight.

The scheduler needs a running asyncio event loop. Notifications received
outside of a loop only bump the generation.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Optional

from .models import AlertDraft

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 1.0

AlertFetcher = Callable[[], Awaitable[list[AlertDraft]]]
AlertConsumer = Callable[[list[AlertDraft]], None]


class AlertScheduler:
    """Debounce change notifications into alert requests."""

    def __init__(
        self,
        fetch: AlertFetcher,
        deliver: AlertConsumer,
        delay: float = DEFAULT_DEBOUNCE_SECONDS,
    ) -> None:
        if delay < 0:
            raise ValueError("Debounce delay cannot be negative.")
        self._fetch = fetch
        self._deliver = deliver
        self.delay = delay
        self._generation = 0
        self._timer: Optional[asyncio.Task] = None
        self._in_flight: set[asyncio.Task] = set()
        self._closed = False

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def pending(self) -> bool:
        """True while a debounce timer or a request is outstanding."""
        return self._timer is not None or bool(self._in_flight)

    def notify_change(self) -> None:
        """Restart the debounce timer after a change to the records."""
        if self._closed:
            return
        self._generation += 1

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, alert refresh not scheduled.")
            return

        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.create_task(self._run(self._generation))

    async def _run(self, generation: int) -> None:
        task = asyncio.current_task()
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            if self._timer is task:
                self._timer = None
            raise

        # The timer fired: from now on the request can only be superseded.
        if self._timer is task:
            self._timer = None
        self._in_flight.add(task)
        try:
            try:
                drafts = await self._fetch()
            except Exception:  # noqa: BLE001
                logger.exception("Alert refresh failed.")
                return
            if generation != self._generation:
                logger.debug(
                    "Dropping alerts from generation %d (current is %d).",
                    generation,
                    self._generation,
                )
                return
            self._deliver(drafts)
        finally:
            self._in_flight.discard(task)

    async def drain(self) -> None:
        """Wait until no timer or request is outstanding."""
        while self.pending:
            tasks = [t for t in (self._timer, *self._in_flight) if t is not None]
            await asyncio.gather(*tasks, return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel the pending timer and every request in flight."""
        self._closed = True
        tasks = [t for t in (self._timer, *self._in_flight) if t is not None]
        for t in tasks:
            t.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._timer = None
        self._in_flight.clear()
