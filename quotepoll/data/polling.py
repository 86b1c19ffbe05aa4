"""Scheduled polling loop with a bounded lifetime."""

from __future__ import annotations

import asyncio
import enum
import logging
import sys
from typing import Optional, Protocol, TextIO

from quotepoll.infra.config import PollSchedule
from quotepoll.infra.metrics import MetricsSink

from .quotes_client import QuoteRecord

# Ticks closer than this to the lifetime boundary are not scheduled.
_BOUNDARY_EPSILON = 1e-6


class QuoteSource(Protocol):
    """Anything able to produce the next quote, or ``None`` to skip a cycle."""

    def fetch_quote(self) -> Optional[QuoteRecord]:
        ...


class PollState(str, enum.Enum):
    INITIAL = "initial"
    WAITING = "waiting"
    TERMINATED = "terminated"


class QuotePoller:
    """Fetches and prints a quote now, then on every tick until the lifetime ends.

    Two independent timers drive the loop: a repeating tick and a one-shot
    lifetime deadline, both observed through a single ``asyncio.wait``. When
    both are ready at once the deadline wins. Fetches run one at a time; ticks
    that fire during a slow fetch collapse into a single pending tick.

    A :class:`~quotepoll.data.quotes_client.FatalResponseError` raised by the
    source is not handled here and ends the run.
    """

    def __init__(
        self,
        source: QuoteSource,
        schedule: PollSchedule,
        output: Optional[TextIO] = None,
        metrics: Optional[MetricsSink] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.source = source
        self.schedule = schedule
        self.output = output or sys.stdout
        self.metrics = metrics or MetricsSink()
        self.logger = logger or logging.getLogger(__name__)
        self.state = PollState.INITIAL

    async def poll_once(self) -> Optional[QuoteRecord]:
        """Fetch one quote off the event loop and print it."""

        quote = await asyncio.to_thread(self.source.fetch_quote)
        if quote is None:
            return None
        print(quote.format_line(), file=self.output, flush=True)
        self.metrics.incr("quotes_printed")
        return quote

    async def run(self) -> None:
        if self.state is not PollState.INITIAL:
            raise RuntimeError(f"poller cannot run from state {self.state.value}")

        ticker: Optional[asyncio.Task] = None
        deadline: Optional[asyncio.Task] = None
        try:
            await self.poll_once()
            self.logger.debug("Initial poll complete", extra={"event": "initial_poll"})
            self.state = PollState.WAITING

            loop = asyncio.get_running_loop()
            started = loop.time()
            deadline_at = started + self.schedule.lifetime
            tick = asyncio.Event()
            ticker = asyncio.create_task(self._tick(tick, started, deadline_at), name="quotepoll-ticker")
            deadline = asyncio.create_task(self._sleep_until(deadline_at), name="quotepoll-lifetime")

            while True:
                waiter = asyncio.create_task(tick.wait())
                try:
                    done, _ = await asyncio.wait({waiter, deadline}, return_when=asyncio.FIRST_COMPLETED)
                finally:
                    waiter.cancel()
                if deadline in done:
                    break
                tick.clear()
                self.metrics.incr("ticks")
                await self.poll_once()
                self.logger.debug("Scheduled poll complete", extra={"event": "tick_poll"})

            self.logger.info(
                "%s seconds have passed, stopping the loop", self.schedule.lifetime,
                extra={"event": "lifetime_elapsed", "counters": self.metrics.export()},
            )
        finally:
            self.state = PollState.TERMINATED
            pending = [task for task in (ticker, deadline) if task is not None]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

    async def _tick(self, tick: asyncio.Event, started: float, deadline_at: float) -> None:
        loop = asyncio.get_running_loop()
        n = 1
        while True:
            fire_at = started + n * self.schedule.interval
            if fire_at >= deadline_at - _BOUNDARY_EPSILON:
                return
            await self._sleep_until(fire_at)
            tick.set()
            n += 1
            # Fire times stay anchored to the start; missed ticks are dropped.
            while started + n * self.schedule.interval <= loop.time():
                n += 1

    @staticmethod
    async def _sleep_until(when: float) -> None:
        delay = when - asyncio.get_running_loop().time()
        await asyncio.sleep(max(delay, 0.0))


__all__ = ["PollState", "QuotePoller", "QuoteSource"]
