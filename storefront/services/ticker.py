# storefront/services/ticker.py
import asyncio
import random
from datetime import datetime, timezone
from typing import Callable, List

from storefront.domain.schemas import StockChange, TickerOut
from storefront.utils.settings import TICKER_INTERVAL_SECONDS, TICKER_JITTER_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class PriceTicker:
    """
    -co interval (+ losowy jitter) przelicza zmiany cen w tle
    -start/stop razem z aplikacja, stop anuluje task i czeka na niego
    -nowy poll nie startuje dopoki poprzedni trwa (pomijamy, nie kolejkujemy)
    -latest() dla HTTP czeka na trwajacy poll
    -wynik ktory przyszedl po stop() jest odrzucany (licznik generacji)
    """

    def __init__(
        self,
        fetch: Callable[[], List[StockChange]],
        interval: float = TICKER_INTERVAL_SECONDS,
        jitter: float = TICKER_JITTER_SECONDS,
    ):
        self._fetch = fetch
        self.interval = interval
        self.jitter = jitter

        self._task: asyncio.Task | None = None
        self._generation = 0
        self._pending: asyncio.Future | None = None

        self.items: List[StockChange] = []
        self.fetched_at: datetime | None = None
        self.last_error: str | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def snapshot(self) -> TickerOut:
        return TickerOut(items=self.items, fetched_at=self.fetched_at)

    def start(self) -> None:
        if self.running:
            return
        self._generation += 1
        self._task = asyncio.create_task(self._run(self._generation))
        logger.info(f"Ticker uruchomiony, interval {self.interval}s")

    async def stop(self) -> None:
        self._generation += 1
        task, self._task = self._task, None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Ticker zatrzymany")

    async def refresh(self, generation: int | None = None) -> bool:
        """Jedno przeliczenie. False gdy pominiete, nieudane albo nieaktualne."""
        if self._pending is not None:
            logger.info("Poprzednie odswiezanie tickera jeszcze trwa, pomijam")
            return False

        if generation is None:
            generation = self._generation

        pending = self._pending = asyncio.get_running_loop().create_future()
        try:
            items = await asyncio.to_thread(self._fetch)
        except Exception as e:
            logger.warning(f"Odswiezanie tickera nieudane, zostaje poprzedni stan: {e}")
            self.last_error = str(e)
            return False
        finally:
            self._pending = None
            pending.set_result(None)

        if generation != self._generation:
            logger.info("Wynik tickera nieaktualny, odrzucam")
            return False

        self.items = items
        self.fetched_at = datetime.now(timezone.utc)
        self.last_error = None
        return True

    async def latest(self) -> TickerOut:
        """
        Stan dla zapytania HTTP.
        Trwa odswiezanie -> czekamy na nie zamiast oddawac pusty/stary stan.
        Petla w tle nie chodzi (albo jeszcze nic nie policzyla) -> liczymy teraz.
        """
        pending = self._pending
        if pending is not None:
            await asyncio.shield(pending)
        elif not self.running or self.fetched_at is None:
            await self.refresh()
        return self.snapshot

    def _next_delay(self) -> float:
        if self.jitter <= 0:
            return self.interval
        return self.interval + random.uniform(0, self.jitter)

    async def _run(self, generation: int) -> None:
        while True:
            await self.refresh(generation)
            await asyncio.sleep(self._next_delay())
