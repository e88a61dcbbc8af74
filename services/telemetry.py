"""Reading store lifecycle: initial CSV load and periodic synthesis."""

from __future__ import annotations

import logging
import random
import time
from datetime import date, datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import Event, Lock, Thread
from typing import Callable, Iterable, List, Optional

from models.records import Reading, ScoringVariant
from services.csv_codec import parse_rows, render_csv
from services.synthesizer import MetricSynthesizer
from settings import get_settings
from storage.reading_store import ReadingStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TelemetryService:
    """Owns the reading store and the only two paths that write to it."""

    def __init__(
        self,
        store: ReadingStore,
        synthesizer: MetricSynthesizer,
        csv_path: Optional[Path] = None,
        fleet: Iterable[str] = (),
        tick_interval: float = 3.0,
        clock: Clock = utc_now,
    ) -> None:
        self.store = store
        self.synthesizer = synthesizer
        self.csv_path = csv_path
        self.fleet = tuple(fleet)
        self.tick_interval = tick_interval
        self.clock = clock
        self.last_update: Optional[datetime] = None
        self.is_connected = True
        self._loaded = False
        self._stop_event = Event()
        self._thread: Optional[Thread] = None
        self._lifecycle_lock = Lock()

    @property
    def boat_ids(self) -> List[str]:
        """Configured fleet first, then any other boat seen in the data."""
        known = list(self.fleet)
        for boat_id in self.store.boat_ids():
            if boat_id not in known:
                known.append(boat_id)
        return known

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def load_initial(self, path: Optional[Path] = None) -> int:
        """Load the CSV snapshot once; failures leave the store empty."""
        source = path or self.csv_path
        self._loaded = True
        if source is None:
            logger.warning("No CSV snapshot configured; starting with an empty store")
            return 0

        try:
            text = Path(source).read_text(encoding="utf-8")
            readings = [self.synthesizer.from_base(base) for base in parse_rows(text)]
        except (OSError, UnicodeDecodeError, ValueError):
            logger.exception("Error loading sensor data", extra={"path": str(source)})
            return 0

        evicted = self.store.extend(readings)
        self.last_update = self.clock()
        logger.info(
            "Loaded sensor snapshot",
            extra={"path": str(source), "reading_count": len(readings), "evicted": evicted},
        )
        return len(readings)

    def tick(self) -> List[Reading]:
        """Append one synthesized reading per boat that already has history."""
        start_time = time.perf_counter()
        now = self.clock()
        appended: List[Reading] = []
        evicted = 0
        for boat_id in self.boat_ids:
            previous = self.store.latest(boat_id)
            if previous is None:
                continue
            reading = self.synthesizer.perturb(previous, timestamp=now)
            evicted += self.store.append(reading)
            appended.append(reading)

        self.last_update = now
        logger.debug(
            "Synthesis tick complete",
            extra={
                "reading_count": len(appended),
                "evicted": evicted,
                "tick_ms": int((time.perf_counter() - start_time) * 1000),
            },
        )
        return appended

    def start(self) -> None:
        """Start the periodic synthesis timer; the first run loads the snapshot."""
        with self._lifecycle_lock:
            if self.is_running:
                return
            self._stop_event.clear()
            self._thread = Thread(target=self._run, name="telemetry-ticker", daemon=True)
            self._thread.start()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Cancel the timer so no tick fires after shutdown."""
        with self._lifecycle_lock:
            thread = self._thread
            self._stop_event.set()
            if thread is not None:
                thread.join(timeout=timeout)
            self._thread = None

    def export_csv(self) -> str:
        return render_csv(self.store.snapshot())

    def export_filename(self, today: Optional[date] = None) -> str:
        day = today or self.clock().date()
        return f"sensor-data-{day.isoformat()}.csv"

    def _run(self) -> None:
        if not self._loaded:
            self.load_initial()
        while not self._stop_event.wait(self.tick_interval):
            try:
                self.tick()
            except Exception:  # noqa: BLE001 - keep the timer alive
                logger.exception("Synthesis tick failed")


@lru_cache
def build_default_service(seed: Optional[int] = None) -> TelemetryService:
    """Factory that wires the telemetry service from environment settings."""
    settings = get_settings()
    effective_seed = settings.seed if seed is None else seed
    try:
        variant = ScoringVariant(settings.scoring_variant)
    except ValueError:
        logger.warning(
            "Unknown scoring variant, using classic",
            extra={"variant": settings.scoring_variant},
        )
        variant = ScoringVariant.classic_dual_channel
    synthesizer = MetricSynthesizer(variant=variant, rng=random.Random(effective_seed))
    return TelemetryService(
        store=ReadingStore(capacity=settings.capacity),
        synthesizer=synthesizer,
        csv_path=Path(settings.csv_path),
        fleet=settings.fleet_boat_ids,
        tick_interval=settings.tick_seconds,
    )
