from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from queue import Queue
from threading import Lock
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence, Set

from place_trace.errors import ParseError
from place_trace.events import EditEvent, SearchArea
from place_trace.geometry import Rectangle
from place_trace.logfile import CanvasLog
from place_trace.parser import RecordParser

LOG = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 2048
MALFORMED_WARNING_LIMIT = 20


def default_worker_count() -> int:
    # Twice the core count keeps the parser threads busy while the reader blocks.
    return max(1, (os.cpu_count() or 1) * 2)


class CandidateTable:
    """Author -> matched search regions, shared by scanner workers.

    Every mutation takes the lock for a single author; parsing and matching
    happen outside it. Authors evicted by the exclusion pass stay out.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._regions: Dict[str, Set[Rectangle]] = {}
        self._evicted: Set[str] = set()

    def add(self, author_id: str, regions: Sequence[Rectangle]) -> None:
        with self._lock:
            if author_id in self._evicted:
                return
            self._regions.setdefault(author_id, set()).update(regions)

    def evict(self, author_id: str) -> bool:
        with self._lock:
            self._evicted.add(author_id)
            return self._regions.pop(author_id, None) is not None

    def snapshot(self) -> Dict[str, FrozenSet[Rectangle]]:
        with self._lock:
            return {author: frozenset(regions) for author, regions in self._regions.items()}

    def __len__(self) -> int:
        with self._lock:
            return len(self._regions)


@dataclass
class PassStats:
    name: str
    batches: int = 0
    events: int = 0
    malformed: int = 0
    failed: int = 0
    evicted: int = 0
    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    def record_batch(self, events: int, malformed: List[ParseError], failed: int, evicted: int) -> None:
        with self._lock:
            self.batches += 1
            self.events += events
            self.failed += failed
            self.evicted += evicted
            for error in malformed:
                self.malformed += 1
                if self.malformed <= MALFORMED_WARNING_LIMIT:
                    LOG.warning("Malformed line in data (%s): %s", error.reason, error.line)
                elif self.malformed == MALFORMED_WARNING_LIMIT + 1:
                    LOG.warning("Further malformed lines in the %s pass will only be counted.", self.name)

    def as_dict(self) -> Dict[str, int]:
        return {
            "batches": self.batches,
            "events": self.events,
            "malformed": self.malformed,
            "failed": self.failed,
            "evicted": self.evicted,
        }


@dataclass
class ScanResult:
    candidates: List[str]
    regions: Dict[str, FrozenSet[Rectangle]]
    passes: Dict[str, PassStats]

    @property
    def unique(self) -> Optional[str]:
        return self.candidates[0] if len(self.candidates) == 1 else None


class CandidateScanner:
    """Narrow the log's authors down to those who touched every required area.

    The inclusion pass records which search regions each author matched. When
    ``no_edits_outside`` is set, the exclusion pass then drops any author with
    a placement outside all regions. Each pass reads the log once with a
    single producer feeding a bounded queue of line batches to a pool of
    worker threads.
    """

    def __init__(
        self,
        areas: Sequence[SearchArea],
        parser: RecordParser,
        *,
        workers: Optional[int] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self.areas = list(areas)
        self.parser = parser
        self.workers = max(1, workers or default_worker_count())
        self.batch_size = max(1, batch_size)

    def scan(self, log: CanvasLog, *, no_edits_outside: bool = True) -> ScanResult:
        table = CandidateTable()
        passes: Dict[str, PassStats] = {}

        LOG.info("Searching %s for users in %d area(s) with %d workers", log.path, len(self.areas), self.workers)
        passes["include"] = self._run_pass("include", log, lambda event: self._include(table, event))
        LOG.info("%d user(s) placed tiles in the selected areas", len(table))

        if no_edits_outside:
            passes["exclude"] = self._run_pass("exclude", log, lambda event: self._exclude(table, event))
            LOG.info(
                "Removed %d user(s) with edits outside the selected areas; %d remain",
                passes["exclude"].evicted,
                len(table),
            )

        regions = table.snapshot()
        candidates = reduce_candidates(regions, self.areas)
        return ScanResult(candidates=candidates, regions=regions, passes=passes)

    def _include(self, table: CandidateTable, event: EditEvent) -> int:
        matched = [area.region for area in self.areas if area.matches(event)]
        if matched:
            table.add(event.author_id, matched)
        return 0

    def _exclude(self, table: CandidateTable, event: EditEvent) -> int:
        if any(area.touches(event.placement) for area in self.areas):
            return 0
        return 1 if table.evict(event.author_id) else 0

    def _run_pass(self, name: str, log: CanvasLog, handle: Callable[[EditEvent], int]) -> PassStats:
        stats = PassStats(name=name)
        work: "Queue[Optional[List[str]]]" = Queue(maxsize=self.workers * 2)
        threads = [
            threading.Thread(
                target=self._consume,
                args=(work, handle, stats),
                name=f"scan-{name}-{index}",
                daemon=True,
            )
            for index in range(self.workers)
        ]
        for thread in threads:
            thread.start()

        try:
            for batch in log.batches(self.batch_size):
                work.put(batch)
        finally:
            for _ in threads:
                work.put(None)
            for thread in threads:
                thread.join()

        LOG.debug(
            "%s pass: %d lines, %d parsed, %d malformed, %d undecodable",
            name,
            log.stats.lines,
            stats.events,
            stats.malformed,
            log.stats.undecodable,
        )
        if stats.malformed:
            LOG.warning("Skipped %d malformed line(s) during the %s pass", stats.malformed, name)
        return stats

    def _consume(self, work: Queue, handle: Callable[[EditEvent], int], stats: PassStats) -> None:
        while True:
            batch = work.get()
            if batch is None:
                return
            events = 0
            failed = 0
            evicted = 0
            malformed: List[ParseError] = []
            for line in batch:
                result = self.parser.parse(line)
                if isinstance(result, ParseError):
                    malformed.append(result)
                    continue
                events += 1
                try:
                    evicted += handle(result)
                except Exception:  # noqa: BLE001
                    failed += 1
                    LOG.exception("Worker %s failed on line %r", threading.current_thread().name, line)
            stats.record_batch(events, malformed, failed, evicted)


def reduce_candidates(regions: Dict[str, FrozenSet[Rectangle]], areas: Sequence[SearchArea]) -> List[str]:
    """Authors whose matched regions cover every non-optional area, sorted by id."""
    required = {area.region for area in areas if not area.optional}
    return sorted(author for author, matched in regions.items() if required <= matched)
