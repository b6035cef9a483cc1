from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from place_trace.errors import ParseError
from place_trace.geometry import Point, describe, expand
from place_trace.logfile import CanvasLog
from place_trace.parser import RecordParser
from place_trace.services.scanner import MALFORMED_WARNING_LIMIT

LOG = logging.getLogger(__name__)


@dataclass
class Reconstruction:
    user_id: str
    placements: int = 0
    checkpoint_tiles: Dict[Point, str] = field(default_factory=dict)
    final_tiles: Dict[Point, str] = field(default_factory=dict)
    checkpoint_reached_at: Optional[int] = None
    lines: int = 0
    malformed: int = 0

    def checkpoint_entries(self) -> List[Tuple[Point, str]]:
        return list(self.checkpoint_tiles.items())

    def final_entries(self) -> List[Tuple[Point, str]]:
        return list(self.final_tiles.items())


class TileReconstructor:
    """Replay the log to find which of one user's tiles survived.

    Two snapshots are kept. ``checkpoint_tiles`` maps tile -> color and stops
    changing once the checkpoint is reached; ``final_tiles`` maps tile ->
    timestamp and runs to the end of the log. A placement by anyone else
    erases the user's claim on every tile it covers.

    The checkpoint is reached when the line counter hits ``checkpoint_line``
    (that line is already excluded from the checkpoint snapshot) or at the
    first event strictly later than ``checkpoint_time``.
    """

    def __init__(
        self,
        parser: RecordParser,
        *,
        checkpoint_line: Optional[int] = None,
        checkpoint_time: Optional[datetime] = None,
    ):
        self.parser = parser
        self.checkpoint_line = checkpoint_line
        self.checkpoint_time = checkpoint_time

    def run(self, log: CanvasLog, user_id: str) -> Reconstruction:
        result = Reconstruction(user_id=user_id)
        checkpoint = result.checkpoint_tiles
        final = result.final_tiles
        reached = False

        for number, text in log.lines():
            result.lines = number
            if not reached and number == self.checkpoint_line:
                reached = True
                result.checkpoint_reached_at = number
                LOG.info("Reached checkpoint at line %d", number)
            if text is None:
                continue

            event = self.parser.parse(text)
            if isinstance(event, ParseError):
                result.malformed += 1
                if result.malformed <= MALFORMED_WARNING_LIMIT:
                    LOG.warning("Malformed line in data (%s): %s", event.reason, text)
                continue

            if not reached and self.checkpoint_time is not None:
                if event.time > self.checkpoint_time:
                    reached = True
                    result.checkpoint_reached_at = number
                    LOG.info("Reached checkpoint time %s at line %d", event.timestamp, number)

            tiles = expand(event.placement)
            if event.author_id == user_id:
                result.placements += 1
                LOG.debug("Found %s tile placed at: %s", event.color, describe(event.placement))
                for tile in tiles:
                    if not reached:
                        checkpoint[tile] = event.color
                    final[tile] = event.timestamp
            else:
                for tile in tiles:
                    if not reached:
                        checkpoint.pop(tile, None)
                    final.pop(tile, None)

        LOG.info(
            "User %s placed %d time(s); %d tile(s) left at checkpoint, %d at end of log",
            user_id,
            result.placements,
            len(checkpoint),
            len(final),
        )
        return result
