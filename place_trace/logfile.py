"""Sequential reader for canvas history exports.

Multi-gigabyte exports are read front to back with a buffered binary handle.
Each line is decoded on its own so a single corrupt row is logged and skipped
instead of aborting the pass.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from place_trace.errors import LogFileError

LOG = logging.getLogger(__name__)

READ_BUFFER_BYTES = 1 << 20


@dataclass
class ReadStats:
    lines: int = 0
    undecodable: int = 0


class CanvasLog:
    """Iterate numbered data lines of a history export, header excluded."""

    def __init__(self, path: Path, encoding: str = "utf-8"):
        self.path = Path(path)
        self.encoding = encoding
        self.stats = ReadStats()

    def lines(self) -> Iterator[Tuple[int, Optional[str]]]:
        """Yield ``(line_number, text)`` from 1; ``text`` is ``None`` for undecodable lines."""
        self.stats = ReadStats()
        try:
            handle = self.path.open("rb", buffering=READ_BUFFER_BYTES)
        except OSError as exc:
            raise LogFileError(
                f"Failed to open canvas history {self.path}.",
                {"path": str(self.path), "error": str(exc)},
            ) from exc

        with handle:
            header = handle.readline()
            if not header:
                raise LogFileError("Could not skip CSV header; file is empty.", {"path": str(self.path)})
            LOG.debug("Skipped header %r", header[:80])

            for number, raw in enumerate(handle, start=1):
                self.stats.lines = number
                try:
                    text = raw.decode(self.encoding)
                except UnicodeDecodeError as exc:
                    self.stats.undecodable += 1
                    LOG.warning("Failed to obtain line %d from tile data: %s", number, exc)
                    yield number, None
                    continue
                yield number, text.rstrip("\r\n")

    def batches(self, size: int) -> Iterator[List[str]]:
        """Group decodable lines into lists of at most ``size`` entries."""
        batch: List[str] = []
        for _number, text in self.lines():
            if text is None:
                continue
            batch.append(text)
            if len(batch) >= size:
                yield batch
                batch = []
        if batch:
            yield batch
