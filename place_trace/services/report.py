"""JSON manifest of a trace run."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from place_trace.models import Settings
from place_trace.services.reconstruct import Reconstruction
from place_trace.services.scanner import ScanResult

LOG = logging.getLogger(__name__)


def build_report(
    settings: Settings,
    reconstruction: Reconstruction,
    scan: Optional[ScanResult] = None,
) -> Dict[str, Any]:
    report: Dict[str, Any] = {
        "generated_at": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "csv_location": str(settings.csv_location),
        "era": settings.era.value,
        "user_id": reconstruction.user_id,
        "placements": reconstruction.placements,
        "checkpoint": {
            "line": settings.checkpoint_line,
            "time": settings.checkpoint_time,
            "reached_at_line": reconstruction.checkpoint_reached_at,
            "tiles": [
                {"x": tile.x, "y": tile.y, "color": color}
                for tile, color in sorted(reconstruction.checkpoint_tiles.items(), key=_tile_key)
            ],
        },
        "final": {
            "lines": reconstruction.lines,
            "tiles": [
                {"x": tile.x, "y": tile.y, "timestamp": timestamp}
                for tile, timestamp in sorted(reconstruction.final_tiles.items(), key=_tile_key)
            ],
        },
    }
    if scan is not None:
        report["search"] = {
            "candidates": list(scan.candidates),
            "passes": {name: stats.as_dict() for name, stats in scan.passes.items()},
        }
    return report


def write_report(report: Dict[str, Any], path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report, indent=2))
    LOG.info("Wrote report to %s", path)
    return path


def _tile_key(item):
    tile = item[0]
    return (tile.y, tile.x)
