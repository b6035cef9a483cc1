from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping, Tuple

import numpy as np
from PIL import Image

from place_trace.geometry import Point

LOG = logging.getLogger(__name__)


def parse_color(value: str) -> Tuple[int, int, int]:
    """``#RRGGBB`` or ``#RGB`` to an RGB tuple."""
    text = value.strip().lstrip("#")
    if len(text) == 3:
        text = "".join(ch * 2 for ch in text)
    if len(text) != 6:
        raise ValueError(f"Unsupported color {value!r}")
    return (int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16))


def snapshot_bounds(tiles: Mapping[Point, str]) -> Tuple[int, int, int, int]:
    xs = [tile.x for tile in tiles]
    ys = [tile.y for tile in tiles]
    return (min(xs), min(ys), max(xs), max(ys))


def snapshot_to_array(tiles: Mapping[Point, str]) -> Tuple[np.ndarray, Tuple[int, int]]:
    """Paint tiles into an RGBA array cropped to their bounds; returns the array and its origin."""
    min_x, min_y, max_x, max_y = snapshot_bounds(tiles)
    canvas = np.zeros((max_y - min_y + 1, max_x - min_x + 1, 4), dtype=np.uint8)
    for tile, color in tiles.items():
        try:
            rgb = parse_color(color)
        except ValueError:
            LOG.warning("Skipping tile %d,%d with unreadable color %r", tile.x, tile.y, color)
            continue
        canvas[tile.y - min_y, tile.x - min_x] = (*rgb, 255)
    return canvas, (min_x, min_y)


def render_snapshot(tiles: Mapping[Point, str], output_path: Path, scale: int = 1) -> Path:
    if not tiles:
        raise ValueError("No tiles to render.")
    canvas, origin = snapshot_to_array(tiles)
    image = Image.fromarray(canvas)
    if scale > 1:
        image = image.resize((image.width * scale, image.height * scale), Image.Resampling.NEAREST)
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    image.save(output_path)
    LOG.info("Saved %d tile(s) from origin %d,%d to %s", len(tiles), origin[0], origin[1], output_path)
    return output_path
