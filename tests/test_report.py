import json

import numpy as np
import pytest
from PIL import Image

from place_trace.geometry import Point
from place_trace.models import Settings
from place_trace.services.reconstruct import Reconstruction
from place_trace.services.render import parse_color, render_snapshot, snapshot_to_array
from place_trace.services.report import build_report, write_report


def sample_result():
    return Reconstruction(
        user_id="abc",
        placements=3,
        checkpoint_tiles={Point(4, 3): "#FF0000", Point(2, 1): "#00FF00"},
        final_tiles={Point(4, 3): "2022-04-04 00:00:01.000 UTC"},
        checkpoint_reached_at=10,
        lines=20,
    )


def test_report_lists_both_snapshots(tmp_path):
    settings = Settings(target_user="abc", checkpoint_line=10)

    report = build_report(settings, sample_result())
    path = write_report(report, tmp_path / "out" / "report.json")
    loaded = json.loads(path.read_text())

    assert loaded["user_id"] == "abc"
    assert loaded["placements"] == 3
    assert loaded["era"] == "2022"
    assert loaded["checkpoint"]["line"] == 10
    assert loaded["checkpoint"]["tiles"] == [
        {"x": 2, "y": 1, "color": "#00FF00"},
        {"x": 4, "y": 3, "color": "#FF0000"},
    ]
    assert loaded["final"]["tiles"] == [{"x": 4, "y": 3, "timestamp": "2022-04-04 00:00:01.000 UTC"}]
    assert "search" not in loaded


@pytest.mark.parametrize(
    "value, expected",
    [("#6A5CFF", (0x6A, 0x5C, 0xFF)), ("#fff", (255, 255, 255)), ("000000", (0, 0, 0))],
)
def test_parse_color(value, expected):
    assert parse_color(value) == expected


def test_parse_color_rejects_garbage():
    with pytest.raises(ValueError):
        parse_color("#12345")


def test_snapshot_array_is_cropped_to_bounds():
    canvas, origin = snapshot_to_array(sample_result().checkpoint_tiles)

    assert origin == (2, 1)
    assert canvas.shape == (3, 3, 4)
    assert tuple(canvas[0, 0]) == (0, 255, 0, 255)
    assert tuple(canvas[2, 2]) == (255, 0, 0, 255)
    assert canvas[1, 1, 3] == 0


def test_render_snapshot_scales_tiles(tmp_path):
    path = render_snapshot(sample_result().checkpoint_tiles, tmp_path / "tiles.png", scale=2)

    with Image.open(path) as image:
        assert image.size == (6, 6)
        pixels = np.asarray(image)
    assert tuple(pixels[5, 5]) == (255, 0, 0, 255)


def test_render_snapshot_requires_tiles(tmp_path):
    with pytest.raises(ValueError):
        render_snapshot({}, tmp_path / "tiles.png")
