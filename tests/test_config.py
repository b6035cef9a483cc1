from datetime import datetime, timezone
from pathlib import Path

import pytest

from place_trace.config import environment_overrides, load_settings
from place_trace.errors import ConfigError
from place_trace.geometry import Rectangle
from place_trace.parser import Era

CONFIG = """
csv_location = "history.csv"
era = "2023"
no_edits_outside = false
checkpoint_line = 42

[[search_areas]]
start = { x = 1349, y = 1718 }
end = { x = 1424, y = 1752 }

[[search_areas]]
bounds = [-20, -20, 30, 30]
start_time = "2023-07-20 13:00:00 UTC"
end_time = "2023-07-21 13:00:00.500 UTC"
colors = ["#ff4500", " #FFFFFF "]
optional = true
"""


def write_config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.toml"
    path.write_text(text)
    return path


def test_loads_toml_settings(tmp_path):
    settings = load_settings(write_config(tmp_path, CONFIG), environ={})

    assert settings.csv_location == Path("history.csv")
    assert settings.era is Era.PLACE_2023
    assert settings.no_edits_outside is False
    assert settings.checkpoint_line == 42

    first, second = settings.areas()
    assert first.region == Rectangle(top=1718, left=1349, bottom=1752, right=1424)
    assert not first.optional
    assert second.region == Rectangle(top=-20, left=-20, bottom=30, right=30)
    assert second.colors == frozenset({"#FF4500", "#FFFFFF"})
    assert second.optional
    assert second.start_time.hour == 13
    assert second.end_time.microsecond == 500000


def test_defaults_follow_the_2022_dataset(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    settings = load_settings(overrides={"target_user": "abc"}, environ={})

    assert settings.csv_location == Path("2022_place_canvas_history.csv")
    assert settings.era is Era.PLACE_2022
    assert settings.no_edits_outside is True
    assert settings.checkpoint_line is None
    assert settings.checkpoint_time == "2022-04-04 21:32:37.541 UTC"
    assert settings.checkpoint_moment() == datetime(2022, 4, 4, 21, 32, 37, 541000, tzinfo=timezone.utc)


def test_explicit_checkpoint_line_replaces_the_whiteout_default(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    settings = load_settings(overrides={"target_user": "abc", "checkpoint_line": 7}, environ={})

    assert settings.checkpoint_line == 7
    assert settings.checkpoint_time is None


def test_2023_has_no_default_checkpoint(tmp_path):
    settings = load_settings(write_config(tmp_path, 'era = "2023"\ntarget_user = "abc"\n'), environ={})

    assert settings.checkpoint_time is None
    assert settings.checkpoint_moment() is None


def test_environment_and_overrides_win(tmp_path):
    path = write_config(tmp_path, CONFIG)

    settings = load_settings(
        path,
        overrides={"csv_location": Path("cli.csv"), "workers": None},
        environ={"PLACE_TRACE_CSV": "env.csv", "PLACE_TRACE_WORKERS": "3"},
    )

    assert settings.csv_location == Path("cli.csv")
    assert settings.workers == 3


def test_environment_overrides_skip_empty_values():
    assert environment_overrides({"PLACE_TRACE_CSV": "", "PLACE_TRACE_WORKERS": " 8 "}) == {"workers": "8"}


def test_missing_explicit_file_is_an_error(tmp_path):
    with pytest.raises(ConfigError):
        load_settings(tmp_path / "nope.toml", environ={})


def test_invalid_toml_is_an_error(tmp_path):
    with pytest.raises(ConfigError):
        load_settings(write_config(tmp_path, "csv_location = "), environ={})


@pytest.mark.parametrize(
    "text",
    [
        'era = "2017"\ntarget_user = "a"',
        "checkpoint_line = 0\ntarget_user = 'a'",
        "checkpoint_time = 'noon'\ntarget_user = 'a'",
        "[[search_areas]]\nstart = { x = 1, y = 1 }",
        "[[search_areas]]\nbounds = [1, 2, 3]",
        "[[search_areas]]\nbounds = [1, 2, 3, 4]\nstart_time = '2022-04-04'",
        "[[search_areas]]\nbounds = [1, 2, 3, 4]\nstart = { x = 1, y = 1 }\nend = { x = 2, y = 2 }",
        "no_edits_outside = true",
    ],
)
def test_invalid_settings_raise_config_error(tmp_path, text):
    with pytest.raises(ConfigError) as excinfo:
        load_settings(write_config(tmp_path, text), environ={})

    assert excinfo.value.context["errors"]


def test_blank_target_user_means_search(tmp_path):
    text = 'target_user = "  "\n' + CONFIG

    settings = load_settings(write_config(tmp_path, text), environ={})

    assert settings.target_user is None
