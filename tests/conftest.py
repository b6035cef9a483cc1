from pathlib import Path
from typing import Iterable

import pytest

HEADER_2022 = "timestamp,user_id,pixel_color,coordinate"
HEADER_2023 = "timestamp,user,coordinate,pixel_color"


def row(ts: str, user: str, color: str, coordinate: str) -> str:
    """A 2022-layout history line."""
    return f'{ts},{user},{color},"{coordinate}"'


def row_2023(ts: str, user: str, coordinate: str, color: str) -> str:
    return f'{ts},{user},"{coordinate}",{color}'


def stamp(second: int) -> str:
    return f"2022-04-04 00:{second // 60:02d}:{second % 60:02d}.000 UTC"


@pytest.fixture
def write_log(tmp_path: Path):
    def _write(lines: Iterable[str], header: str = HEADER_2022, name: str = "history.csv") -> Path:
        path = tmp_path / name
        path.write_text("\n".join([header, *lines]) + "\n", encoding="utf-8")
        return path

    return _write
