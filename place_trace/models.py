from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from place_trace.events import SearchArea, parse_timestamp
from place_trace.geometry import Rectangle
from place_trace.parser import Era

LOG = logging.getLogger(__name__)

# Moment of the end-of-event whiteout, used when no checkpoint is configured.
WHITEOUT_TIMES = {
    Era.PLACE_2022: "2022-04-04 21:32:37.541 UTC",
}


class TileLocationConfig(BaseModel):
    x: int
    y: int


class SearchAreaConfig(BaseModel):
    start: Optional[TileLocationConfig] = Field(default=None, description="Top-left tile of the area")
    end: Optional[TileLocationConfig] = Field(default=None, description="Bottom-right tile of the area")
    bounds: Optional[List[int]] = Field(
        default=None,
        min_length=4,
        max_length=4,
        description="Alternative to start/end: [left, top, right, bottom]",
    )
    start_time: Optional[str] = Field(default=None, description="Ignore edits before this time")
    end_time: Optional[str] = Field(default=None, description="Ignore edits after this time")
    colors: List[str] = Field(default_factory=list, description="Only count edits in these colors")
    optional: bool = Field(default=False, description="Candidates need not have touched this area")

    @field_validator("start_time", "end_time")
    @classmethod
    def check_time(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            parse_timestamp(value)
        return value

    @model_validator(mode="after")
    def check_region(self) -> "SearchAreaConfig":
        if self.bounds is None and (self.start is None or self.end is None):
            raise ValueError("search area needs either start and end, or bounds")
        if self.bounds is not None and (self.start is not None or self.end is not None):
            raise ValueError("search area takes start/end or bounds, not both")
        return self

    def region(self) -> Rectangle:
        if self.bounds is not None:
            return Rectangle.from_corners(*self.bounds)
        return Rectangle.from_corners(self.start.x, self.start.y, self.end.x, self.end.y)

    def to_area(self) -> SearchArea:
        region = self.region()
        if not region.is_ordered:
            LOG.warning(
                "Search area %s has start after end; nothing will match it.",
                region.as_bounds(),
            )
        return SearchArea(
            region=region,
            start_time=parse_timestamp(self.start_time) if self.start_time else None,
            end_time=parse_timestamp(self.end_time) if self.end_time else None,
            colors=frozenset(color.strip().upper() for color in self.colors if color.strip()),
            optional=self.optional,
        )


class Settings(BaseModel):
    csv_location: Path = Field(default=Path("2022_place_canvas_history.csv"))
    era: Era = Field(default=Era.PLACE_2022, description="Dataset era; selects the line layout")
    target_user: Optional[str] = Field(default=None, description="Skip the search and trace this user")
    search_areas: List[SearchAreaConfig] = Field(default_factory=list)
    no_edits_outside: bool = Field(default=True, description="Drop users with edits outside every area")
    checkpoint_line: Optional[int] = Field(default=None, ge=1, description="Line number of the whiteout")
    checkpoint_time: Optional[str] = Field(default=None, description="Time of the whiteout; later edits are post-checkpoint")
    workers: Optional[int] = Field(default=None, ge=1)
    batch_size: int = Field(default=2048, ge=1)

    @field_validator("checkpoint_time")
    @classmethod
    def check_checkpoint_time(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            parse_timestamp(value)
        return value

    @field_validator("target_user")
    @classmethod
    def blank_user(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value.strip() if value else value

    @model_validator(mode="after")
    def default_checkpoint(self) -> "Settings":
        if self.checkpoint_line is None and self.checkpoint_time is None:
            self.checkpoint_time = WHITEOUT_TIMES.get(self.era)
        return self

    @model_validator(mode="after")
    def need_areas(self) -> "Settings":
        if self.target_user is None and not self.search_areas:
            raise ValueError("search_areas must list at least one area when no target_user is given")
        return self

    def areas(self) -> List[SearchArea]:
        return [area.to_area() for area in self.search_areas]

    def checkpoint_moment(self) -> Optional[datetime]:
        return parse_timestamp(self.checkpoint_time) if self.checkpoint_time else None
