import math
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .formats import DEFAULT_FORMAT_VERSION


class PipelineOptions(BaseModel):
    """Options steering one ``run_pipeline`` call."""

    model_config = ConfigDict(frozen=True)

    na: float = math.nan
    clutter: float = math.nan
    selection: tuple[int, ...] | None = None
    stack: bool = True
    projection: str | None = None
    crs: str | None = None
    extent: tuple[float, float, float, float] | None = None
    reproject_to_geographic: bool = False
    process_mode: Literal["sequential", "parallel"] = "sequential"
    batch_size: int | None = Field(default=None, gt=0)
    scheduler: Literal["threads", "processes", "synchronous"] = "threads"
    staging_dir: str | None = None
    on_member_error: Literal["raise", "skip"] = "raise"
    divide_by_ten: bool = True
    encoding: str = "latin-1"
    format_version: str = DEFAULT_FORMAT_VERSION
    member_pattern: str | None = None
    log_file: str | None = None

    @field_validator("selection")
    @classmethod
    def _check_selection(cls, value):
        if value is None:
            return value
        if len(set(value)) != len(value):
            raise ValueError(f"selection contains duplicate positions: {value}")
        if any(pos < 1 for pos in value):
            raise ValueError(f"selection positions are 1-based, got {value}")
        return value
