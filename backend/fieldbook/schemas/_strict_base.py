"""Strict schema baselines with forbidden extras by default."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from ..core.timezone_utils import as_utc


class StrictModel(BaseModel):
    """Neutral strict base for response DTOs."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class StrictRequestModel(StrictModel):
    """Request DTO base that always forbids unexpected fields."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class OrmResponseModel(StrictModel):
    """Response DTO read from ORM rows; naive timestamps are stored UTC."""

    model_config = ConfigDict(from_attributes=True, **StrictModel.model_config)

    @field_validator("*", mode="after")
    @classmethod
    def _utc_datetimes(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return as_utc(value)
        return value
