"""Pydantic bases for API payloads; every DTO forbids unknown fields."""

from pydantic import BaseModel, ConfigDict


class StrictModel(BaseModel):
    """Response DTO base."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class OrmModel(StrictModel):
    """Response DTO read straight off an ORM row (stats, reviews)."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True, from_attributes=True)


class StrictRequestModel(StrictModel):
    """Request body base; surrounding whitespace in strings is dropped."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True, str_strip_whitespace=True)
