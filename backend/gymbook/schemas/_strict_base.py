"""Strict schema baselines: unknown fields are rejected with a 400."""

from pydantic import BaseModel, ConfigDict


class StrictRequestModel(BaseModel):
    """Request body base; a member cannot smuggle in is_admin or booked_count."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)
