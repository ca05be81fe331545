"""Admin dashboard schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class AdminStatsResponse(BaseModel):
    total_classes: int
    classes_this_week: int
    total_bookings: int
    total_members: int


class SecurityEventResponse(BaseModel):
    timestamp: datetime
    ip: str
    type: str
    details: str

    model_config = ConfigDict(from_attributes=True)


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    environment: str
    timestamp: str
    database: str
