"""Class calendar schemas."""

import datetime as dt
from decimal import Decimal
import re
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)

from ._strict_base import StrictRequestModel

_TIME = re.compile(r"^(?:[01]\d|2[0-3]):[0-5]\d$")


def _check_time(value: str) -> str:
    if not _TIME.fullmatch(value):
        raise ValueError("Time must be in HH:MM format")
    return value


def _reject_explicit_nulls(model: BaseModel) -> None:
    """Partial updates may omit a field but not null out a required column."""
    for name in sorted(model.model_fields_set):
        if name != "description" and getattr(model, name) is None:
            raise ValueError(f"{name} cannot be null")


class ClassTemplateCreate(StrictRequestModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0 = Monday")
    time: str
    title: str = Field(..., min_length=1, max_length=200)
    class_type: str = Field(..., min_length=1, max_length=50)
    duration: int = Field(default=60, gt=0, le=600)
    description: Optional[str] = None
    is_active: bool = True

    @field_validator("time")
    @classmethod
    def _validate_time(cls, v: str) -> str:
        return _check_time(v)


class ClassTemplateUpdate(StrictRequestModel):
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    time: Optional[str] = None
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    class_type: Optional[str] = Field(default=None, min_length=1, max_length=50)
    duration: Optional[int] = Field(default=None, gt=0, le=600)
    description: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("time")
    @classmethod
    def _validate_time(cls, v: Optional[str]) -> Optional[str]:
        return _check_time(v) if v is not None else v

    @model_validator(mode="after")
    def _no_nulls(self) -> "ClassTemplateUpdate":
        _reject_explicit_nulls(self)
        return self


class ClassTemplateResponse(BaseModel):
    id: str
    day_of_week: int
    time: str
    title: str
    class_type: str
    duration: int
    description: Optional[str] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class ClassCreate(StrictRequestModel):
    title: str = Field(..., min_length=1, max_length=200)
    class_type: str = Field(..., min_length=1, max_length=50)
    date: dt.date
    time: str
    duration: Optional[int] = Field(default=None, gt=0, le=600)
    capacity: Optional[int] = Field(default=None, gt=0, le=200)
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    description: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("time")
    @classmethod
    def _validate_time(cls, v: str) -> str:
        return _check_time(v)


class ClassUpdate(StrictRequestModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    class_type: Optional[str] = Field(default=None, min_length=1, max_length=50)
    date: Optional[dt.date] = None
    time: Optional[str] = None
    duration: Optional[int] = Field(default=None, gt=0, le=600)
    capacity: Optional[int] = Field(default=None, gt=0, le=200)
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    description: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("time")
    @classmethod
    def _validate_time(cls, v: Optional[str]) -> Optional[str]:
        return _check_time(v) if v is not None else v

    @model_validator(mode="after")
    def _no_nulls(self) -> "ClassUpdate":
        _reject_explicit_nulls(self)
        return self


class ClassResponse(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    class_type: str
    date: dt.date
    time: str
    duration: int
    capacity: int
    booked_count: int
    spots_left: int
    price: Decimal
    is_active: bool
    created_at: Optional[dt.datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("price")
    def _serialize_price(self, value: Decimal) -> str:
        return f"{value:.2f}"
