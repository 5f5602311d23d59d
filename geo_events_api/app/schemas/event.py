"""
Pydantic models for event data.

``EventCreate`` and ``EventUpdate`` describe request bodies,
``EventRead`` is both the API response and the value returned by the
services.  ``EventFilter`` carries list/search parameters after they
have been parsed and checked.

Creation fields are declared optional on purpose: completeness is
checked by ``EventService`` so that a client gets every missing field
back in a single error instead of one at a time.
"""

import math
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..core.errors import InvalidFilterError


def to_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class GeoPoint(BaseModel):
    """A (longitude, latitude) pair in decimal degrees."""

    longitude: float = Field(..., ge=-180, le=180, examples=[2.3522])
    latitude: float = Field(..., ge=-90, le=90, examples=[48.8566])

    def as_tuple(self) -> tuple[float, float]:
        return (self.longitude, self.latitude)


class EventCreate(BaseModel):
    """Schema for creating an event."""

    title: Optional[str] = Field(None, examples=["Jazz in the park"])
    description: Optional[str] = Field(None, examples=["Open air concert"])
    category: Optional[str] = Field(None, examples=["music"])
    date: Optional[datetime] = Field(None, examples=["2025-06-01T19:00:00Z"])
    location: Optional[GeoPoint] = None

    @field_validator("date")
    @classmethod
    def normalize_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_utc(value)


class EventUpdate(BaseModel):
    """Schema for updating an event.

    All fields are optional.  Fields that are absent or falsy (for
    example an empty string) leave the stored value unchanged.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    date: Optional[datetime] = None
    location: Optional[GeoPoint] = None

    @field_validator("date")
    @classmethod
    def normalize_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_utc(value)


class EventRead(BaseModel):
    """Schema for reading an event from the API."""

    id: str
    title: str
    description: str
    category: str
    date: datetime
    location: GeoPoint
    owner_id: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }


class EventFilter(BaseModel):
    """Parsed search parameters.

    Filters combine with AND.  ``near`` restricts results to the
    configured search radius around the point.  Without ``limit``
    every match is returned.
    """

    category: Optional[str] = None
    near: Optional[GeoPoint] = None
    limit: Optional[int] = None
    offset: int = 0

    @classmethod
    def from_query(
        cls,
        category: Optional[str] = None,
        longitude: Optional[str] = None,
        latitude: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> "EventFilter":
        """Build a filter from raw query-string values.

        Raises ``InvalidFilterError`` when only one coordinate is given
        or when a coordinate is not a finite number within range.
        """
        near = None
        if longitude is not None or latitude is not None:
            if longitude is None or latitude is None:
                raise InvalidFilterError(
                    "Both longitude and latitude are required for a proximity search",
                    parameter="longitude" if longitude is None else "latitude",
                )
            lon = _parse_coordinate(longitude, "longitude", 180)
            lat = _parse_coordinate(latitude, "latitude", 90)
            near = GeoPoint(longitude=lon, latitude=lat)
        if limit is not None and limit < 1:
            raise InvalidFilterError("limit must be positive", parameter="limit")
        if offset < 0:
            raise InvalidFilterError("offset must not be negative", parameter="offset")
        return cls(category=category, near=near, limit=limit, offset=offset)


def _parse_coordinate(raw, name: str, bound: float) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise InvalidFilterError(f"{name} must be a number", parameter=name) from None
    if not math.isfinite(value) or not -bound <= value <= bound:
        raise InvalidFilterError(f"{name} must be between -{bound} and {bound}", parameter=name)
    return value
