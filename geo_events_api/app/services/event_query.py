"""
Event search.

``EventQueryEngine.search`` returns an ``EventQuery``: nothing runs
until it is iterated, and iterating it again runs the query again.
Results within ``near`` searches are ordered by distance (nearest
first); all other searches are ordered by date.
"""

from typing import Iterator, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ..core.config import settings
from ..core.errors import InvalidFilterError
from ..schemas.event import EventFilter, EventRead, GeoPoint
from .event_store import EventStore


class EventQuery:
    """Lazy, restartable result of a search."""

    def __init__(self, store: EventStore, event_filter: EventFilter, radius_meters: float) -> None:
        self._store = store
        self.filter = event_filter
        self.radius_meters = radius_meters

    def __iter__(self) -> Iterator[EventRead]:
        return self._store.query(self.filter, self.radius_meters)

    def all(self) -> list[EventRead]:
        return list(self)


class EventQueryEngine:
    def __init__(self, store: EventStore, radius_meters: Optional[float] = None) -> None:
        self._store = store
        self.radius_meters = radius_meters if radius_meters is not None else settings.search_radius_meters

    def search(self, event_filter: Union[EventFilter, Mapping, None] = None) -> EventQuery:
        """Build a query for ``event_filter``.

        ``event_filter`` may be an ``EventFilter`` or a mapping with the
        keys ``category`` and ``near``; ``near`` may be a ``GeoPoint``,
        a ``(longitude, latitude)`` pair or a mapping with ``longitude``
        and ``latitude`` (``lon``/``lat`` are accepted too).
        """
        if event_filter is None:
            event_filter = EventFilter()
        elif not isinstance(event_filter, EventFilter):
            event_filter = _filter_from_mapping(event_filter)
        return EventQuery(self._store, event_filter, self.radius_meters)


def _filter_from_mapping(options: Mapping) -> EventFilter:
    unknown = set(options) - {"category", "near", "limit", "offset"}
    if unknown:
        raise InvalidFilterError(f"Unknown filter options: {', '.join(sorted(unknown))}")
    category = options.get("category")
    if category is not None and not isinstance(category, str):
        raise InvalidFilterError("category must be a string", parameter="category")
    near = options.get("near")
    longitude = latitude = None
    if isinstance(near, GeoPoint):
        longitude, latitude = near.as_tuple()
    elif isinstance(near, Mapping):
        longitude = near.get("longitude", near.get("lon"))
        latitude = near.get("latitude", near.get("lat"))
        if longitude is None or latitude is None:
            raise InvalidFilterError("near requires longitude and latitude", parameter="near")
    elif isinstance(near, (tuple, list)):
        if len(near) != 2:
            raise InvalidFilterError("near must be a (longitude, latitude) pair", parameter="near")
        longitude, latitude = near
    elif near is not None:
        raise InvalidFilterError("near must be a point", parameter="near")
    for value in (longitude, latitude):
        # bool is an int subclass; reject it and anything not numeric-like.
        if isinstance(value, bool) or not isinstance(value, (int, float, str, type(None))):
            raise InvalidFilterError("Coordinates must be numbers", parameter="near")
    try:
        return EventFilter.from_query(
            category=category,
            longitude=longitude,
            latitude=latitude,
            limit=options.get("limit"),
            offset=options.get("offset", 0),
        )
    except (PydanticValidationError, TypeError) as exc:
        raise InvalidFilterError(f"Invalid filter: {exc}") from exc
