"""Read data-service exports (driver event rows, planned routes) from disk."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional

from polyline import decode as polyline_decode

from .analytics import build_playback_data
from .errors import TripDataError
from .models import LngLat, Polyline, RawEvent, RawPlaybackData
from .utils import parse_timestamp

LOGGER = logging.getLogger(__name__)

PathInput = str | Path


def _coordinates(row: Mapping[str, Any]) -> LngLat:
    location = row.get("location")
    coords = location.get("coordinates") if isinstance(location, Mapping) else None
    if not coords or len(coords) < 2:
        return (0.0, 0.0)
    try:
        return (float(coords[0]), float(coords[1]))
    except (TypeError, ValueError):
        return (0.0, 0.0)


def parse_event_row(row: Mapping[str, Any]) -> RawEvent:
    """Convert one ``driver_events`` row into a :class:`RawEvent`.

    Raises:
        TripDataError: If the row lacks an id, event type or a parseable
            ``recorded_at`` timestamp.
    """

    event_id = row.get("id")
    event_type = row.get("event_type")
    timestamp = parse_timestamp(row.get("recorded_at"))
    if not event_id or not event_type or timestamp is None:
        raise TripDataError(
            f"Event row is missing id, event_type or recorded_at: {dict(row)!r}"
        )
    metadata = row.get("metadata")
    if not isinstance(metadata, Mapping):
        metadata = {}
    driver = row.get("driver")
    driver_name = driver.get("name") if isinstance(driver, Mapping) else None
    return RawEvent(
        id=str(event_id),
        timestamp=timestamp,
        event_type=str(event_type),
        location=_coordinates(row),
        driver_id=row.get("driver_id"),
        driver_name=driver_name,
        batch_id=row.get("batch_id"),
        facility_id=metadata.get("facility_id"),
        facility_name=metadata.get("facility_name"),
        driver_status=row.get("driver_status"),
        metadata=dict(metadata),
    )


def parse_event_rows(rows: Iterable[Mapping[str, Any]]) -> List[RawEvent]:
    return [parse_event_row(row) for row in rows]


def _read_json(path: PathInput) -> Any:
    file_path = Path(path)
    if not file_path.is_file():
        raise FileNotFoundError(f"Export not found: {file_path}")
    try:
        with file_path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except json.JSONDecodeError as exc:
        raise TripDataError(f"Invalid JSON in {file_path}: {exc}") from exc


def load_playback_data(
    path: PathInput,
    batch_id: Optional[str] = None,
) -> RawPlaybackData:
    """Load an exported event list (a JSON array or ``{"events": [...]}``)."""

    payload = _read_json(path)
    if isinstance(payload, Mapping):
        payload = payload.get("events")
    if not isinstance(payload, list):
        raise TripDataError(f"Expected a list of event rows in {path}")
    events = parse_event_rows(payload)
    LOGGER.info("Loaded %d events from %s", len(events), path)
    return build_playback_data(events, batch_id)


def decode_planned_route(value: Any) -> Polyline:
    """Return a ``(lng, lat)`` polyline from an encoded string or coordinate list.

    Encoded polylines use the Google ``(lat, lng)`` convention and are
    swapped into ``(lng, lat)`` order.
    """

    if value is None or value == "":
        return []
    if isinstance(value, str):
        try:
            decoded = polyline_decode(value)
        except (ValueError, TypeError, IndexError) as exc:
            raise TripDataError("Unable to decode planned route polyline") from exc
        return [(float(lng), float(lat)) for lat, lng in decoded]
    if isinstance(value, Mapping):
        return decode_planned_route(value.get("coordinates"))
    try:
        return [(float(point[0]), float(point[1])) for point in value]
    except (TypeError, ValueError, IndexError) as exc:
        raise TripDataError("Planned route must be a list of [lng, lat] pairs") from exc


def load_planned_route(path: PathInput) -> Polyline:
    """Load a planned route stored as JSON (list, GeoJSON line, or encoded string)."""

    file_path = Path(path)
    if file_path.suffix.lower() not in {".json", ".geojson"}:
        if not file_path.is_file():
            raise FileNotFoundError(f"Planned route not found: {file_path}")
        return decode_planned_route(file_path.read_text(encoding="utf-8").strip())
    return decode_planned_route(_read_json(file_path))
