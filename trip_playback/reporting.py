"""Tabular views of a normalized trip and an Excel trip report writer."""

from __future__ import annotations

import logging
from os import PathLike
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.worksheet.worksheet import Worksheet

from .geometry import compute_route_variance
from .models import NormalizedTrip
from .utils import format_distance, format_duration, speed_to_kmh

LOGGER = logging.getLogger(__name__)

SUMMARY_SHEET = "Summary"
STOPS_SHEET = "Stops"
EVENTS_SHEET = "Events"
GPS_SHEET = "GPS"
EXCEL_DATETIME_FORMAT = "yyyy-mm-dd hh:mm:ss"

HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(patternType="solid", fgColor="FFD9E1F2")
HEADER_BORDER = Border(
    left=Side(style="thin", color="000000"),
    right=Side(style="thin", color="000000"),
    top=Side(style="thin", color="000000"),
    bottom=Side(style="thin", color="000000"),
)

PathInput = str | Path | PathLike[str]


def _to_datetime(values: Any) -> Any:
    return pd.to_datetime(values, unit="ms")


def summary_frame(trip: NormalizedTrip) -> pd.DataFrame:
    """One row per metric: timing, distance, stops, deviations and route variance."""

    analytics = trip.analytics
    actual_route = [(pos.lng, pos.lat) for pos in trip.gps]
    variance = compute_route_variance(actual_route, trip.planned_route)
    deviations = [event for event in trip.events if event.type == "deviation"]
    duration_s = trip.duration_ms / 1000
    rows: List[Dict[str, Any]] = [
        {"Metric": "Trip", "Value": trip.id},
        {"Metric": "Batch", "Value": trip.batch_id},
        {"Metric": "Start", "Value": _to_datetime(trip.start_time)},
        {"Metric": "End", "Value": _to_datetime(trip.end_time)},
        {"Metric": "Duration", "Value": format_duration(duration_s)},
        {"Metric": "GPS Points", "Value": len(trip.gps)},
        {"Metric": "Distance", "Value": format_distance(trip.total_distance_m)},
        {"Metric": "Moving Time", "Value": format_duration(analytics.moving_time)},
        {"Metric": "Idle Time", "Value": format_duration(analytics.idle_time)},
        {"Metric": "Stops", "Value": len(trip.stops)},
        {"Metric": "Completed Stops", "Value": analytics.completed_stops},
        {"Metric": "Delays", "Value": analytics.delays},
        {"Metric": "Deviations", "Value": len(deviations)},
    ]
    if trip.planned_route:
        rows.append(
            {
                "Metric": "Planned Distance",
                "Value": format_distance(variance.planned_distance),
            }
        )
        rows.append(
            {
                "Metric": "Route Variance (%)",
                "Value": round(variance.variance_percent, 1),
            }
        )
    return pd.DataFrame(rows, columns=["Metric", "Value"])


def stops_frame(trip: NormalizedTrip) -> pd.DataFrame:
    columns = [
        "Stop",
        "Facility ID",
        "Facility",
        "Status",
        "Arrival",
        "Departure",
        "Dwell (sec)",
        "Proof Captured",
        "Longitude",
        "Latitude",
    ]
    rows = [
        {
            "Stop": stop.stop_index + 1,
            "Facility ID": stop.facility_id,
            "Facility": stop.facility_name,
            "Status": stop.status,
            "Arrival": _to_datetime(stop.arrival_time),
            "Departure": (
                _to_datetime(stop.departure_time)
                if stop.departure_time is not None
                else None
            ),
            "Dwell (sec)": stop.dwell_time,
            "Proof Captured": stop.proof_captured,
            "Longitude": stop.location[0],
            "Latitude": stop.location[1],
        }
        for stop in trip.stops
    ]
    return pd.DataFrame(rows, columns=columns)


def events_frame(trip: NormalizedTrip) -> pd.DataFrame:
    columns = ["Event ID", "Type", "Start", "End", "Severity", "Facility", "Longitude", "Latitude"]
    rows = [
        {
            "Event ID": event.id,
            "Type": event.type,
            "Start": _to_datetime(event.start_time),
            "End": _to_datetime(event.end_time) if event.end_time is not None else None,
            "Severity": event.metadata.get("severity"),
            "Facility": event.metadata.get("facility_name"),
            "Longitude": event.location[0],
            "Latitude": event.location[1],
        }
        for event in trip.events
    ]
    return pd.DataFrame(rows, columns=columns)


def gps_frame(trip: NormalizedTrip) -> pd.DataFrame:
    frame = pd.DataFrame(
        {
            "Time": _to_datetime([pos.timestamp for pos in trip.gps]),
            "Latitude": [pos.lat for pos in trip.gps],
            "Longitude": [pos.lng for pos in trip.gps],
            "Heading": [pos.heading for pos in trip.gps],
            "Speed (km/h)": [speed_to_kmh(pos.speed) for pos in trip.gps],
            "Distance (m)": trip.cumulative_distances,
        }
    )
    return frame


def _style_header_row(ws: Worksheet, column_count: int) -> None:
    for col in range(1, column_count + 1):
        cell = ws.cell(row=1, column=col)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.border = HEADER_BORDER


def _autosize(ws: Worksheet) -> None:
    from .config import (
        EXCEL_AUTOSIZE_COLUMNS,
        EXCEL_AUTOSIZE_MAX_ROWS,
        EXCEL_AUTOSIZE_MAX_WIDTH,
        EXCEL_AUTOSIZE_MIN_WIDTH,
        EXCEL_AUTOSIZE_PADDING,
    )

    if not EXCEL_AUTOSIZE_COLUMNS or ws.max_row > EXCEL_AUTOSIZE_MAX_ROWS:
        return
    for col_cells in ws.columns:
        col_letter = getattr(col_cells[0], "column_letter", None)
        max_len = max(
            (len(str(cell.value)) for cell in col_cells if cell.value is not None),
            default=0,
        )
        width = min(
            EXCEL_AUTOSIZE_MAX_WIDTH,
            max(EXCEL_AUTOSIZE_MIN_WIDTH, max_len + EXCEL_AUTOSIZE_PADDING),
        )
        if col_letter:
            ws.column_dimensions[col_letter].width = width


def write_trip_report(
    filepath: PathInput,
    trip: NormalizedTrip,
    *,
    include_gps: bool = False,
) -> Path:
    """Write summary, stops and events (optionally the GPS trace) to an Excel file."""

    path = Path(filepath)
    sheets = [
        (SUMMARY_SHEET, summary_frame(trip)),
        (STOPS_SHEET, stops_frame(trip)),
        (EVENTS_SHEET, events_frame(trip)),
    ]
    if include_gps:
        sheets.append((GPS_SHEET, gps_frame(trip)))

    with pd.ExcelWriter(
        path, engine="openpyxl", datetime_format=EXCEL_DATETIME_FORMAT
    ) as writer:
        for sheet_name, frame in sheets:
            frame.to_excel(writer, sheet_name=sheet_name, index=False)
            ws = writer.sheets.get(sheet_name)
            if ws is None:
                continue
            _style_header_row(ws, len(frame.columns))
            _autosize(ws)
            LOGGER.info("Wrote sheet %s rows=%d", sheet_name, len(frame))
    return path
