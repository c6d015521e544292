"""Pure geometry and time-lookup kernel used by preprocessing and playback.

Nothing in this package holds state; every function is safe to call from any
stage of the pipeline and returns a typed result for degraded input.
"""

from .models import ClosestPoint, DeviationSegment, InterpolatedPosition, RouteVariance
from .distance import (
    EARTH_RADIUS_M,
    calculate_distance,
    calculate_polyline_distance,
    compute_bearing,
    compute_cumulative_distances,
    compute_route_variance,
    haversine_array,
)
from .search import binary_search_position, interpolate_position
from .deviation import closest_point_on_polyline, detect_deviations

__all__ = [
    "ClosestPoint",
    "DeviationSegment",
    "InterpolatedPosition",
    "RouteVariance",
    "EARTH_RADIUS_M",
    "calculate_distance",
    "calculate_polyline_distance",
    "compute_bearing",
    "compute_cumulative_distances",
    "compute_route_variance",
    "haversine_array",
    "binary_search_position",
    "interpolate_position",
    "closest_point_on_polyline",
    "detect_deviations",
]
