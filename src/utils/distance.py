"""Great-circle distance between practice locations and a search origin.

Both the scalar and the vectorised form use the spherical law of cosines on
degrees, converted to statute miles (1 minute of arc = 1.1515 mi) and then
to the requested unit, rounded to two decimals.
"""
import math
from typing import List, Optional

import numpy as np
import pandas as pd

MILES_PER_DEGREE = 60 * 1.1515
KM_PER_MILE = 1.609344
NAUTICAL_PER_MILE = 0.8684

_UNIT_FACTORS = {"K": KM_PER_MILE, "M": 1.0, "N": NAUTICAL_PER_MILE}


def _unit_factor(unit: str) -> float:
    try:
        return _UNIT_FACTORS[unit.upper()]
    except (KeyError, AttributeError):
        raise ValueError(f"Unsupported distance unit: {unit!r}") from None


def distance(point_a, point_b, unit: str = "K") -> float:
    """Distance between two points (anything with ``lat``/``lng``).

    Identical points give exactly 0.0: the cosine argument is clamped into
    [-1, 1] before ``acos`` so rounding noise cannot leave its domain.
    """
    factor = _unit_factor(unit)
    lat1 = math.radians(point_a.lat)
    lat2 = math.radians(point_b.lat)
    theta = math.radians(point_a.lng - point_b.lng)

    cos_angle = math.sin(lat1) * math.sin(lat2) + math.cos(lat1) * math.cos(lat2) * math.cos(theta)
    cos_angle = min(1.0, max(-1.0, cos_angle))
    degrees = math.degrees(math.acos(cos_angle))

    result = round(degrees * MILES_PER_DEGREE * factor, 2)
    return result + 0.0  # normalises -0.0


def calculate_distances(
    origin_lat: float, origin_lng: float, location_df: pd.DataFrame, unit: str = "K"
) -> List[Optional[float]]:
    """Distances from an origin to every row of a frame with Latitude/Longitude.

    Rows with missing coordinates yield None.
    """
    factor = _unit_factor(unit)
    if location_df.empty:
        return []

    lat_arr = np.radians(location_df["Latitude"].to_numpy(dtype=float))
    lng_arr = np.radians(location_df["Longitude"].to_numpy(dtype=float))
    origin_lat_rad = np.radians(origin_lat)
    origin_lng_rad = np.radians(origin_lng)

    valid = ~np.isnan(lat_arr) & ~np.isnan(lng_arr)
    cos_angle = np.sin(origin_lat_rad) * np.sin(lat_arr[valid]) + np.cos(origin_lat_rad) * np.cos(
        lat_arr[valid]
    ) * np.cos(origin_lng_rad - lng_arr[valid])
    degrees = np.degrees(np.arccos(np.clip(cos_angle, -1.0, 1.0)))

    distances = np.full(len(location_df), np.nan)
    distances[valid] = np.round(degrees * MILES_PER_DEGREE * factor, 2)

    return [None if np.isnan(d) else float(d) + 0.0 for d in distances]
