import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from src.data.models import (
    UNKNOWN_DISTANCE,
    PhysicianRecord,
    Point,
    ResultPage,
    SearchCriteria,
    SearchResultItem,
)
from src.utils.addressing import PROVINCES, is_valid_postal_code
from src.utils.config import get_search_config
from src.utils.distance import calculate_distances
from src.utils.errors import LOCATE_FAILED_TEXT, GeocodeError, ValidationError
from src.utils.geocoding import build_origin_query, geocode
from src.utils.providers import filter_physicians, qualifying_locations
from src.utils.rendering import location_marker_key

logger = logging.getLogger(__name__)

__all__ = [
    "SearchOutcome",
    "validate_criteria",
    "resolve_origin",
    "build_result_frame",
    "apply_distances",
    "filter_items_by_radius",
    "sort_result_frame",
    "rank_results",
    "run_search",
    "paginate",
]

MIN_RADIUS_KM = 1


@dataclass(slots=True)
class SearchOutcome:
    """Full ranked result set of one search, before pagination."""

    criteria: SearchCriteria
    items: List[SearchResultItem] = field(default_factory=list)
    origin: Optional[Point] = None
    radius_applied: bool = False
    notice: str = ""
    geocode_error: Optional[GeocodeError] = None

    @property
    def count(self) -> int:
        return len(self.items)


def validate_criteria(criteria: SearchCriteria, max_radius_km: Optional[float] = None) -> None:
    """Reject criteria the engine must never see.

    Raises:
        ValidationError: with a machine-readable ``code``
    """
    if criteria.is_empty:
        raise ValidationError(
            "missing_criteria", "Please provide at least one search criterion (name, city, province or postal code)."
        )
    if criteria.postal_code and not is_valid_postal_code(criteria.postal_code):
        raise ValidationError("invalid_postal", "Please enter a valid postal code (e.g., K1A 0A6).")
    if criteria.province and criteria.province not in PROVINCES:
        raise ValidationError("invalid_province", f"Unknown province: {criteria.province}")
    if criteria.has_location_criteria:
        if max_radius_km is None:
            max_radius_km = get_search_config()["max_radius_km"]
        if not (MIN_RADIUS_KM <= criteria.radius_km <= max_radius_km):
            raise ValidationError(
                "invalid_distance", f"Distance must be between {MIN_RADIUS_KM} and {max_radius_km:g} kilometers."
            )


def resolve_origin(criteria: SearchCriteria, geocoder: Callable[[str], Point] = geocode) -> Optional[Point]:
    """Origin point for a search, or None when no location was given.

    GeocodeError propagates; the caller decides how to degrade.
    """
    if not criteria.has_location_criteria:
        return None
    query = build_origin_query(criteria.city, criteria.province, criteria.postal_code)
    return geocoder(query)


def build_result_frame(criteria: SearchCriteria, physicians: Sequence[PhysicianRecord]) -> pd.DataFrame:
    """One row per (physician, qualifying location).

    A physician without locations gets a single location-less row, but only
    when the search has no location criteria at all.
    """
    rows = []
    for order, physician in enumerate(physicians):
        locations = qualifying_locations(criteria, physician)
        if not physician.locations and not criteria.has_location_criteria:
            rows.append(
                {
                    "Candidate Order": order,
                    "Physician ID": physician.id,
                    "Full Name": physician.name,
                    "Location Index": -1,
                    "Latitude": np.nan,
                    "Longitude": np.nan,
                }
            )
            continue
        for index, location in locations:
            point = location.point
            rows.append(
                {
                    "Candidate Order": order,
                    "Physician ID": physician.id,
                    "Full Name": physician.name,
                    "Location Index": index,
                    "Latitude": point.lat if point else np.nan,
                    "Longitude": point.lng if point else np.nan,
                }
            )

    columns = ["Candidate Order", "Physician ID", "Full Name", "Location Index", "Latitude", "Longitude"]
    df = pd.DataFrame(rows, columns=columns)
    df["Distance (km)"] = UNKNOWN_DISTANCE
    return df


def apply_distances(df: pd.DataFrame, origin: Optional[Point]) -> pd.DataFrame:
    """Fill ``Distance (km)``; rows without coordinates stay unknown (-1)."""
    df = df.copy()
    if origin is None or df.empty:
        df["Distance (km)"] = UNKNOWN_DISTANCE
        return df
    distances = calculate_distances(origin.lat, origin.lng, df, unit="K")
    df["Distance (km)"] = [UNKNOWN_DISTANCE if d is None else d for d in distances]
    return df


def filter_items_by_radius(df: pd.DataFrame, max_radius_km: float) -> pd.DataFrame:
    """Drop rows farther than the radius. Unknown distances are always kept.

    Args:
        df: Result frame with a "Distance (km)" column
        max_radius_km: Maximum distance threshold in kilometers

    Returns:
        pd.DataFrame: Filtered copy
    """
    if df is None or df.empty or "Distance (km)" not in df.columns:
        return df
    distance = df["Distance (km)"]
    keep = (distance < 0) | (distance <= max_radius_km)
    return df[keep].copy()


def sort_result_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Ascending distance, unknown last, then name, physician id, insertion order.

    The sort is stable (mergesort) so fully equal rows keep candidate order.
    """
    if df.empty:
        return df.copy()
    keyed = df.assign(
        _distance_key=df["Distance (km)"].where(df["Distance (km)"] >= 0, np.inf),
        _name_key=df["Full Name"].astype(str).str.casefold(),
    )
    keyed = keyed.sort_values(
        by=["_distance_key", "_name_key", "Physician ID", "Location Index"], kind="mergesort"
    )
    return keyed.drop(columns=["_distance_key", "_name_key"]).reset_index(drop=True)


def _frame_to_items(df: pd.DataFrame, physicians: Sequence[PhysicianRecord]) -> List[SearchResultItem]:
    items = []
    for row in df.to_dict("records"):
        physician = physicians[int(row["Candidate Order"])]
        location_index = int(row["Location Index"])
        location = physician.locations[location_index] if location_index >= 0 else None
        distance = float(row["Distance (km)"])
        items.append(
            SearchResultItem(
                physician=physician,
                location=location,
                location_index=location_index,
                distance=distance,
                marker_key=location_marker_key(physician, location),
            )
        )
    return items


def rank_results(
    criteria: SearchCriteria, physicians: Sequence[PhysicianRecord], origin: Optional[Point]
) -> List[SearchResultItem]:
    """Flatten, measure, cut at the radius and sort the candidate physicians."""
    physicians = list(physicians)
    df = build_result_frame(criteria, physicians)
    df = apply_distances(df, origin)
    if origin is not None:
        df = filter_items_by_radius(df, criteria.effective_radius_km)
    df = sort_result_frame(df)
    return _frame_to_items(df, physicians)


def run_search(
    criteria: SearchCriteria,
    records: Iterable[PhysicianRecord],
    *,
    geocoder: Callable[[str], Point] = geocode,
    ticket=None,
) -> SearchOutcome:
    """Run the complete search workflow.

    1. Validate the criteria (ValidationError escapes to the caller)
    2. Resolve the origin; a geocoding failure degrades to no radius filtering
    3. Filter candidate physicians by structured fields
    4. Measure every qualifying location, cut at the radius, sort

    ``ticket`` is the caller's SearchTicket. Once the origin is known the
    search stops with SearchCancelled if a newer search superseded it.

    Returns:
        SearchOutcome with the full ranked result set
    """
    validate_criteria(criteria)

    notice = ""
    geocode_error = None
    try:
        origin = resolve_origin(criteria, geocoder)
    except GeocodeError as e:
        logger.warning(f"Origin lookup failed ({e.reason.value}); skipping radius filtering: {e}")
        origin = None
        notice = LOCATE_FAILED_TEXT
        geocode_error = e

    if ticket is not None:
        ticket.raise_if_cancelled()

    candidates = filter_physicians(criteria, records)
    items = rank_results(criteria, candidates, origin)

    logger.info(
        f"Search matched {len(candidates)} physicians / {len(items)} locations "
        f"(origin={'resolved' if origin else 'none'}, radius={criteria.effective_radius_km:g} km)"
    )
    return SearchOutcome(
        criteria=criteria,
        items=items,
        origin=origin,
        radius_applied=origin is not None,
        notice=notice,
        geocode_error=geocode_error,
    )


def paginate(items: Sequence[SearchResultItem], page: int = 1, per_page: Optional[int] = None) -> ResultPage:
    """Slice one page out of the ranked result set.

    The requested page is clamped into [1, total_pages]; an empty result set
    has zero pages and always returns page 1.
    """
    if per_page is None:
        per_page = get_search_config()["results_per_page"]
    if per_page < 1:
        raise ValueError("per_page must be at least 1")

    total = len(items)
    total_pages = math.ceil(total / per_page)
    try:
        page = int(page)
    except (TypeError, ValueError):
        page = 1
    page = min(max(page, 1), max(total_pages, 1))

    offset = (page - 1) * per_page
    return ResultPage(
        items=list(items[offset : offset + per_page]),
        page=page,
        per_page=per_page,
        total_items=total,
        total_pages=total_pages,
    )
