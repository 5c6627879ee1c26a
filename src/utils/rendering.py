"""List and map projections of a ranked result set.

The list shows one page at a time, grouped by physician; the map shows a
marker for every located item of the whole result set. Both sides identify an
item by its OrgMarkerKey, which is recomputed from display strings rather than
looked up, so a list entry on any page resolves to a marker already on the map.
"""

from __future__ import annotations

import html
import math
import zlib
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence, Set

import pandas as pd
import plotly.express as px

from src.data.models import PhysicianRecord, PracticeLocation, ResultPage, SearchResultItem
from src.utils.io_utils import format_phone_number

SINGLE_MARKER_ZOOM = 15
DEFAULT_ZOOM = 10
MIN_ZOOM = 3
MAX_PAGE_BUTTONS = 5


def org_marker_key(institution_name: str, address: str, physician_name: str) -> str:
    """Stable identity linking a list entry to its map marker.

    Identical (institution, address, physician) triples share a key; the map
    then carries one marker for them.
    """
    key = f"{institution_name or ''}-{address or ''}-{physician_name or ''}"
    return f"org-{zlib.crc32(key.encode('utf-8'))}"


def location_marker_key(physician: PhysicianRecord, location: Optional[PracticeLocation]) -> str:
    """Key for a located item; empty when the item gets no marker."""
    if location is None or not location.has_point or not location.institution_name:
        return ""
    return org_marker_key(location.institution_name, location.address, physician.display_name)


@dataclass(slots=True)
class MapMarker:
    key: str
    lat: float
    lng: float
    title: str
    address: str = ""
    city_state: str = ""
    physician_name: str = ""
    credentials: str = ""
    distance: float = -1.0


@dataclass(slots=True)
class PhysicianGroup:
    physician: PhysicianRecord
    items: List[SearchResultItem] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class MapView:
    lat: float
    lng: float
    zoom: int


def marker_keys_for(items: Iterable[SearchResultItem]) -> Set[str]:
    """Keys of every item in the set that gets a marker."""
    return {item.marker_key for item in items if item.has_marker}


def build_markers(items: Iterable[SearchResultItem]) -> List[MapMarker]:
    """One marker per distinct key, in ranking order."""
    markers: List[MapMarker] = []
    seen: Set[str] = set()
    for item in items:
        if not item.has_marker or item.marker_key in seen or item.location is None or item.location.point is None:
            continue
        seen.add(item.marker_key)
        location = item.location
        markers.append(
            MapMarker(
                key=item.marker_key,
                lat=location.point.lat,
                lng=location.point.lng,
                title=location.institution_name,
                address=location.address,
                city_state=location.city_state,
                physician_name=item.physician.display_name,
                credentials=item.physician.credentials,
                distance=item.distance,
            )
        )
    return markers


def group_page_items(items: Sequence[SearchResultItem]) -> List[PhysicianGroup]:
    """Group consecutive items of the same physician under one header."""
    groups: List[PhysicianGroup] = []
    for item in items:
        if groups and groups[-1].physician.id == item.physician.id:
            groups[-1].items.append(item)
        else:
            groups.append(PhysicianGroup(physician=item.physician, items=[item]))
    return groups


def pagination_window(current: int, total: int, max_visible: int = MAX_PAGE_BUTTONS) -> List[Optional[int]]:
    """Page numbers to show, with None marking an ellipsis.

    The first and last pages are always reachable.
    """
    if total <= 0:
        return []
    start = max(1, current - max_visible // 2)
    end = min(total, start + max_visible - 1)
    if end - start < max_visible - 1:
        start = max(1, end - max_visible + 1)

    pages: List[Optional[int]] = []
    if start > 1:
        pages.append(1)
        if start > 2:
            pages.append(None)
    pages.extend(range(start, end + 1))
    if end < total:
        if end < total - 1:
            pages.append(None)
        pages.append(total)
    return pages


def _esc(value: Any) -> str:
    return html.escape(str(value or ""), quote=True)


def format_distance(distance: float) -> str:
    if distance is None or distance < 0:
        return ""
    return f"{distance:.1f} km"


def _pagination_html(result_page: ResultPage) -> str:
    if result_page.total_pages <= 1:
        return ""
    parts = ['<div class="pagination-container">']
    if result_page.has_previous:
        parts.append(f'<button type="button" class="pagination-btn" data-page="{result_page.page - 1}">← Previous</button>')
    else:
        parts.append('<button type="button" class="pagination-btn disabled" disabled>← Previous</button>')
    parts.append('<span class="pagination-info">')
    for number in pagination_window(result_page.page, result_page.total_pages):
        if number is None:
            parts.append('<span class="pagination-ellipsis">...</span>')
        elif number == result_page.page:
            parts.append(f'<button type="button" class="pagination-btn page-number current" disabled>{number}</button>')
        else:
            parts.append(f'<button type="button" class="pagination-btn page-number" data-page="{number}">{number}</button>')
    parts.append("</span>")
    if result_page.has_next:
        parts.append(f'<button type="button" class="pagination-btn" data-page="{result_page.page + 1}">Next →</button>')
    else:
        parts.append('<button type="button" class="pagination-btn disabled" disabled>Next →</button>')
    parts.append("</div>")
    return "".join(parts)


def _detail(label: str, value: Any) -> str:
    if isinstance(value, (list, tuple)):
        value = ", ".join(str(v) for v in value if v)
    if not value:
        return ""
    return (
        f'<div class="far-org__body-grid-item"><span class="far-org__body-grid-item-label">{_esc(label)}:</span> '
        f"{_esc(value)}</div>"
    )


def render_location_html(item: SearchResultItem, marker_keys: Set[str]) -> str:
    location = item.location
    if location is None:
        return '<div class="far-org far-org--empty"><p>No practice locations listed.</p></div>'

    element_id = item.marker_key or f"org-{item.physician.id}-{item.location_index}"
    parts = [f'<div class="far-org" id="{_esc(element_id)}">', '<div class="far-org__summary">']
    parts.append(f'<h4 class="far-org-title">{_esc(location.institution_name or "Organization")}</h4>')

    address_parts = []
    if location.address:
        address_parts.append(f'<span class="far-org-address_street">{_esc(location.address)}</span>')
    if location.city_state:
        address_parts.append(f'<span class="far-org-address_city-state">{_esc(location.city_state)}</span>')
    if location.postal_code:
        address_parts.append(f'<span class="far-org-address_postal">{_esc(location.postal_display)}</span>')
    parts.append(f'<p class="far-org-address">{", ".join(address_parts)}</p>')

    if location.phone:
        phone = format_phone_number(location.phone, location.extension)
        parts.append(f'<p class="far-org-phone"><strong aria-label="Phone">T:</strong> {_esc(phone)}</p>')
    else:
        parts.append('<p class="far-org-phone far-org-phone--no-phone">Not available</p>')
    if location.fax:
        parts.append(f'<p class="far-org-fax"><strong aria-label="Fax">F:</strong> {_esc(location.fax)}</p>')

    if item.has_distance:
        parts.append(f'<p class="far-org-distance"><strong>Distance:</strong> {_esc(format_distance(item.distance))}</p>')

    if item.has_marker and item.marker_key in marker_keys:
        parts.append(f'<a href="#" class="show-on-map-link" data-org-id="{_esc(item.marker_key)}">📍 Show on map</a>')
    parts.append("</div>")

    body = [
        _detail("Practice Setting(s)", location.practice_settings),
        _detail("Practices OIT", "Yes" if location.oit else ""),
        _detail(
            "Practice Population", location.practice_population.value if location.practice_population else ""
        ),
        _detail("Special Areas of Interest", location.special_interests),
        _detail("Consultation Services", location.consultation_services),
        _detail("Site for Clinical Trials", "Yes" if location.clinical_trials_site else ""),
        _detail("Treatment Services Offered", location.treatment_services),
    ]
    body = [b for b in body if b]
    if body:
        parts.append('<div class="far-org__body">')
        parts.extend(body)
        parts.append("</div>")
    parts.append("</div>")
    return "".join(parts)


def render_group_html(group: PhysicianGroup, marker_keys: Set[str]) -> str:
    physician = group.physician
    title = _esc(physician.display_name)
    if physician.credentials:
        title = f"{title}, {_esc(physician.credentials)}"
    parts = [
        '<div class="far-item">',
        f'<div class="far-physician-info"><h3 class="far-physician-name">{title}</h3></div>',
        '<div class="far-orgs">',
    ]
    parts.extend(render_location_html(item, marker_keys) for item in group.items)
    parts.append("</div></div>")
    return "".join(parts)


def render_results_html(result_page: ResultPage, marker_keys: Set[str], include_pagination: bool = True) -> str:
    """List HTML for one page. ``marker_keys`` covers the whole result set.

    ``include_pagination=False`` leaves page controls to the caller.
    """
    if result_page.total_items == 0:
        return '<div id="search-results-content"><p>No matches found.</p></div>'

    total = result_page.total_items
    summary = f"Found {total} result{'' if total == 1 else 's'}"
    if total > result_page.per_page:
        summary += f" - showing {result_page.start_index} to {result_page.end_index}"

    pagination = _pagination_html(result_page) if include_pagination else ""
    parts = [
        '<div id="search-results-content">',
        f'<div class="search-results-info"><p>{summary}</p></div>',
        pagination,
        '<div class="far-items">',
    ]
    parts.extend(render_group_html(group, marker_keys) for group in group_page_items(result_page.items))
    parts.append("</div>")
    parts.append(pagination)
    parts.append("</div>")
    return "".join(parts)


def info_window_html(marker: MapMarker) -> str:
    parts = ['<div class="map-info-window">', f"<h4>{_esc(marker.title)}</h4>"]
    if marker.address:
        parts.append(f"<p><strong>Address:</strong> {_esc(marker.address)}</p>")
    if marker.city_state:
        parts.append(f"<p><strong>Location:</strong> {_esc(marker.city_state)}</p>")
    if marker.physician_name:
        physician = _esc(marker.physician_name)
        if marker.credentials:
            physician = f"{physician}, {_esc(marker.credentials)}"
        parts.append(f"<p><strong>Physician:</strong> {physician}</p>")
    parts.append("</div>")
    return "".join(parts)


def _zoom_for_span(span_degrees: float) -> int:
    if span_degrees <= 0:
        return SINGLE_MARKER_ZOOM
    zoom = int(math.floor(math.log2(360.0 / span_degrees))) - 1
    return max(MIN_ZOOM, min(SINGLE_MARKER_ZOOM, zoom))


def map_view(markers: Sequence[MapMarker], selected_key: Optional[str] = None) -> Optional[MapView]:
    """Centre and zoom: the selected marker, the single marker, or all bounds."""
    if not markers:
        return None
    if selected_key:
        for marker in markers:
            if marker.key == selected_key:
                return MapView(marker.lat, marker.lng, SINGLE_MARKER_ZOOM)
    if len(markers) == 1:
        return MapView(markers[0].lat, markers[0].lng, SINGLE_MARKER_ZOOM)

    lats = [m.lat for m in markers]
    lngs = [m.lng for m in markers]
    span = max(max(lats) - min(lats), max(lngs) - min(lngs))
    return MapView((max(lats) + min(lats)) / 2, (max(lngs) + min(lngs)) / 2, _zoom_for_span(span))


def markers_frame(markers: Sequence[MapMarker], selected_key: Optional[str] = None) -> pd.DataFrame:
    columns = ["Marker Key", "Latitude", "Longitude", "Institution", "Physician", "Address", "Distance", "Size"]
    rows = [
        {
            "Marker Key": m.key,
            "Latitude": m.lat,
            "Longitude": m.lng,
            "Institution": m.title,
            "Physician": m.physician_name,
            "Address": ", ".join(p for p in (m.address, m.city_state) if p),
            "Distance": format_distance(m.distance),
            "Size": 18 if m.key == selected_key else 10,
        }
        for m in markers
    ]
    return pd.DataFrame(rows, columns=columns)


def build_map_figure(markers: Sequence[MapMarker], selected_key: Optional[str] = None):
    """Plotly map of every marker; point ``customdata[0]`` is the marker key."""
    view = map_view(markers, selected_key)
    if view is None:
        return None
    df = markers_frame(markers, selected_key)
    fig = px.scatter_map(
        df,
        lat="Latitude",
        lon="Longitude",
        hover_name="Institution",
        hover_data={"Physician": True, "Address": True, "Distance": True, "Size": False},
        custom_data=["Marker Key"],
        size="Size",
        size_max=18,
        map_style="open-street-map",
        center={"lat": view.lat, "lon": view.lng},
        zoom=view.zoom,
        height=400,
    )
    fig.update_layout(margin=dict(l=0, r=0, t=0, b=0), clickmode="event+select")
    return fig


def selected_marker_key(selection_event: Any) -> Optional[str]:
    """Marker key of the first point in a Streamlit plotly selection event."""
    if not selection_event:
        return None
    try:
        selection = selection_event["selection"]
        points = selection["points"]
    except (KeyError, TypeError):
        return None
    for point in points or []:
        custom = point.get("customdata") if isinstance(point, dict) else None
        if custom:
            return custom[0] if isinstance(custom, (list, tuple)) else str(custom)
    return None


def list_pick_value(options: Sequence[str], selected_key: Optional[str]) -> str:
    """Value for the "Show on map" picker of the current page.

    The selected marker when this page lists it, otherwise the blank option.
    """
    return selected_key if selected_key and selected_key in options else ""
