"""Record and search types shared by the ranking engine, renderer and API."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from src.utils.addressing import format_postal_code, normalize_postal_code, normalize_province

UNKNOWN_DISTANCE = -1.0
UNLIMITED_RADIUS_KM = 99999.0
DEFAULT_RADIUS_KM = 30.0

_TRUE_STRINGS = ("yes", "y", "true", "t", "1", "on", "oit")


class PracticePopulation(Enum):
    """Patient population a physician or location serves."""

    ALL = "All"
    ADULTS = "Adults"
    PEDIATRIC = "Pediatric"

    @classmethod
    def parse(cls, value: Any) -> Optional["PracticePopulation"]:
        if isinstance(value, cls):
            return value
        if value is None:
            return None
        if isinstance(value, (list, tuple)):
            value = value[0] if value else None
            if value is None:
                return None
        text = str(value).strip().lower()
        if not text:
            return None
        if text in ("all", "both", "all ages"):
            return cls.ALL
        if text in ("adult", "adults"):
            return cls.ADULTS
        if text in ("pediatric", "pediatrics", "paediatric", "paediatrics", "children"):
            return cls.PEDIATRIC
        return None


def parse_flag(value: Any) -> Optional[bool]:
    """Loose boolean parsing for query parameters and form values.

    Returns None for missing/empty input so "not specified" stays distinct
    from False.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if not text:
        return None
    return text in _TRUE_STRINGS


@dataclass(slots=True, frozen=True)
class Point:
    lat: float
    lng: float


@dataclass(slots=True)
class PracticeLocation:
    """One practice address of a physician. List order is practice priority."""

    institution_name: str = ""
    street: str = ""
    city: str = ""
    province: str = ""
    province_code: str = ""
    postal_code: str = ""
    country: str = ""
    phone: str = ""
    fax: str = ""
    extension: str = ""
    point: Optional[Point] = None
    practice_settings: List[str] = field(default_factory=list)
    consultation_services: List[str] = field(default_factory=list)
    treatment_services: List[str] = field(default_factory=list)
    clinical_trials_site: bool = False
    practice_population: Optional[PracticePopulation] = None
    oit: bool = False
    special_interests: str = ""

    @property
    def address(self) -> str:
        return self.street

    @property
    def has_point(self) -> bool:
        return self.point is not None

    @property
    def postal_display(self) -> str:
        return format_postal_code(self.postal_code)

    @property
    def city_state(self) -> str:
        return ", ".join(part for part in (self.city, self.province) if part)


@dataclass(slots=True)
class PhysicianRecord:
    id: int
    name: str
    credentials: str = ""
    practice_population: Optional[PracticePopulation] = None
    oit: bool = False
    locations: List[PracticeLocation] = field(default_factory=list)
    special_interests: str = ""
    treatment_services: List[str] = field(default_factory=list)
    status: str = "publish"
    searchable: bool = True
    author_id: Optional[int] = None
    link: str = ""

    @property
    def is_published(self) -> bool:
        return self.status == "publish"

    @property
    def display_name(self) -> str:
        """Name with the "Dr." title the directory shows in listings."""
        if self.name.lower().startswith("dr.") or self.name.lower().startswith("dr "):
            return self.name
        return f"Dr. {self.name}"


@dataclass(slots=True)
class SearchCriteria:
    name: str = ""
    city: str = ""
    province: str = ""
    postal_code: str = ""
    oit: Optional[bool] = None
    practice_population: Optional[PracticePopulation] = None
    radius_km: float = DEFAULT_RADIUS_KM
    page: int = 1
    per_page: Optional[int] = None

    def __post_init__(self):
        self.name = (self.name or "").strip()
        self.city = (self.city or "").strip()
        self.province = normalize_province(self.province)
        self.postal_code = normalize_postal_code(self.postal_code)

    @property
    def has_location_criteria(self) -> bool:
        return bool(self.city or self.province or self.postal_code)

    @property
    def is_empty(self) -> bool:
        """No name and no location. OIT and population only narrow a search."""
        return not (self.name or self.has_location_criteria)

    @property
    def effective_radius_km(self) -> float:
        """Radius actually applied; unlimited when no location was given."""
        if not self.has_location_criteria:
            return UNLIMITED_RADIUS_KM
        return float(self.radius_km)

    def search_key(self) -> tuple:
        """Identity of the search, ignoring pagination."""
        return (
            self.name.lower(),
            self.city.lower(),
            self.province,
            self.postal_code,
            self.oit,
            self.practice_population,
            float(self.radius_km),
        )

    @classmethod
    def from_params(cls, params: Mapping[str, Any], default_radius_km: float = DEFAULT_RADIUS_KM) -> "SearchCriteria":
        """Build criteria from request/form parameters.

        Accepts the current parameter names (``name``, ``kms``/``radius``,
        ``prac_pop``) and the legacy split ``fname``/``lname`` form.
        """

        def _text(key: str) -> str:
            value = params.get(key)
            return str(value).strip() if value is not None else ""

        name = _text("name")
        if not name:
            name = " ".join(part for part in (_text("fname"), _text("lname")) if part)

        radius_raw = params.get("kms", params.get("radius"))
        try:
            radius_km = float(radius_raw) if radius_raw not in (None, "") else default_radius_km
        except (TypeError, ValueError):
            radius_km = -1.0

        try:
            page = int(params.get("page") or 1)
        except (TypeError, ValueError):
            page = 1

        per_page_raw = params.get("per_page")
        try:
            per_page = int(per_page_raw) if per_page_raw not in (None, "") else None
        except (TypeError, ValueError):
            per_page = None

        return cls(
            name=name,
            city=_text("city"),
            province=_text("province"),
            postal_code=_text("postal"),
            oit=parse_flag(params.get("oit")),
            practice_population=PracticePopulation.parse(params.get("prac_pop")),
            radius_km=radius_km,
            page=page,
            per_page=per_page,
        )


@dataclass(slots=True)
class SearchResultItem:
    """One (physician, location) pair with its distance from the origin.

    ``location`` is None only for a physician without any practice location
    found by a search that has no location criteria.
    """

    physician: PhysicianRecord
    location: Optional[PracticeLocation]
    location_index: int
    distance: float = UNKNOWN_DISTANCE
    marker_key: str = ""

    @property
    def has_distance(self) -> bool:
        return self.distance >= 0

    @property
    def has_marker(self) -> bool:
        return bool(self.marker_key)

    def location_dict(self) -> Optional[Dict[str, Any]]:
        loc = self.location
        if loc is None:
            return None
        return {
            "institution_name": loc.institution_name,
            "address": loc.street,
            "city": loc.city,
            "province": loc.province,
            "province_code": loc.province_code,
            "postal_code": loc.postal_code,
            "postal_display": loc.postal_display,
            "country": loc.country,
            "phone": loc.phone,
            "fax": loc.fax,
            "extension": loc.extension,
            "lat": loc.point.lat if loc.point else None,
            "lng": loc.point.lng if loc.point else None,
            "distance_km": self.distance,
            "marker_key": self.marker_key,
            "practice_settings": list(loc.practice_settings),
            "consultation_services": list(loc.consultation_services),
            "treatment_services": list(loc.treatment_services),
            "clinical_trials_site": loc.clinical_trials_site,
            "practice_population": loc.practice_population.value if loc.practice_population else None,
            "oit": loc.oit,
            "special_interests": loc.special_interests,
        }

    def to_dict(self) -> Dict[str, Any]:
        doc = self.physician
        return {
            "physician": {
                "id": doc.id,
                "name": doc.name,
                "credentials": doc.credentials,
                "oit": doc.oit,
            },
            "location": self.location_dict(),
            "distance_km": self.distance,
        }


@dataclass(slots=True)
class ResultPage:
    items: List[SearchResultItem]
    page: int
    per_page: int
    total_items: int
    total_pages: int

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def start_index(self) -> int:
        """1-based position of the first item on this page (0 when empty)."""
        if not self.items:
            return 0
        return (self.page - 1) * self.per_page + 1

    @property
    def end_index(self) -> int:
        if not self.items:
            return 0
        return self.start_index + len(self.items) - 1
