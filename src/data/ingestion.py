"""
Profile ingestion - loads physician profiles from the directory's JSON export.

The export is produced by the directory's content system: one record per
physician, with custom fields either at the top level or nested under
``acf``, and one ``organizations_details`` entry per practice location.
Locations carry a map-picker block (``institution_gmap``) or, for older
profiles, flat address fields.

The export is read from a local path or, when S3 is configured, from the most
recent file in the profiles folder, and kept in Streamlit's resource cache.

Key Features:
- Tolerant parsing: malformed records are logged and skipped, never fatal
- Out-of-range or malformed coordinates become "no point" for that location
- ``ProfileStore`` answers lookups by id and the owner-or-admin edit check
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import streamlit as st

from src.data.models import PhysicianRecord, PracticeLocation, PracticePopulation, Point, parse_flag
from src.utils.addressing import normalize_postal_code, normalize_province, province_name, validate_coordinates
from src.utils.config import get_data_config, is_api_enabled
from src.utils.errors import NetworkError, RecordError
from src.utils.s3_client import get_latest_profile_export

logger = logging.getLogger(__name__)

OPT_OUT_VALUE = "YES"


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Mapping):
        # WordPress REST renders titles as {"rendered": "..."}
        value = value.get("rendered", "")
    if isinstance(value, (list, tuple)):
        value = ", ".join(str(v).strip() for v in value if v not in (None, ""))
    return str(value).strip()


def _as_list(value: Any) -> List[str]:
    if value is None or value == "" or value is False:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if v not in (None, "") and str(v).strip()]
    return [str(value).strip()]


def _parse_coordinate(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_point(lat_raw: Any, lng_raw: Any, context: str = "") -> Optional[Point]:
    """Point from raw export values; None when missing, malformed or out of range.

    A 0/0 pair is how the export marks "never geocoded" and also yields None.
    """
    lat = _parse_coordinate(lat_raw)
    lng = _parse_coordinate(lng_raw)
    if lat is None or lng is None:
        return None
    if lat == 0 and lng == 0:
        return None
    valid, message = validate_coordinates(lat, lng)
    if not valid:
        logger.warning(f"Ignoring coordinates for {context or 'location'}: {message}")
        return None
    return Point(lat, lng)


def parse_oit(value: Any) -> bool:
    """The OIT field is a checkbox list (``["OIT"]``), a string or a boolean."""
    if isinstance(value, (list, tuple)):
        return any(str(v).strip().upper() == "OIT" for v in value)
    if isinstance(value, str) and "OIT" in value.upper():
        return True
    return bool(parse_flag(value))


def parse_location(org: Mapping[str, Any], context: str = "") -> PracticeLocation:
    """Build a PracticeLocation from one ``organizations_details`` entry."""
    gmap = org.get("institution_gmap") or {}
    if not isinstance(gmap, Mapping):
        gmap = {}

    if gmap:
        street = _text(gmap.get("name"))
        if not street:
            street = " ".join(p for p in (_text(gmap.get("street_number")), _text(gmap.get("street_name"))) if p)
        city = _text(gmap.get("city"))
        province = _text(gmap.get("state"))
        province_code = _text(gmap.get("state_short")).upper()
        postal_code = _text(gmap.get("post_code"))
        country = _text(gmap.get("country"))
        point = parse_point(gmap.get("lat"), gmap.get("lng"), context)
    else:
        street = " ".join(
            p for p in (_text(org.get(f"address_line_{n}")) for n in (1, 2, 3)) if p
        )
        city = _text(org.get("institution_city"))
        province = _text(org.get("institution_state"))
        province_code = ""
        postal_code = _text(org.get("institution_zipcode"))
        country = _text(org.get("institution_country"))
        point = parse_point(org.get("institution_latitude"), org.get("institution_longitude"), context)

    if not province_code and province:
        province_code = normalize_province(province)
    if not province and province_code:
        province = province_name(province_code)

    return PracticeLocation(
        institution_name=_text(org.get("institutation_name") or org.get("institution_name")),
        street=street,
        city=city,
        province=province,
        province_code=province_code,
        postal_code=normalize_postal_code(postal_code),
        country=country,
        phone=_text(org.get("institution_phone")),
        fax=_text(org.get("institution_fax")),
        extension=_text(org.get("intitution_ext") or org.get("institution_ext")),
        point=point,
        practice_settings=_as_list(org.get("institution_practice_setting")),
        consultation_services=_as_list(org.get("institution_consultation_services")),
        treatment_services=_as_list(org.get("institution_treatment_services_offered")),
        clinical_trials_site=bool(parse_flag(org.get("institution_site_for_clinical_trials"))),
        practice_population=PracticePopulation.parse(org.get("institution_practice_population")),
        oit=parse_oit(org.get("institution_oit_practices")),
        special_interests=_text(org.get("institution_special_areas_of_interest")),
    )


def parse_physician_record(raw: Any) -> PhysicianRecord:
    """
    Parse one exported physician profile.

    Raises:
        RecordError: when the record is not an object, has no usable id or
            has an empty name
    """
    if not isinstance(raw, Mapping):
        raise RecordError(f"Expected an object, got {type(raw).__name__}")

    acf = raw.get("acf") or {}
    if not isinstance(acf, Mapping):
        acf = {}

    def field_value(key: str, default: Any = None) -> Any:
        if key in acf:
            return acf[key]
        return raw.get(key, default)

    try:
        record_id = int(raw.get("id"))
    except (TypeError, ValueError):
        raise RecordError(f"Record has no valid id: {raw.get('id')!r}") from None

    name = _text(raw.get("title")) or _text(raw.get("name"))
    if not name:
        raise RecordError(f"Physician {record_id} has an empty name")

    organizations = field_value("organizations_details") or []
    if not isinstance(organizations, list):
        organizations = []
    locations = [
        parse_location(org, context=f"physician {record_id}")
        for org in organizations
        if isinstance(org, Mapping)
    ]

    author = raw.get("author")
    try:
        author_id = int(author) if author not in (None, "") else None
    except (TypeError, ValueError):
        author_id = None

    opt_out = _text(field_value("immunologist_online_search_tool")).upper()

    return PhysicianRecord(
        id=record_id,
        name=name,
        credentials=_text(field_value("physician_credentials")),
        practice_population=PracticePopulation.parse(field_value("practice_population")),
        oit=parse_oit(field_value("practices_oral_immunotherapy_oit")),
        locations=locations,
        special_interests=_text(field_value("special_areas_of_interest")),
        treatment_services=_as_list(field_value("treatment_services_offered")),
        status=_text(raw.get("status")) or "publish",
        searchable=opt_out != OPT_OUT_VALUE,
        author_id=author_id,
        link=_text(raw.get("link")),
    )


def parse_export(payload: Union[bytes, str, list, dict]) -> List[PhysicianRecord]:
    """Parse a whole export; bad records are logged and skipped."""
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8")
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise NetworkError(f"Profile export is not valid JSON: {e}") from e
    if isinstance(payload, dict):
        payload = payload.get("physicians", [])
    if not isinstance(payload, list):
        raise NetworkError(f"Unexpected profile export shape: {type(payload).__name__}")

    records = []
    skipped = 0
    for position, raw in enumerate(payload):
        try:
            records.append(parse_physician_record(raw))
        except RecordError as e:
            skipped += 1
            logger.warning(f"Skipping profile #{position}: {e}")
    logger.info(f"Parsed {len(records)} physician profiles ({skipped} skipped)")
    return records


class ProfileStore:
    """In-memory profile store keyed by physician id.

    Usage:
        store = ProfileStore.from_path("data/physicians.json")
        physician = store.get(42)
        store.can_edit(user_id=7, record_id=42)
    """

    def __init__(self, records: Iterable[PhysicianRecord] = ()):
        self._records: Dict[int, PhysicianRecord] = {}
        for record in records:
            if record.id in self._records:
                logger.warning(f"Duplicate physician id {record.id}; keeping the later record")
            self._records[record.id] = record

    @classmethod
    def from_export(cls, payload: Union[bytes, str, list, dict]) -> "ProfileStore":
        return cls(parse_export(payload))

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "ProfileStore":
        path = Path(path)
        try:
            payload = path.read_bytes()
        except OSError as e:
            raise NetworkError(f"Cannot read profile export '{path}': {e}") from e
        return cls.from_export(payload)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    def get(self, record_id: int) -> Optional[PhysicianRecord]:
        return self._records.get(record_id)

    def published(self) -> List[PhysicianRecord]:
        """Records visible to visitors: published and not opted out of search."""
        return [r for r in self._records.values() if r.is_published and r.searchable]

    def can_edit(self, user_id: Optional[int], record_id: int, is_admin: bool = False) -> bool:
        """Owner-or-admin check for editing a profile."""
        if record_id not in self:
            return False
        if is_admin:
            return True
        author_id = self._records[record_id].author_id
        return user_id is not None and author_id is not None and author_id == user_id


def load_profile_store_uncached() -> ProfileStore:
    """Load the store from S3 (when enabled) or the configured local path.

    Raises:
        NetworkError: when no export can be read
    """
    config = get_data_config()
    if config["use_s3"]:
        if is_api_enabled("s3"):
            latest = get_latest_profile_export()
            if latest:
                data, filename = latest
                logger.info(f"Loading profiles from S3 export '{filename}'")
                return ProfileStore.from_export(data)
            logger.warning("No profile export in S3; falling back to local file")
        else:
            logger.warning("S3 profile source enabled but not configured; using local file")

    logger.info(f"Loading profiles from {config['profiles_path']}")
    return ProfileStore.from_path(config["profiles_path"])


@st.cache_resource(ttl=3600, show_spinner=False)
def load_profile_store() -> ProfileStore:
    """Cached profile store shared by all sessions of the app process."""
    return load_profile_store_uncached()


def refresh_profile_cache() -> None:
    """Drop the cached store so the next load re-reads the export."""
    load_profile_store.clear()
    logger.info("Profile cache cleared - next load reads the export again")
