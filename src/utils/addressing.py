"""Canadian postal code and province helpers."""
import re
from typing import Dict, Optional, Tuple

POSTAL_CODE_PATTERN = re.compile(r"^[A-Za-z]\d[A-Za-z]\s?\d[A-Za-z]\d$")
POSTAL_CODE_LENGTH = 6

PROVINCES: Dict[str, str] = {
    "AB": "Alberta",
    "BC": "British Columbia",
    "MB": "Manitoba",
    "NB": "New Brunswick",
    "NL": "Newfoundland",
    "NS": "Nova Scotia",
    "ON": "Ontario",
    "PE": "Prince Edward Island",
    "QC": "Quebec",
    "SK": "Saskatchewan",
    "NT": "Northwest Territory",
    "NU": "Nunavut",
    "YT": "Yukon",
}

_PROVINCE_ALIASES = {
    "newfoundland and labrador": "NL",
    "northwest territories": "NT",
    "québec": "QC",
    "yukon territory": "YT",
}


def is_valid_postal_code(postal_code: Optional[str]) -> bool:
    """Return True for ``A1A 1A1`` style codes, with or without the space."""
    if not postal_code or not isinstance(postal_code, str):
        return False
    return bool(POSTAL_CODE_PATTERN.match(postal_code.strip()))


def normalize_postal_code(postal_code: Optional[str]) -> str:
    """Upper-case and strip every whitespace character (storage/lookup form)."""
    if not postal_code:
        return ""
    return re.sub(r"\s+", "", str(postal_code)).upper()


def format_postal_code(postal_code: Optional[str]) -> str:
    """Display form: a single space after the third character.

    Values that are not a full postal code are returned normalised but
    otherwise untouched.
    """
    normalized = normalize_postal_code(postal_code)
    if len(normalized) == POSTAL_CODE_LENGTH and is_valid_postal_code(normalized):
        return f"{normalized[:3]} {normalized[3:]}"
    return normalized


def postal_prefix(postal_code: Optional[str]) -> str:
    """Forward sortation area (first three characters) of a postal code."""
    return normalize_postal_code(postal_code)[:3]


def normalize_province(value: Optional[str]) -> str:
    """Return the two-letter code for a province code or display name.

    Unknown values come back upper-cased so callers can still compare them.
    """
    if not value:
        return ""
    cleaned = str(value).strip()
    upper = cleaned.upper()
    if upper in PROVINCES:
        return upper
    lowered = cleaned.lower()
    for code, name in PROVINCES.items():
        if name.lower() == lowered:
            return code
    return _PROVINCE_ALIASES.get(lowered, upper)


def province_name(code: Optional[str]) -> str:
    if not code:
        return ""
    return PROVINCES.get(code.strip().upper(), code)


def validate_postal_input(postal_code: str) -> Tuple[bool, str]:
    """Form-level postal check; an empty value is allowed."""
    if not postal_code or not postal_code.strip():
        return True, ""
    if is_valid_postal_code(postal_code):
        return True, ""
    return False, "Please enter a valid postal code (e.g., K1A 0A6)"


def validate_coordinates(lat: float, lon: float) -> Tuple[bool, str]:
    if not isinstance(lat, (int, float)) or not isinstance(lon, (int, float)):
        return False, "Coordinates must be numeric"
    if not (-90 <= lat <= 90):
        return False, "Latitude must be between -90 and 90"
    if not (-180 <= lon <= 180):
        return False, "Longitude must be between -180 and 180"
    return True, "Valid coordinates"
