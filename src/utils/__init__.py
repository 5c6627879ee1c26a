"""Utilities package for Find an Allergist.

Re-export the stable leaf helpers. Modules that depend on ``src.data`` (the
candidate filter, geocoder, renderer and session) are imported directly.
"""
# flake8: noqa: F401

from .addressing import (
    format_postal_code,
    is_valid_postal_code,
    normalize_postal_code,
    normalize_province,
    validate_postal_input,
)
from .distance import calculate_distances, distance
from .errors import (
    GeocodeError,
    NetworkError,
    NoResultsError,
    RecordError,
    SearchCancelled,
    SearchError,
    ValidationError,
    describe_error,
)
from .matching import name_matches

__all__ = [
    "calculate_distances",
    "describe_error",
    "distance",
    "format_postal_code",
    "is_valid_postal_code",
    "name_matches",
    "normalize_postal_code",
    "normalize_province",
    "validate_postal_input",
    "GeocodeError",
    "NetworkError",
    "NoResultsError",
    "RecordError",
    "SearchCancelled",
    "SearchError",
    "ValidationError",
]
