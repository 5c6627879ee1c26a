"""Error taxonomy for the allergist search and its user-facing translation.

Every failure that can reach the client boundary is one of the classes below.
``describe_error`` turns any of them (or an unexpected exception) into a single
user-facing message and logs a structured developer record alongside it.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class SearchError(Exception):
    """Base class for everything the search pipeline raises on purpose."""


class ValidationError(SearchError):
    """Criteria rejected before any search work is done."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class GeocodeFailure(Enum):
    NO_MATCH = "no_match"
    UNAVAILABLE = "unavailable"


class GeocodeError(SearchError):
    """Origin resolution failed; callers degrade to an unlimited radius."""

    def __init__(self, reason: GeocodeFailure, address: str = "", detail: str = ""):
        message = f"Geocoding failed ({reason.value}) for '{address}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.reason = reason
        self.address = address
        self.detail = detail

    @property
    def is_no_match(self) -> bool:
        return self.reason is GeocodeFailure.NO_MATCH


class NetworkError(SearchError):
    """Transport failure reaching the search backend. Retryable by the user."""


class NoResultsError(SearchError):
    """The search ran fine and matched nothing."""


class RecordError(SearchError):
    """A profile record in the export could not be parsed."""


class SearchCancelled(SearchError):
    """The search was superseded by a newer one. Never shown to the user."""


@dataclass(slots=True, frozen=True)
class UserMessage:
    category: str
    text: str
    level: str = "error"


GENERIC_RETRY_TEXT = "Sorry, something went wrong. Please try again."
NO_RESULTS_TEXT = "No matches found. Try a larger distance or fewer search fields."
LOCATE_FAILED_TEXT = (
    "We could not locate that address, so results are shown without distance or radius filtering."
)


def describe_error(error: BaseException) -> Optional[UserMessage]:
    """Map an exception to the message shown to the visitor.

    Returns None for a superseded search, which must stay silent.
    """
    if isinstance(error, SearchCancelled):
        logger.debug("Search superseded by a newer request")
        return None

    if isinstance(error, ValidationError):
        logger.info(f"Search rejected: {error.code}", extra={"error_code": error.code})
        return UserMessage("validation", error.message, "warning")

    if isinstance(error, GeocodeError):
        logger.warning(
            f"Origin could not be resolved: {error}",
            extra={"geocode_reason": error.reason.value, "address": error.address},
        )
        return UserMessage("geocode", LOCATE_FAILED_TEXT, "info")

    if isinstance(error, NoResultsError):
        logger.info("Search returned no results")
        return UserMessage("no_results", NO_RESULTS_TEXT, "info")

    if isinstance(error, NetworkError):
        logger.error(f"Search request failed: {error}", extra={"error_type": type(error).__name__})
        return UserMessage("network", GENERIC_RETRY_TEXT, "error")

    logger.error(f"Unexpected search failure: {type(error).__name__}: {error}", exc_info=error)
    return UserMessage("network", GENERIC_RETRY_TEXT, "error")
