"""Tests for the error taxonomy and its user-facing messages."""
import pytest

from src.utils.errors import (
    GENERIC_RETRY_TEXT,
    LOCATE_FAILED_TEXT,
    NO_RESULTS_TEXT,
    GeocodeError,
    GeocodeFailure,
    NetworkError,
    NoResultsError,
    SearchCancelled,
    ValidationError,
    describe_error,
)


@pytest.mark.parametrize(
    "error, category, level, text",
    [
        (ValidationError("missing_criteria", "Please provide at least one search criterion."), "validation", "warning", "Please provide at least one search criterion."),
        (GeocodeError(GeocodeFailure.NO_MATCH, "Nowhere, Canada"), "geocode", "info", LOCATE_FAILED_TEXT),
        (NoResultsError(), "no_results", "info", NO_RESULTS_TEXT),
        (NetworkError("connection reset"), "network", "error", GENERIC_RETRY_TEXT),
        (KeyError("boom"), "network", "error", GENERIC_RETRY_TEXT),
    ],
)
def test_describe_error(error, category, level, text):
    message = describe_error(error)
    assert (message.category, message.level, message.text) == (category, level, text)


def test_superseded_search_is_silent():
    assert describe_error(SearchCancelled("search #1 superseded")) is None


def test_geocode_error_message_names_reason_and_address():
    error = GeocodeError(GeocodeFailure.UNAVAILABLE, "Toronto, Canada", "timed out after 10s")
    assert str(error) == "Geocoding failed (unavailable) for 'Toronto, Canada': timed out after 10s"
    assert not error.is_no_match
    assert GeocodeError(GeocodeFailure.NO_MATCH, "x").is_no_match


def test_unexpected_errors_are_logged_with_traceback(caplog):
    with caplog.at_level("ERROR"):
        describe_error(RuntimeError("boom"))
    assert "Unexpected search failure: RuntimeError: boom" in caplog.text
