"""Tests for structured candidate filtering of physician records."""
from conftest import make_location, make_physician

from src.data.models import PracticePopulation, SearchCriteria
from src.utils.providers import (
    city_matches,
    filter_physicians,
    physician_matches,
    population_matches,
    postal_matches,
    province_matches,
    qualifying_locations,
)


def _ids(records):
    return [r.id for r in records]


def test_name_filter(sample_records):
    result = filter_physicians(SearchCriteria(name="Smith"), sample_records)
    assert _ids(result) == [101, 104]


def test_unpublished_and_opted_out_never_match(sample_records):
    result = filter_physicians(SearchCriteria(province="ON"), sample_records)
    assert 105 not in _ids(result)
    assert 106 not in _ids(result)


def test_output_keeps_input_order(sample_records):
    result = filter_physicians(SearchCriteria(province="ON"), list(reversed(sample_records)))
    assert _ids(result) == [108, 104, 103, 102, 101]


def test_location_criteria_exclude_physicians_without_locations(sample_records):
    assert 107 not in _ids(filter_physicians(SearchCriteria(province="ON"), sample_records))
    assert 107 in _ids(filter_physicians(SearchCriteria(name="Wexford"), sample_records))


def test_city_is_case_insensitive_substring():
    location = make_location("Clinic", city="Richmond Hill")
    assert city_matches(location, "richmond")
    assert city_matches(location, "HILL")
    assert not city_matches(location, "Toronto")


def test_missing_stored_city_or_postal_does_not_exclude():
    location = make_location("Clinic", city="", postal="")
    assert city_matches(location, "Toronto")
    assert postal_matches(location, "M5H2N2")


def test_province_needs_exact_code():
    assert province_matches(make_location("Clinic", province_code="ON"), "ON")
    assert not province_matches(make_location("Clinic", province_code="QC"), "ON")
    assert not province_matches(make_location("Clinic", province_code=""), "ON")


def test_postal_matches_full_code_or_forward_sortation_area():
    location = make_location("Clinic", postal="M5H2N2")
    assert postal_matches(location, "M5H 2N2")
    assert postal_matches(location, "m5h9z9")
    assert not postal_matches(location, "K1A0A6")


def test_only_matching_locations_qualify(sample_records):
    benjamin = next(r for r in sample_records if r.id == 102)
    criteria = SearchCriteria(city="Kingston")
    assert [index for index, _ in qualifying_locations(criteria, benjamin)] == [1]
    assert [index for index, _ in qualifying_locations(SearchCriteria(name="Ben"), benjamin)] == [0, 1]


def test_oit_filter(sample_records):
    assert _ids(filter_physicians(SearchCriteria(oit=True), sample_records)) == [101, 103]
    assert 101 not in _ids(filter_physicians(SearchCriteria(oit=False), sample_records))


def test_population_all_on_record_matches_any_request(sample_records):
    result = filter_physicians(SearchCriteria(practice_population=PracticePopulation.PEDIATRIC), sample_records)
    assert _ids(result) == [102, 103]


def test_requesting_all_population_does_not_narrow():
    record = make_physician(1, "Someone Longname", practice_population=PracticePopulation.ADULTS)
    assert population_matches(record, PracticePopulation.ALL)
    assert population_matches(record, None)


def test_location_population_counts():
    record = make_physician(
        1, "Someone Longname", [make_location("Kids Clinic", practice_population=PracticePopulation.PEDIATRIC)]
    )
    assert population_matches(record, PracticePopulation.PEDIATRIC)
    assert not population_matches(record, PracticePopulation.ADULTS)


def test_all_criteria_are_anded(sample_records):
    criteria = SearchCriteria(name="Smith", city="Ottawa")
    assert _ids(filter_physicians(criteria, sample_records)) == [104]
    assert not physician_matches(SearchCriteria(name="Smith", oit=False, city="Toronto"), sample_records[0])
