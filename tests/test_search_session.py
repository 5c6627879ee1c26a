"""Tests for the per-visitor search lifecycle."""
import pytest

from src.app_logic import run_search
from src.data.models import SearchCriteria
from src.utils.errors import NetworkError, SearchCancelled
from src.utils.session import SESSION_KEY, SearchSession, SearchState, get_session


@pytest.fixture
def outcome(sample_records, toronto_geocoder):
    return run_search(SearchCriteria(province="ON", radius_km=500), sample_records, geocoder=toronto_geocoder)


def test_new_session_is_idle():
    session = SearchSession()
    assert session.state is SearchState.IDLE
    assert not session.has_results
    with pytest.raises(RuntimeError):
        session.go_to_page(1)


def test_search_lifecycle(outcome):
    session = SearchSession(per_page=2)
    ticket = session.begin_search(outcome.criteria)
    assert session.state is SearchState.SEARCHING

    assert session.complete(ticket, outcome)
    assert session.state is SearchState.DISPLAYED
    assert session.current_page == 1
    assert session.marker_keys == {m.key for m in session.markers}

    page = session.go_to_page(2)
    assert page.page == 2
    assert session.current_page == 2
    assert session.page().items == outcome.items[2:4]


def test_newer_search_supersedes_older(outcome):
    session = SearchSession()
    first = session.begin_search(outcome.criteria)
    second = session.begin_search(outcome.criteria)

    assert first.cancelled
    with pytest.raises(SearchCancelled):
        first.raise_if_cancelled()

    assert session.complete(first, outcome) is False
    assert session.state is SearchState.SEARCHING
    assert session.complete(second, outcome) is True


def test_superseded_search_stops_after_origin_lookup(sample_records, toronto_geocoder):
    session = SearchSession()
    criteria = SearchCriteria(city="Toronto", radius_km=30)
    ticket = session.begin_search(criteria)

    def geocoder(query):
        # A second submit arrives while the first search is locating its origin.
        session.begin_search(criteria)
        return toronto_geocoder(query)

    with pytest.raises(SearchCancelled) as excinfo:
        run_search(criteria, sample_records, geocoder=geocoder, ticket=ticket)

    assert toronto_geocoder.calls == ["Toronto, Canada"]
    assert session.fail(ticket, excinfo.value) is False
    assert session.state is SearchState.SEARCHING
    assert session.message is None


def test_live_ticket_runs_to_completion(sample_records, toronto_geocoder):
    session = SearchSession()
    criteria = SearchCriteria(city="Toronto", radius_km=30)
    ticket = session.begin_search(criteria)

    outcome = run_search(criteria, sample_records, geocoder=toronto_geocoder, ticket=ticket)

    assert session.complete(ticket, outcome)
    assert not session.is_new_search(criteria)


def test_failed_search_keeps_previous_results(outcome):
    session = SearchSession()
    session.complete(session.begin_search(outcome.criteria), outcome)

    ticket = session.begin_search(SearchCriteria(city="Ottawa"))
    assert session.fail(ticket, NetworkError("connection reset"))

    assert session.state is SearchState.ERROR
    assert session.message.category == "network"
    assert session.items == outcome.items
    assert session.go_to_page(1).items


def test_failure_without_results_cannot_page():
    session = SearchSession()
    ticket = session.begin_search(SearchCriteria(city="Ottawa"))
    session.fail(ticket, NetworkError("down"))
    with pytest.raises(RuntimeError):
        session.go_to_page(1)


def test_page_is_clamped(outcome):
    session = SearchSession(per_page=2)
    session.complete(session.begin_search(outcome.criteria), outcome)
    assert session.go_to_page(99).page == session.go_to_page(1).total_pages


def test_marker_selection(outcome):
    session = SearchSession(per_page=2)
    session.complete(session.begin_search(outcome.criteria), outcome)
    last_key = session.markers[-1].key

    assert session.select_marker(last_key)
    assert session.selected_marker == last_key
    assert not session.select_marker("org-0")
    assert session.selected_marker == last_key
    assert session.select_marker(None)
    assert session.selected_marker is None

    expected_page = next(i for i, item in enumerate(session.items) if item.marker_key == last_key) // 2 + 1
    assert session.page_of_marker(last_key) == expected_page
    assert session.page_of_marker("org-0") is None


def test_is_new_search_ignores_pagination(outcome):
    session = SearchSession()
    session.complete(session.begin_search(outcome.criteria), outcome)
    assert not session.is_new_search(SearchCriteria(province="on", radius_km=500, page=3))
    assert session.is_new_search(SearchCriteria(province="ON", radius_km=50))


def test_clear_returns_to_idle(outcome):
    session = SearchSession()
    session.complete(session.begin_search(outcome.criteria), outcome)
    pending = session.begin_search(outcome.criteria)

    session.clear()

    assert pending.cancelled
    assert session.state is SearchState.IDLE
    assert session.items == []
    assert session.markers == []


def test_get_session_reuses_stored_instance():
    state = {}
    session = get_session(state, per_page=5)
    assert state[SESSION_KEY] is session
    assert get_session(state) is session
    assert session.per_page == 5
