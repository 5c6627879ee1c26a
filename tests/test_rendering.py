"""Tests for the list and map projections of a result set."""
import zlib

from conftest import make_location, make_physician, north_of_toronto

from src.app_logic import paginate, run_search
from src.data.models import Point, SearchCriteria, SearchResultItem
from src.utils.rendering import (
    build_map_figure,
    build_markers,
    group_page_items,
    info_window_html,
    list_pick_value,
    location_marker_key,
    map_view,
    marker_keys_for,
    org_marker_key,
    pagination_window,
    render_results_html,
    selected_marker_key,
)


def _item(physician, index=0, distance=-1.0):
    location = physician.locations[index] if physician.locations else None
    return SearchResultItem(
        physician=physician,
        location=location,
        location_index=index if location else -1,
        distance=distance,
        marker_key=location_marker_key(physician, location),
    )


class TestOrgMarkerKey:
    def test_pure_function_of_three_strings(self):
        key = org_marker_key("Downtown Allergy Clinic", "1 King St", "Dr. Alexandra Smith")
        assert key == org_marker_key("Downtown Allergy Clinic", "1 King St", "Dr. Alexandra Smith")
        assert key == f"org-{zlib.crc32('Downtown Allergy Clinic-1 King St-Dr. Alexandra Smith'.encode('utf-8'))}"

    def test_differs_by_physician(self):
        assert org_marker_key("Clinic", "1 King St", "Dr. A") != org_marker_key("Clinic", "1 King St", "Dr. B")

    def test_location_without_point_gets_no_key(self):
        physician = make_physician(1, "Someone Longname", [make_location("Clinic")])
        assert _item(physician).marker_key == ""

    def test_location_without_institution_gets_no_key(self):
        physician = make_physician(1, "Someone Longname", [make_location("", point=north_of_toronto(1))])
        assert _item(physician).marker_key == ""


def test_list_and_map_keys_agree_across_pages(sample_records, toronto_geocoder):
    outcome = run_search(SearchCriteria(province="ON", radius_km=500), sample_records, geocoder=toronto_geocoder)
    markers = build_markers(outcome.items)
    map_keys = {marker.key for marker in markers}

    for page in (1, 2):
        result_page = paginate(outcome.items, page, 2)
        for item in result_page.items:
            if item.marker_key:
                assert item.marker_key in map_keys
    assert marker_keys_for(outcome.items) == map_keys


def test_one_marker_per_located_item(sample_records, toronto_geocoder):
    outcome = run_search(SearchCriteria(province="ON", radius_km=500), sample_records, geocoder=toronto_geocoder)
    located = [item for item in outcome.items if item.location is not None and item.location.point is not None]
    assert len(build_markers(outcome.items)) == len(located)


def test_colliding_keys_share_one_marker():
    shared = dict(street="1 Bay St", point=north_of_toronto(5))
    first = make_physician(1, "Dana Whitcombe", [make_location("Shared Clinic", **shared)])
    second = make_physician(2, "Dana Whitcombe", [make_location("Shared Clinic", **shared)])
    assert len(build_markers([_item(first), _item(second)])) == 1


def test_grouping_is_consecutive_only():
    alpha = make_physician(1, "Alpha Longname", [make_location("A1"), make_location("A2")])
    beta = make_physician(2, "Beta Longname", [make_location("B1")])
    items = [_item(alpha, 0), _item(alpha, 1), _item(beta, 0), _item(alpha, 0)]

    groups = group_page_items(items)

    assert [g.physician.id for g in groups] == [1, 2, 1]
    assert [len(g.items) for g in groups] == [2, 1, 1]


class TestRenderResultsHtml:
    def test_empty_result_set(self):
        html = render_results_html(paginate([], 1, 20), set())
        assert "No matches found." in html

    def test_summary_and_location_block(self, sample_records):
        alexandra = sample_records[0]
        item = _item(alexandra, distance=5.004)
        html = render_results_html(paginate([item], 1, 20), {item.marker_key})

        assert "Found 1 result" in html
        assert "Dr. Alexandra Smith, MD, FRCPC" in html
        assert f'id="{item.marker_key}"' in html
        assert "(416) 555-0101" in html
        assert "5.0 km" in html
        assert "Show on map" in html
        assert "M5H 2N2" in html

    def test_phone_not_available_and_no_distance(self, sample_records):
        midtown = sample_records[-1]
        item = _item(midtown)
        html = render_results_html(paginate([item], 1, 20), set())

        assert "Not available" in html
        assert "Distance:" not in html
        assert "Show on map" not in html

    def test_zero_distance_is_shown(self, sample_records):
        item = _item(sample_records[0], distance=0.0)
        assert item.has_distance and item.has_marker
        assert "0.0 km" in render_results_html(paginate([item], 1, 20), {item.marker_key})

    def test_text_is_escaped(self):
        physician = make_physician(
            1, "<script>alert(1)</script>", [make_location("Clinic & Co <b>", point=north_of_toronto(1))]
        )
        html = render_results_html(paginate([_item(physician)], 1, 20), set())

        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "Clinic &amp; Co &lt;b&gt;" in html

    def test_summary_shows_range_and_pagination_when_paged(self):
        physicians = [make_physician(i, f"Physician Number{i}", [make_location(f"Clinic {i}")]) for i in range(25)]
        items = [_item(p) for p in physicians]
        html = render_results_html(paginate(items, 2, 10), set())

        assert "Found 25 results - showing 11 to 20" in html
        assert html.count('class="pagination-container"') == 2

    def test_pagination_can_be_left_to_caller(self):
        physicians = [make_physician(i, f"Physician Number{i}", [make_location(f"Clinic {i}")]) for i in range(25)]
        html = render_results_html(paginate([_item(p) for p in physicians], 1, 10), set(), include_pagination=False)
        assert "pagination-container" not in html


class TestPaginationWindow:
    def test_small_total_shows_every_page(self):
        assert pagination_window(2, 4) == [1, 2, 3, 4]

    def test_ellipsis_on_both_sides(self):
        assert pagination_window(10, 20) == [1, None, 8, 9, 10, 11, 12, None, 20]

    def test_near_start(self):
        assert pagination_window(1, 20) == [1, 2, 3, 4, 5, None, 20]

    def test_near_end(self):
        assert pagination_window(20, 20) == [1, None, 16, 17, 18, 19, 20]

    def test_no_pages(self):
        assert pagination_window(1, 0) == []


class TestMapView:
    def test_single_marker_zooms_in(self, sample_records):
        markers = build_markers([_item(sample_records[0])])
        view = map_view(markers)
        assert view.zoom == 15
        assert (view.lat, view.lng) == (markers[0].lat, markers[0].lng)

    def test_selected_marker_is_centred(self, sample_records):
        markers = build_markers([_item(sample_records[0]), _item(sample_records[3])])
        view = map_view(markers, markers[1].key)
        assert (view.lat, view.lng, view.zoom) == (markers[1].lat, markers[1].lng, 15)

    def test_bounds_for_many_markers(self, sample_records):
        markers = build_markers([_item(sample_records[0]), _item(sample_records[3])])
        view = map_view(markers)
        assert min(m.lat for m in markers) < view.lat < max(m.lat for m in markers)
        assert view.zoom < 15

    def test_no_markers(self):
        assert map_view([]) is None


def test_info_window_is_escaped():
    physician = make_physician(1, "Someone <Longname>", [make_location("Clinic", point=Point(45.0, -75.0))])
    html = info_window_html(build_markers([_item(physician)])[0])
    assert "Dr. Someone &lt;Longname&gt;" in html


def test_map_figure_carries_marker_keys(sample_records):
    markers = build_markers([_item(sample_records[0]), _item(sample_records[3])])
    fig = build_map_figure(markers, markers[0].key)

    keys = [row[0] for row in fig.data[0].customdata]
    assert keys == [m.key for m in markers]


def test_selected_marker_key_from_event():
    event = {"selection": {"points": [{"customdata": ["org-123"]}]}}
    assert selected_marker_key(event) == "org-123"
    assert selected_marker_key({"selection": {"points": []}}) is None
    assert selected_marker_key(None) is None


def test_list_pick_follows_selected_marker():
    options = ["", "org-1", "org-2"]
    assert list_pick_value(options, "org-2") == "org-2"
    assert list_pick_value(options, "org-9") == ""
    assert list_pick_value(options, None) == ""
