"""Pytest configuration helpers.

Ensure the project root is on sys.path so tests can import the `src` package
when pytest is invoked from the repository root or an isolated test runner,
and provide a small physician directory plus a fake geocoder.
"""

import sys
from pathlib import Path

import pytest


def pytest_configure():
    # Insert the repository root (parent of the tests directory) at the front
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root))


# One degree of latitude under the directory's distance formula, in km
KM_PER_DEGREE_LAT = 60 * 1.1515 * 1.609344

TORONTO = (43.6532, -79.3832)
OTTAWA = (45.4215, -75.6972)


def north_of_toronto(km):
    """Point due north of Toronto at (almost exactly) ``km`` kilometres."""
    from src.data.models import Point

    return Point(TORONTO[0] + km / KM_PER_DEGREE_LAT, TORONTO[1])


def make_location(institution, city="Toronto", province_code="ON", postal="", point=None, **kwargs):
    from src.data.models import PracticeLocation
    from src.utils.addressing import province_name

    return PracticeLocation(
        institution_name=institution,
        street=kwargs.pop("street", f"{len(institution)} Queen St W"),
        city=city,
        province=province_name(province_code),
        province_code=province_code,
        postal_code=postal,
        point=point,
        **kwargs,
    )


def make_physician(record_id, name, locations=(), **kwargs):
    from src.data.models import PhysicianRecord

    return PhysicianRecord(id=record_id, name=name, locations=list(locations), **kwargs)


@pytest.fixture
def sample_records():
    """A small directory covering the interesting record shapes."""
    from src.data.models import Point, PracticePopulation

    return [
        make_physician(
            101,
            "Alexandra Smith",
            [make_location("Downtown Allergy Clinic", postal="M5H2N2", point=north_of_toronto(5), phone="4165550101")],
            credentials="MD, FRCPC",
            practice_population=PracticePopulation.ADULTS,
            oit=True,
            author_id=7,
        ),
        make_physician(
            102,
            "Benjamin Okonkwo-Fairweather",
            [
                make_location("Uptown Asthma Centre", postal="M4N3M5", point=north_of_toronto(25)),
                make_location("Limestone Allergy Clinic", city="Kingston", postal="K7L3N6", point=Point(44.2312, -76.486)),
            ],
            practice_population=PracticePopulation.PEDIATRIC,
        ),
        make_physician(
            103,
            "Catherine Villeneuve-Tremblay",
            [make_location("Richmond Hill Immunology", city="Richmond Hill", postal="L4C4Y8", point=north_of_toronto(45))],
            practice_population=PracticePopulation.ALL,
            oit=True,
        ),
        make_physician(
            104,
            "Harriet Smithfield",
            [make_location("Capital Allergy Group", city="Ottawa", postal="K1A0B1", point=Point(*OTTAWA))],
            practice_population=PracticePopulation.ADULTS,
        ),
        make_physician(
            105,
            "Oliver Quennell-Abernathy",
            [make_location("Harbourfront Allergy", point=north_of_toronto(2))],
            status="draft",
        ),
        make_physician(
            106,
            "Priya Ramaswamy-Lindqvist",
            [make_location("Annex Allergy", point=north_of_toronto(3))],
            searchable=False,
        ),
        make_physician(107, "Theodore Wexford-Blackwood"),
        make_physician(
            108,
            "Marguerite Delacroix-Huntington",
            [make_location("Midtown Allergy Associates", postal="M4S2B8")],
        ),
    ]


class FakeGeocoder:
    """Callable stand-in for ``geocode``: matches queries by substring."""

    def __init__(self, places=None, error=None):
        from src.data.models import Point

        self.places = places if places is not None else {"Toronto": Point(*TORONTO), "Ottawa": Point(*OTTAWA)}
        self.error = error
        self.calls = []

    def __call__(self, query):
        from src.utils.errors import GeocodeError, GeocodeFailure

        self.calls.append(query)
        if self.error is not None:
            raise self.error
        for needle, point in self.places.items():
            if needle.lower() in query.lower():
                return point
        raise GeocodeError(GeocodeFailure.NO_MATCH, query)


@pytest.fixture
def fake_geocoder():
    return FakeGeocoder()


@pytest.fixture
def toronto_geocoder():
    """Resolves every query to downtown Toronto."""
    from src.data.models import Point

    return FakeGeocoder(places={"": Point(*TORONTO)})
