"""Candidate filtering: narrows physician records by structured criteria.

Every rule is optional and all of them are ANDed. Location rules (city,
province, postal code) are satisfied by any one of a physician's practice
locations; only the locations that satisfy them become result items.
"""

import logging
from typing import Iterable, List, Tuple

from src.data.models import PhysicianRecord, PracticeLocation, PracticePopulation, SearchCriteria
from src.utils.addressing import normalize_postal_code, normalize_province, postal_prefix
from src.utils.matching import name_matches

logger = logging.getLogger(__name__)


def city_matches(location: PracticeLocation, city: str) -> bool:
    """Case-insensitive substring. A location without a stored city is not excluded."""
    if not city or not location.city:
        return True
    return city.casefold() in location.city.casefold()


def province_matches(location: PracticeLocation, province_code: str) -> bool:
    if not province_code:
        return True
    stored = location.province_code or normalize_province(location.province)
    return stored == province_code


def postal_matches(location: PracticeLocation, postal_code: str) -> bool:
    """Full-code substring match, or same forward sortation area.

    A location without a stored postal code is not excluded.
    """
    if not postal_code:
        return True
    stored = normalize_postal_code(location.postal_code)
    if not stored:
        return True
    search = normalize_postal_code(postal_code)
    return search in stored or postal_prefix(search) in stored


def location_matches(location: PracticeLocation, criteria: SearchCriteria) -> bool:
    return (
        city_matches(location, criteria.city)
        and province_matches(location, criteria.province)
        and postal_matches(location, criteria.postal_code)
    )


def population_matches(physician: PhysicianRecord, wanted) -> bool:
    if wanted is None or wanted is PracticePopulation.ALL:
        return True
    populations = {physician.practice_population}
    populations.update(loc.practice_population for loc in physician.locations)
    populations.discard(None)
    return wanted in populations or PracticePopulation.ALL in populations


def qualifying_locations(criteria: SearchCriteria, physician: PhysicianRecord) -> List[Tuple[int, PracticeLocation]]:
    """(insertion index, location) pairs that satisfy the location criteria."""
    return [
        (index, location)
        for index, location in enumerate(physician.locations)
        if location_matches(location, criteria)
    ]


def physician_matches(criteria: SearchCriteria, physician: PhysicianRecord) -> bool:
    if not physician.is_published or not physician.searchable:
        return False
    if criteria.name and not name_matches(criteria.name, physician.name):
        return False
    if criteria.oit is not None and physician.oit != criteria.oit:
        return False
    if not population_matches(physician, criteria.practice_population):
        return False
    if criteria.has_location_criteria and not qualifying_locations(criteria, physician):
        return False
    return True


def filter_physicians(criteria: SearchCriteria, records: Iterable[PhysicianRecord]) -> List[PhysicianRecord]:
    """Physicians matching the structured criteria, in input order."""
    records = list(records)
    matched = [physician for physician in records if physician_matches(criteria, physician)]
    logger.debug(f"Candidate filter kept {len(matched)} of {len(records)} physicians")
    return matched
