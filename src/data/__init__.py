"""Data package for Find an Allergist: records and the profile store."""

from .models import (
    PhysicianRecord,
    PracticeLocation,
    PracticePopulation,
    Point,
    ResultPage,
    SearchCriteria,
    SearchResultItem,
)

__all__ = [
    "PhysicianRecord",
    "PracticeLocation",
    "PracticePopulation",
    "Point",
    "ResultPage",
    "SearchCriteria",
    "SearchResultItem",
]
