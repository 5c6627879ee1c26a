"""
Find an Allergist - JSON search API

Exposes the same search pipeline as the Streamlit pages:
  - GET /api/physicians/search   ranked, paginated, grouped per physician
  - GET /api/physicians/{id}     one published profile with all locations
  - GET /api/health              liveness plus the number of loaded profiles

Usage:
    uvicorn src.api:app --port 8000
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from fastapi import APIRouter, FastAPI, HTTPException, Query, Request

from src.app_logic import paginate, run_search
from src.data.ingestion import ProfileStore, load_profile_store_uncached
from src.data.models import PhysicianRecord, SearchCriteria, SearchResultItem
from src.utils.config import get_search_config
from src.utils.errors import GENERIC_RETRY_TEXT, NetworkError, ValidationError
from src.utils.geocoding import geocode
from src.utils.rendering import group_page_items, location_marker_key

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 100

router = APIRouter()


def get_store(request: Request) -> ProfileStore:
    """Profile store of this app; loaded from the configured export on first use."""
    store = request.app.state.store
    if store is None:
        try:
            store = load_profile_store_uncached()
        except NetworkError as e:
            logger.error(f"Profile store unavailable: {e}")
            raise HTTPException(status_code=503, detail={"code": "unavailable", "message": GENERIC_RETRY_TEXT})
        request.app.state.store = store
    return store


def physician_summary(physician: PhysicianRecord) -> Dict[str, Any]:
    return {
        "id": physician.id,
        "name": physician.name,
        "title": physician.display_name,
        "link": physician.link,
        "credentials": physician.credentials,
        "oit": physician.oit,
        "practice_population": physician.practice_population.value if physician.practice_population else None,
    }


def group_results(items: List[SearchResultItem]) -> List[Dict[str, Any]]:
    """One entry per physician run on the page, locations nested in rank order."""
    results = []
    for group in group_page_items(items):
        entry = physician_summary(group.physician)
        entry["locations"] = [item.location_dict() for item in group.items if item.location is not None]
        results.append(entry)
    return results


@router.get("/api/physicians/search")
def search_physicians(request: Request) -> Dict[str, Any]:
    """Search published physicians.

    Query parameters: name (or fname/lname), city, province, postal,
    kms (or radius), oit, prac_pop, page, per_page.
    """
    search_config = get_search_config()
    criteria = SearchCriteria.from_params(request.query_params, default_radius_km=search_config["default_radius_km"])
    store = get_store(request)
    geocoder: Callable = request.app.state.geocoder or geocode

    try:
        outcome = run_search(criteria, store.published(), geocoder=geocoder)
    except ValidationError as e:
        logger.info(f"Rejected search request: {e.code}")
        raise HTTPException(status_code=400, detail={"code": e.code, "message": e.message})

    per_page = criteria.per_page or search_config["results_per_page"]
    per_page = max(1, min(per_page, MAX_PER_PAGE))
    result_page = paginate(outcome.items, criteria.page, per_page)

    logger.info(
        f"Search returned {outcome.count} items; page {result_page.page}/{result_page.total_pages}"
    )
    return {
        "page": result_page.page,
        "per_page": result_page.per_page,
        "count": outcome.count,
        "total_pages": result_page.total_pages,
        "origin": {"lat": outcome.origin.lat, "lng": outcome.origin.lng} if outcome.origin else None,
        "radius_applied": outcome.radius_applied,
        "notice": outcome.notice,
        "results": group_results(result_page.items),
    }


@router.get("/api/physicians/{physician_id}")
def physician_detail(
    request: Request,
    physician_id: int,
    user_id: Optional[int] = Query(None, description="Visitor id for the edit capability check"),
) -> Dict[str, Any]:
    store = get_store(request)
    physician = store.get(physician_id)
    if physician is None or not physician.is_published:
        raise HTTPException(status_code=404, detail={"code": "not_found", "message": "Physician not found"})

    detail = physician_summary(physician)
    detail["special_interests"] = physician.special_interests
    detail["treatment_services"] = list(physician.treatment_services)
    detail["locations"] = [
        SearchResultItem(
            physician=physician,
            location=location,
            location_index=index,
            marker_key=location_marker_key(physician, location),
        ).location_dict()
        for index, location in enumerate(physician.locations)
    ]
    if user_id is not None:
        detail["can_edit"] = store.can_edit(user_id, physician_id)
    return detail


@router.get("/api/health")
def health(request: Request) -> Dict[str, Any]:
    store = get_store(request)
    return {"status": "ok", "physicians": len(store.published())}


def create_app(store: Optional[ProfileStore] = None, geocoder: Optional[Callable] = None) -> FastAPI:
    """Build the API app.

    Args:
        store: Profile store to serve; loaded from configuration when omitted
        geocoder: Callable ``(address_text) -> Point``; geopy-backed by default
    """
    app = FastAPI(title="Find an Allergist API", version="1.0.0")
    app.state.store = store
    app.state.geocoder = geocoder
    app.include_router(router)
    return app


app = create_app()
