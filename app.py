"""
Streamlit app entrypoint - navigation and shared page helpers.

Run with ``streamlit run app.py``. Pages import the cached helpers below:
- ``get_profile_store``: the profile export, loaded once per process
- ``geocode_cached``: origin lookups cached per address for an hour
"""

from __future__ import annotations

import logging
from typing import Tuple

import streamlit as st

from src.data.ingestion import ProfileStore, load_profile_store
from src.data.models import Point
from src.utils.config import get_app_config, validate_configuration
from src.utils.geocoding import geocode

st.set_page_config(page_title="Find an Allergist", page_icon="🩺", layout="wide")

logging.basicConfig(
    level=str(get_app_config()["log_level"]).upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

__all__ = ["geocode_cached", "get_profile_store"]


@st.cache_data(ttl=3600, show_spinner=False)
def _cached_origin(address_text: str) -> Tuple[float, float]:
    # GeocodeError propagates and is not cached, so failures are retried on resubmit.
    point = geocode(address_text)
    return point.lat, point.lng


def geocode_cached(address_text: str) -> Point:
    lat, lng = _cached_origin(address_text)
    return Point(lat, lng)


def get_profile_store() -> ProfileStore:
    """Shared profile store. NetworkError propagates to the calling page."""
    return load_profile_store()


_nav_items = [
    ("pages/1_🔎_Search.py", "Search", "🔎"),
    ("pages/2_📄_Results.py", "Results", "📄"),
]


def _build_and_run_app():
    """Build navigation. Kept out of import time so pages can import this module."""
    for component, issue in validate_configuration().items():
        logger.warning(f"Configuration issue ({component}): {issue}")

    nav_pages = [st.Page(path, title=title, icon=icon) for path, title, icon in _nav_items]
    pg = st.navigation(nav_pages)
    pg.run()


if __name__ == "__main__":
    _build_and_run_app()
