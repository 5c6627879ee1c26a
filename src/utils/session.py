"""Per-visitor search state kept in ``st.session_state``.

Lifecycle: IDLE -> SEARCHING -> DISPLAYED (any page) -> IDLE, with ERROR
reachable from SEARCHING. Starting a search cancels the ticket of any search
still in flight, so a late completion of a superseded search is dropped.
Page navigation only slices the stored ranked list.
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Set

from src.app_logic import paginate
from src.data.models import ResultPage, SearchCriteria, SearchResultItem
from src.utils.errors import GeocodeError, SearchCancelled, UserMessage, describe_error
from src.utils.rendering import MapMarker, build_markers, marker_keys_for

logger = logging.getLogger(__name__)

SESSION_KEY = "search_session"


class SearchState(Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    DISPLAYED = "displayed"
    ERROR = "error"


@dataclass(slots=True)
class SearchTicket:
    """Handle for one in-flight search."""

    number: int
    criteria: SearchCriteria
    cancel_event: threading.Event = field(default_factory=threading.Event)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise SearchCancelled(f"search #{self.number} superseded")


class SearchSession:
    def __init__(self, per_page: int = 20):
        self.per_page = per_page
        self.state = SearchState.IDLE
        self.criteria: Optional[SearchCriteria] = None
        self.items: List[SearchResultItem] = []
        self.markers: List[MapMarker] = []
        self.marker_keys: Set[str] = set()
        self.current_page = 1
        self.selected_marker: Optional[str] = None
        self.notice = ""
        self.geocode_error: Optional[GeocodeError] = None
        self.message: Optional[UserMessage] = None
        self._ticket: Optional[SearchTicket] = None
        self._counter = 0
        self._lock = threading.Lock()

    @property
    def has_results(self) -> bool:
        return bool(self.items)

    def is_new_search(self, criteria: SearchCriteria) -> bool:
        """Whether ``criteria`` differ from the search currently shown."""
        if self.criteria is None:
            return True
        return self.criteria.search_key() != criteria.search_key()

    def begin_search(self, criteria: SearchCriteria) -> SearchTicket:
        with self._lock:
            if self._ticket is not None:
                logger.debug(f"Cancelling search #{self._ticket.number}")
                self._ticket.cancel()
            self._counter += 1
            ticket = SearchTicket(number=self._counter, criteria=criteria)
            self._ticket = ticket
            self.state = SearchState.SEARCHING
            self.message = None
            return ticket

    def _accepts(self, ticket: SearchTicket) -> bool:
        return ticket is self._ticket and not ticket.cancelled

    def complete(self, ticket: SearchTicket, outcome) -> bool:
        """Store a finished search. Returns False for a superseded ticket."""
        with self._lock:
            if not self._accepts(ticket):
                logger.debug(f"Dropping result of superseded search #{ticket.number}")
                return False
            self._ticket = None
            self.criteria = outcome.criteria
            self.items = list(outcome.items)
            self.markers = build_markers(self.items)
            self.marker_keys = marker_keys_for(self.items)
            self.current_page = 1
            self.selected_marker = None
            self.notice = outcome.notice
            self.geocode_error = outcome.geocode_error
            self.state = SearchState.DISPLAYED
            logger.info(f"Search #{ticket.number} displayed {len(self.items)} results")
            return True

    def fail(self, ticket: SearchTicket, error: BaseException) -> bool:
        """Record a failed search; previous results stay available."""
        with self._lock:
            if not self._accepts(ticket):
                return False
            self._ticket = None
            self.message = describe_error(error)
            self.state = SearchState.ERROR
            return True

    def go_to_page(self, page: int) -> ResultPage:
        # A failed search keeps showing the previous results.
        if not (self.state is SearchState.DISPLAYED or (self.state is SearchState.ERROR and self.items)):
            raise RuntimeError(f"No results to page through (state: {self.state.value})")
        result_page = paginate(self.items, page, self.per_page)
        self.current_page = result_page.page
        return result_page

    def page(self) -> ResultPage:
        return self.go_to_page(self.current_page)

    def select_marker(self, key: Optional[str]) -> bool:
        """Remember the marker selected from the list or map.

        Returns False (and keeps the previous selection) for an unknown key.
        """
        if key is None:
            self.selected_marker = None
            return True
        if key not in self.marker_keys:
            return False
        self.selected_marker = key
        return True

    def page_of_marker(self, key: str) -> Optional[int]:
        """1-based page that lists the item carrying ``key``."""
        for index, item in enumerate(self.items):
            if item.marker_key == key:
                return index // self.per_page + 1
        return None

    def clear(self) -> None:
        with self._lock:
            if self._ticket is not None:
                self._ticket.cancel()
            self._ticket = None
            self.state = SearchState.IDLE
            self.criteria = None
            self.items = []
            self.markers = []
            self.marker_keys = set()
            self.current_page = 1
            self.selected_marker = None
            self.notice = ""
            self.geocode_error = None
            self.message = None


def get_session(state, per_page: int = 20) -> SearchSession:
    """Fetch (or create) the visitor's SearchSession from a session-state mapping."""
    session = state.get(SESSION_KEY)
    if session is None:
        session = SearchSession(per_page=per_page)
        state[SESSION_KEY] = session
    return session
