"""
Search orchestration: picks a ranking strategy, fetches candidates from the
store and cuts out the requested page.

Three orderings are possible:

* distance  - nearest first, done by the store. Needs a geocenter.
* relevance - free text without a distance sort. The store cannot order by
              relevance, so a window of `page_size * multiplier` listings is
              fetched from the top, scored in memory, stably sorted and then
              sliced. Ranking is exact only while the number of matches fits
              in that window; matches beyond it are never seen.
* field     - everything else; the store sorts and paginates.

The total always comes from a separate count over the predicate, so the
pagination block does not depend on the strategy.
"""
import logging
import math
from dataclasses import dataclass, field, replace
from typing import List, Optional

from . import database
from .config import config
from .entities import DEFAULT_SORT, Listing, SearchRequest
from .geo import GeocenterError, ProximityFilter, build_proximity_filter
from .predicates import Predicate, build_predicate
from .scoring import rank_by_relevance, relevance_score

logger = logging.getLogger(__name__)

MODE_DISTANCE = "distance"
MODE_RELEVANCE = "relevance"
MODE_FIELD = "field"


@dataclass
class RankedListing:
    listing: Listing
    distance_meters: Optional[int] = None
    relevance_score: Optional[float] = None


@dataclass
class SearchOutcome:
    request: SearchRequest
    mode: str
    total: int
    results: List[RankedListing] = field(default_factory=list)
    proximity: Optional[ProximityFilter] = None
    window_size: Optional[int] = None

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.request.page_size) if self.total else 0


def choose_sort_mode(request: SearchRequest) -> str:
    if request.sort_key == "distance" and request.has_geocenter:
        return MODE_DISTANCE
    if request.search_text and request.sort_key != "distance":
        return MODE_RELEVANCE
    return MODE_FIELD


def field_sort_key(request: SearchRequest) -> str:
    """Store sort used outside distance mode; distance without a center means newest."""
    if request.sort_key == "distance":
        return DEFAULT_SORT
    return request.sort_key


def search_listings(request: SearchRequest, window_multiplier: Optional[int] = None) -> SearchOutcome:
    """
    Run a search.

    Raises ValueError for a page or page size below 1, and GeocenterError
    when the center is incomplete or out of range, both before touching the
    store. Store errors propagate unchanged.
    """
    if request.page < 1:
        raise ValueError(f"Invalid page: {request.page}. Must be at least 1")
    if request.page_size < 1:
        raise ValueError(f"Invalid page size: {request.page_size}. Must be at least 1")

    proximity = build_proximity_filter(request.latitude, request.longitude, request.radius_meters)

    predicate = build_predicate(request)
    filtered = predicate & proximity.predicate() if proximity else predicate
    mode = choose_sort_mode(request)
    logger.debug(f"Search mode={mode} conditions={len(filtered.conditions)} page={request.page}")

    total = database.count_listings(filtered)
    outcome = SearchOutcome(request=request, mode=mode, total=total, proximity=proximity)

    if mode == MODE_RELEVANCE:
        multiplier = window_multiplier or config.RELEVANCE_WINDOW_MULTIPLIER
        outcome.window_size = request.page_size * multiplier
        outcome.results = _relevance_page(request, filtered, outcome.window_size)
        if total > outcome.window_size:
            logger.warning(
                f"Relevance window of {outcome.window_size} covers only part of "
                f"{total} matches for {request.search_text!r}"
            )
    elif mode == MODE_DISTANCE:
        listings = database.find_nearby(predicate, proximity, request.page_size, request.offset)
        outcome.results = _annotate_scores(listings, request.search_text)
    else:
        listings = database.find_listings(
            filtered, field_sort_key(request), request.page_size, request.offset
        )
        outcome.results = _annotate_scores(listings, request.search_text)

    if proximity is not None:
        for ranked in outcome.results:
            ranked.distance_meters = _distance(proximity, ranked.listing)

    return outcome


def nearby_listings(request: SearchRequest) -> SearchOutcome:
    """Nearest-first search. A geocenter is mandatory here."""
    if not request.has_geocenter:
        raise GeocenterError("Latitude and longitude are required")
    return search_listings(replace(request, sort_by="distance"))


def _relevance_page(request: SearchRequest, predicate: Predicate, window_size: int) -> List[RankedListing]:
    candidates = database.find_listings(predicate, field_sort_key(request), window_size, 0)
    ranked = rank_by_relevance(candidates, request.search_text)
    page = ranked[request.offset:request.offset + request.page_size]
    return [RankedListing(listing, relevance_score=score) for listing, score in page]


def _annotate_scores(listings: List[Listing], search_text: Optional[str]) -> List[RankedListing]:
    if not search_text:
        return [RankedListing(listing) for listing in listings]
    return [RankedListing(listing, relevance_score=relevance_score(listing, search_text))
            for listing in listings]


def _distance(proximity: ProximityFilter, listing: Listing) -> Optional[int]:
    # Always the reference point, even when the listing also has a boundary
    if listing.latitude is None or listing.longitude is None:
        return None
    return proximity.distance_to(listing.latitude, listing.longitude)
