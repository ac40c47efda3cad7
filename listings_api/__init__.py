"""
Listings marketplace search and ranking API
"""
from .entities import Listing, Owner, SearchRequest
from .geo import GeocenterError, bounding_box, haversine_meters
from .predicates import Predicate, build_predicate
from .scoring import rank_by_relevance, relevance_score
from .search import SearchOutcome, nearby_listings, search_listings

__version__ = "1.0.0"

__all__ = [
    "Listing",
    "Owner",
    "SearchRequest",
    "GeocenterError",
    "bounding_box",
    "haversine_meters",
    "Predicate",
    "build_predicate",
    "rank_by_relevance",
    "relevance_score",
    "SearchOutcome",
    "nearby_listings",
    "search_listings",
]
