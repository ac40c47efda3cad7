"""
Relevance scoring for free-text searches.
"""
from typing import List, Sequence, Tuple

from .entities import Listing


TITLE_MATCH = 10
TITLE_EXACT_BONUS = 5
TAG_MATCH = 8
KEYWORD_MATCH = 7
PROVINCE_MATCH = 6
DISTRICT_MATCH = 5
STREET_MATCH = 4
DESCRIPTION_MATCH = 3
FEATURED_BOOST = 2
URGENT_BOOST = 1
VIEWS_PER_POINT = 100
MAX_POPULARITY_BOOST = 3


def relevance_score(listing: Listing, search_text: str) -> float:
    """
    Weighted score of how well `listing` matches `search_text`.

    All text checks are case-insensitive substring tests. Tags and keywords
    count once per matching entry. Featured/urgent flags and view count add
    small boosts. Empty text scores 0.
    """
    if not search_text:
        return 0
    q = search_text.lower()
    score: float = 0

    title = listing.title.lower()
    if q in title:
        score += TITLE_MATCH
        if title == q:
            score += TITLE_EXACT_BONUS

    score += TAG_MATCH * sum(1 for tag in listing.tags if q in tag.lower())
    score += KEYWORD_MATCH * sum(1 for kw in listing.keywords if q in kw.lower())

    if q in listing.province.lower():
        score += PROVINCE_MATCH
    if q in listing.district.lower():
        score += DISTRICT_MATCH
    if q in listing.street.lower():
        score += STREET_MATCH
    if q in listing.description.lower():
        score += DESCRIPTION_MATCH

    if listing.featured:
        score += FEATURED_BOOST
    if listing.urgent:
        score += URGENT_BOOST

    if listing.view_count > 0:
        score += min(listing.view_count / VIEWS_PER_POINT, MAX_POPULARITY_BOOST)

    return score


def rank_by_relevance(listings: Sequence[Listing], search_text: str) -> List[Tuple[Listing, float]]:
    """
    Score and order listings, best first.

    The sort is stable: listings with equal scores keep the order they were
    fetched in (newest first unless another sort was asked for).
    """
    scored = [(listing, relevance_score(listing, search_text)) for listing in listings]
    return sorted(scored, key=lambda pair: pair[1], reverse=True)
