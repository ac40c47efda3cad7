"""
Turns search outcomes into API responses.

Owners are resolved with one batched lookup per page. A listing whose owner
reference is empty, malformed or unknown is returned with `author: null`
instead of failing the page.
"""
import logging
import re
from typing import Dict, Iterable, Optional

from . import database
from .entities import Listing, Owner, SearchRequest
from .models import (
    AppliedFiltersOut, BoundingBoxOut, ListingOut, LocationOut, OwnerOut,
    PaginationOut, PointOut, RangeOut, SearchCenterOut, SearchResponse,
    SearchResultOut,
)
from .search import MODE_DISTANCE, MODE_RELEVANCE, SearchOutcome, field_sort_key

logger = logging.getLogger(__name__)

OWNER_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def is_valid_owner_id(owner_id: Optional[str]) -> bool:
    return bool(owner_id) and isinstance(owner_id, str) and bool(OWNER_ID_RE.match(owner_id))


def resolve_owners(listings: Iterable[Listing]) -> Dict[str, Owner]:
    """Fetch owners for all well-formed references in a single query."""
    owner_ids = {l.author_id for l in listings if is_valid_owner_id(l.author_id)}
    if not owner_ids:
        return {}
    owners = database.get_owners(owner_ids)
    missing = owner_ids - owners.keys()
    if missing:
        logger.debug(f"{len(missing)} owner reference(s) not found")
    return owners


def _owner_out(listing: Listing, owners: Dict[str, Owner]) -> Optional[OwnerOut]:
    if not is_valid_owner_id(listing.author_id):
        return None
    owner = owners.get(listing.author_id)
    if owner is None:
        return None
    return OwnerOut(id=owner.id, name=owner.name, email=owner.email, avatar=owner.avatar)


def _listing_fields(listing: Listing, owners: Dict[str, Owner]) -> dict:
    coordinates = None
    if listing.latitude is not None and listing.longitude is not None:
        coordinates = PointOut(latitude=listing.latitude, longitude=listing.longitude)
    return dict(
        id=listing.id,
        title=listing.title,
        description=listing.description,
        price=listing.price,
        area=listing.area,
        property_type=listing.property_type,
        listing_type=listing.listing_type,
        condition=listing.condition,
        status=listing.status,
        featured=listing.featured,
        urgent=listing.urgent,
        tags=listing.tags,
        keywords=listing.keywords,
        location=LocationOut(
            address={"street": listing.street, "district": listing.district, "province": listing.province},
            coordinates=coordinates,
            boundary=[list(p) for p in listing.boundary],
        ),
        bedrooms=listing.bedrooms,
        bathrooms=listing.bathrooms,
        road_access=listing.road_access,
        water_source=listing.water_source,
        utilities=listing.utilities,
        images=listing.images,
        view_count=listing.view_count,
        author=_owner_out(listing, owners),
        created_at=listing.created_at,
        updated_at=listing.updated_at,
    )


def to_listing_out(listing: Listing, owners: Optional[Dict[str, Owner]] = None) -> ListingOut:
    if owners is None:
        owners = resolve_owners([listing])
    return ListingOut(**_listing_fields(listing, owners))


def _range(minimum: Optional[float], maximum: Optional[float]) -> Optional[RangeOut]:
    if minimum is None and maximum is None:
        return None
    return RangeOut(min=minimum, max=maximum)


def applied_filters(outcome: SearchOutcome) -> AppliedFiltersOut:
    request: SearchRequest = outcome.request
    search_center = None
    if outcome.proximity is not None:
        box = outcome.proximity.bounding_box()
        search_center = SearchCenterOut(
            latitude=outcome.proximity.latitude,
            longitude=outcome.proximity.longitude,
            radius_meters=outcome.proximity.radius_meters,
            bounding_box=BoundingBoxOut(
                min_lat=box.min_lat, max_lat=box.max_lat,
                min_lng=box.min_lng, max_lng=box.max_lng,
            ),
        )

    house_details = None
    if request.bedrooms is not None or request.bathrooms is not None:
        house_details = {"bedrooms": request.bedrooms, "bathrooms": request.bathrooms}

    land_details = None
    land_flags = (request.road_access, request.water_source, request.has_electricity)
    if any(flag is not None for flag in land_flags):
        land_details = {
            "roadAccess": request.road_access,
            "waterSource": request.water_source,
            "hasElectricity": request.has_electricity,
        }

    if outcome.mode == MODE_RELEVANCE:
        sort_by = "relevance"
    elif outcome.mode == MODE_DISTANCE:
        sort_by = "distance"
    else:
        sort_by = field_sort_key(request)

    return AppliedFiltersOut(
        search_text=request.search_text,
        property_type=request.property_type,
        listing_type=request.listing_type,
        condition=request.condition,
        featured=request.featured,
        urgent=request.urgent,
        price_range=_range(request.min_price, request.max_price),
        area_range=_range(request.min_area, request.max_area),
        location={"province": request.province, "district": request.district},
        house_details=house_details,
        land_details=land_details,
        sort_by=sort_by,
        search_center=search_center,
    )


def assemble_response(outcome: SearchOutcome) -> SearchResponse:
    """Build the {results, pagination, appliedFilters} envelope."""
    owners = resolve_owners(r.listing for r in outcome.results)
    results = [
        SearchResultOut(
            **_listing_fields(r.listing, owners),
            distance_meters=r.distance_meters,
            relevance_score=r.relevance_score,
        )
        for r in outcome.results
    ]
    pagination = PaginationOut(
        page=outcome.request.page,
        page_size=outcome.request.page_size,
        total=outcome.total,
        total_pages=outcome.total_pages,
    )
    return SearchResponse(
        results=results,
        pagination=pagination,
        applied_filters=applied_filters(outcome),
    )
