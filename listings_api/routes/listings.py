"""
API route handlers for listing search endpoints.
"""
import logging
from typing import Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
import pandas as pd

from ..assembler import assemble_response, to_listing_out
from ..config import config
from ..database import find_listings, get_listing
from ..entities import SearchRequest
from ..geo import GeocenterError, build_proximity_filter
from ..models import ListingOut, SearchResponse
from ..predicates import build_predicate
from ..search import SearchOutcome, field_sort_key, nearby_listings, search_listings
from ..utils import clean_text, to_bool, to_float, to_int

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["listings"])

EXPORT_COLUMNS = [
    "id", "title", "property_type", "listing_type", "condition", "price", "area",
    "province", "district", "street", "latitude", "longitude", "featured", "urgent",
    "view_count", "created_at",
]


def _parsed(name: str, raw: Optional[str], parser: Callable):
    """Parse a tolerant query value; unparsable values are dropped."""
    value = parser(raw)
    if raw is not None and raw.strip() and value is None:
        logger.debug(f"Ignoring malformed {name}={raw!r}")
    return value


def get_search_request(
    page: int = Query(1, ge=1),
    page_size: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE, alias="pageSize"),
    property_type: Optional[str] = Query(None, alias="propertyType"),
    listing_type: Optional[str] = Query(None, alias="listingType"),
    province: Optional[str] = None,
    district: Optional[str] = None,
    min_price: Optional[str] = Query(None, alias="minPrice"),
    max_price: Optional[str] = Query(None, alias="maxPrice"),
    min_area: Optional[str] = Query(None, alias="minArea"),
    max_area: Optional[str] = Query(None, alias="maxArea"),
    bedrooms: Optional[str] = None,
    bathrooms: Optional[str] = None,
    condition: Optional[str] = None,
    featured: Optional[str] = None,
    urgent: Optional[str] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    latitude: Optional[str] = None,
    longitude: Optional[str] = None,
    radius_meters: Optional[str] = Query(None, alias="radiusMeters"),
    search_text: Optional[str] = Query(None, alias="searchText"),
    road_access: Optional[str] = Query(None, alias="roadAccess"),
    water_source: Optional[str] = Query(None, alias="waterSource"),
    has_electricity: Optional[str] = Query(None, alias="hasElectricity"),
) -> SearchRequest:
    """
    Dependency to extract search parameters.

    Numeric filters that do not parse are ignored rather than rejected.
    Latitude and longitude are different: a value that is present but not a
    number is a bad geocenter and fails the request.
    """
    lat = to_float(latitude)
    lng = to_float(longitude)
    if any(raw and raw.strip() and value is None for raw, value in ((latitude, lat), (longitude, lng))):
        raise HTTPException(status_code=400, detail="Invalid latitude or longitude values")

    radius = _parsed("radiusMeters", radius_meters, to_float)
    return SearchRequest(
        page=page,
        page_size=page_size,
        property_type=clean_text(property_type) or None,
        listing_type=clean_text(listing_type) or None,
        condition=clean_text(condition) or None,
        featured=to_bool(featured),
        urgent=to_bool(urgent),
        bedrooms=_parsed("bedrooms", bedrooms, to_int),
        bathrooms=_parsed("bathrooms", bathrooms, to_int),
        road_access=to_bool(road_access),
        water_source=to_bool(water_source),
        has_electricity=to_bool(has_electricity),
        province=clean_text(province) or None,
        district=clean_text(district) or None,
        min_price=_parsed("minPrice", min_price, to_float),
        max_price=_parsed("maxPrice", max_price, to_float),
        min_area=_parsed("minArea", min_area, to_float),
        max_area=_parsed("maxArea", max_area, to_float),
        search_text=clean_text(search_text) or None,
        latitude=lat,
        longitude=lng,
        radius_meters=radius if radius is not None else config.DEFAULT_RADIUS_METERS,
        sort_by=clean_text(sort_by) or None,
    )


def _run(search: Callable[[SearchRequest], SearchOutcome], request: SearchRequest) -> SearchResponse:
    try:
        outcome = search(request)
        return assemble_response(outcome)
    except GeocenterError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error searching listings: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/listings/search", response_model=SearchResponse)
def search_api_listings(request: SearchRequest = Depends(get_search_request)):
    """Search approved listings with filters, free text and proximity."""
    return _run(search_listings, request)


@router.get("/listings/nearby", response_model=SearchResponse)
def get_nearby_listings(request: SearchRequest = Depends(get_search_request)):
    """Listings around a point, nearest first."""
    return _run(nearby_listings, request)


@router.get("/listings/{listing_id}", response_model=ListingOut)
def get_api_listing(listing_id: str):
    """Get a specific approved listing by ID."""
    try:
        listing = get_listing(listing_id)
        if not listing:
            raise HTTPException(status_code=404, detail="Listing not found")

        return to_listing_out(listing)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching listing {listing_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/export/csv")
def export_listings_csv(request: SearchRequest = Depends(get_search_request)):
    """Export listings matching the filters as CSV, in field-sort order."""
    try:
        predicate = build_predicate(request)
        proximity = build_proximity_filter(request.latitude, request.longitude, request.radius_meters)
        if proximity is not None:
            predicate = predicate & proximity.predicate()
        listings = find_listings(predicate, field_sort_key(request), limit=config.EXPORT_LIMIT, offset=0)

        if not listings:
            # Return empty CSV with headers
            df = pd.DataFrame(columns=EXPORT_COLUMNS)
        else:
            df = pd.DataFrame([{c: getattr(l, c) for c in EXPORT_COLUMNS} for l in listings])

        csv_content = df.to_csv(index=False).encode('utf-8')

        return StreamingResponse(
            iter([csv_content]),
            media_type='text/csv',
            headers={'Content-Disposition': 'attachment; filename="listings.csv"'}
        )

    except GeocenterError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error exporting CSV: {e}")
        raise HTTPException(status_code=500, detail="Error generating CSV export")
