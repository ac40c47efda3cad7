"""
Pydantic models for API request/response serialization.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, model_serializer
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for response models: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OwnerOut(ApiModel):
    id: str
    name: str = ""
    email: str = ""
    avatar: str = ""


class AddressOut(ApiModel):
    street: str = ""
    district: str = ""
    province: str = ""


class PointOut(ApiModel):
    latitude: float
    longitude: float


class LocationOut(ApiModel):
    address: AddressOut
    coordinates: Optional[PointOut] = None
    boundary: List[List[float]] = []


class ListingOut(ApiModel):
    """Public projection of a listing."""
    id: str
    title: str
    description: str = ""
    price: float
    area: float
    property_type: str
    listing_type: str
    condition: str
    status: str
    featured: bool = False
    urgent: bool = False
    tags: List[str] = []
    keywords: List[str] = []
    location: LocationOut
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    road_access: Optional[bool] = None
    water_source: Optional[bool] = None
    utilities: List[str] = []
    images: List[str] = []
    view_count: int = 0
    author: Optional[OwnerOut] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class SearchResultOut(ListingOut):
    """A listing in a search page, with the computed fields that apply."""
    distance_meters: Optional[int] = None
    relevance_score: Optional[float] = None

    @model_serializer(mode="wrap")
    def _drop_absent_annotations(self, handler):
        data = handler(self)
        for key in ("distanceMeters", "distance_meters", "relevanceScore", "relevance_score"):
            if key in data and data[key] is None:
                del data[key]
        return data


class PaginationOut(ApiModel):
    page: int
    page_size: int
    total: int
    total_pages: int


class RangeOut(ApiModel):
    min: Optional[float] = None
    max: Optional[float] = None


class BoundingBoxOut(ApiModel):
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float


class SearchCenterOut(ApiModel):
    latitude: float
    longitude: float
    radius_meters: float
    bounding_box: BoundingBoxOut


class AppliedFiltersOut(ApiModel):
    """Echo of the filters that shaped the result, for client display."""
    search_text: Optional[str] = None
    property_type: Optional[str] = None
    listing_type: Optional[str] = None
    condition: Optional[str] = None
    featured: Optional[bool] = None
    urgent: Optional[bool] = None
    price_range: Optional[RangeOut] = None
    area_range: Optional[RangeOut] = None
    location: Dict[str, Optional[str]] = {}
    house_details: Optional[Dict[str, Optional[int]]] = None
    land_details: Optional[Dict[str, Optional[bool]]] = None
    sort_by: str
    search_center: Optional[SearchCenterOut] = None


class SearchResponse(ApiModel):
    results: List[SearchResultOut]
    pagination: PaginationOut
    applied_filters: AppliedFiltersOut


class ProvinceCount(ApiModel):
    province: str
    count: int


class PriceBucket(ApiModel):
    range: str
    count: int


class StatsOut(ApiModel):
    """Model for search statistics."""
    total_listings: int
    by_property_type: Dict[str, int]
    top_provinces: List[ProvinceCount]
    price_distribution: List[PriceBucket]
