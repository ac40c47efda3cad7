"""
Data models shared by the search engine and the store.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .utils import split_list


PROPERTY_TYPES = ("house", "land", "condo", "apartment", "villa", "townhouse")
LISTING_TYPES = ("sell", "rent", "lease")
CONDITIONS = ("new", "excellent", "good", "fair", "poor")
STATUSES = ("pending", "approved", "rejected", "sold", "rented")
SEARCHABLE_STATUS = "approved"

SORT_KEYS = ("newest", "oldest", "price_asc", "price_desc", "area_asc", "area_desc", "distance")
DEFAULT_SORT = "newest"


@dataclass
class Listing:
    """A property listing as stored. Read-only to the search engine."""

    id: str
    title: str
    description: str = ""
    price: float = 0.0
    area: float = 0.0
    property_type: str = "house"
    listing_type: str = "sell"
    condition: str = "good"
    status: str = "pending"
    featured: bool = False
    urgent: bool = False
    author_id: Optional[str] = None

    # Search metadata
    tags: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)

    # Location; the reference point is what distances are measured against
    street: str = ""
    district: str = ""
    province: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    boundary: List[Tuple[float, float]] = field(default_factory=list)

    # House / land details
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    road_access: Optional[bool] = None
    water_source: Optional[bool] = None
    utilities: List[str] = field(default_factory=list)

    images: List[str] = field(default_factory=list)
    view_count: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Listing":
        """Build a Listing from a `listings` table row."""
        boundary_json = row.get("boundary_json") or ""
        boundary = [tuple(p) for p in json.loads(boundary_json)] if boundary_json else []
        return cls(
            id=row["id"],
            title=row.get("title") or "",
            description=row.get("description") or "",
            price=row.get("price") or 0.0,
            area=row.get("area") or 0.0,
            property_type=row.get("property_type") or "",
            listing_type=row.get("listing_type") or "",
            condition=row.get("condition") or "",
            status=row.get("status") or "",
            featured=bool(row.get("featured")),
            urgent=bool(row.get("urgent")),
            author_id=row.get("author_id"),
            tags=split_list(row.get("tags")),
            keywords=split_list(row.get("keywords")),
            street=row.get("street") or "",
            district=row.get("district") or "",
            province=row.get("province") or "",
            latitude=row.get("latitude"),
            longitude=row.get("longitude"),
            boundary=boundary,
            bedrooms=row.get("bedrooms"),
            bathrooms=row.get("bathrooms"),
            road_access=_optional_bool(row.get("road_access")),
            water_source=_optional_bool(row.get("water_source")),
            utilities=split_list(row.get("utilities")),
            images=split_list(row.get("images")),
            view_count=row.get("view_count") or 0,
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


def _optional_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    return bool(value)


@dataclass
class Owner:
    """Display data for a listing's author."""

    id: str
    name: str = ""
    email: str = ""
    avatar: str = ""


@dataclass
class SearchRequest:
    """
    Parsed search parameters.

    Every filter is optional; None means "no constraint". `radius_meters` is
    only meaningful together with a geocenter.
    """

    page: int = 1
    page_size: int = 10

    # Exact filters
    property_type: Optional[str] = None
    listing_type: Optional[str] = None
    condition: Optional[str] = None
    featured: Optional[bool] = None
    urgent: Optional[bool] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    road_access: Optional[bool] = None
    water_source: Optional[bool] = None
    has_electricity: Optional[bool] = None

    # Substring filters
    province: Optional[str] = None
    district: Optional[str] = None

    # Inclusive ranges
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    min_area: Optional[float] = None
    max_area: Optional[float] = None

    search_text: Optional[str] = None

    latitude: Optional[float] = None
    longitude: Optional[float] = None
    radius_meters: float = 5000.0

    sort_by: Optional[str] = None

    @property
    def has_geocenter(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def sort_key(self) -> str:
        """The requested sort, or the default when absent or unknown."""
        if self.sort_by in SORT_KEYS:
            return self.sort_by
        return DEFAULT_SORT
