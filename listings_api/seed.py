"""
Load listings and owners into the SQLite store.

Usage:
    python -m listings_api.seed --db ./data/db/listings.db listings.json more.csv

JSON files hold either an array of listings or an object with "listings" and
"owners" arrays. Listing records may be flat (snake_case columns, as in the
CSV export) or nested the way the marketplace app stores posts
(location.address, location.coordinates, houseDetails, landDetails, media).
CSV files hold flat listing rows.
"""
import argparse
import json
import os
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from .database import db_connect, db_init, upsert_listing, upsert_owner
from .entities import Listing, Owner
from .utils import clean_text, init_logger, to_bool, to_float, to_int

logger = None


def _pick(record: Dict[str, Any], *keys: str, default=None):
    for key in keys:
        value = record.get(key)
        if value is not None and not (isinstance(value, float) and pd.isna(value)):
            return value
    return default


def _as_list(value: Any) -> List[str]:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split("|") if v.strip()]
    return [str(v) for v in value]


def _as_bool(value: Any) -> Optional[bool]:
    if value is None or isinstance(value, bool):
        return value
    return to_bool(str(value))


def _point(record: Dict[str, Any]) -> Tuple[Optional[float], Optional[float]]:
    """(latitude, longitude) from flat columns or a GeoJSON point ([lng, lat])."""
    lat = to_float(_pick(record, "latitude"))
    lng = to_float(_pick(record, "longitude"))
    if lat is not None and lng is not None:
        return lat, lng
    location = record.get("location") or {}
    coords = location.get("coordinates") or {}
    if isinstance(coords, dict):
        coords = coords.get("coordinates")
    if isinstance(coords, (list, tuple)) and len(coords) == 2:
        return float(coords[1]), float(coords[0])
    return None, None


def listing_from_record(record: Dict[str, Any]) -> Listing:
    """Build a Listing from a flat row or a nested post document."""
    location = record.get("location") or {}
    address = location.get("address") or {}
    house = record.get("houseDetails") or {}
    land = record.get("landDetails") or {}
    media = record.get("media") or {}
    latitude, longitude = _point(record)

    listing_id = _pick(record, "id", "_id")
    if listing_id is None:
        raise ValueError("listing record without id")

    boundary = location.get("boundary") or []
    raw_boundary = _pick(record, "boundary_json")
    if not boundary and raw_boundary:
        boundary = json.loads(raw_boundary)

    return Listing(
        id=str(listing_id),
        title=clean_text(_pick(record, "title", default="")),
        description=_pick(record, "description", default=""),
        price=to_float(_pick(record, "price")) or 0.0,
        area=to_float(_pick(record, "area")) or 0.0,
        property_type=_pick(record, "property_type", "propertyType", default="house"),
        listing_type=_pick(record, "listing_type", "listingType", default="sell"),
        condition=_pick(record, "condition", default="good"),
        status=_pick(record, "status", default="pending"),
        featured=bool(_as_bool(_pick(record, "featured", default=False))),
        urgent=bool(_as_bool(_pick(record, "urgent", default=False))),
        author_id=_pick(record, "author_id", "authorId"),
        tags=_as_list(_pick(record, "tags")),
        keywords=_as_list(_pick(record, "keywords")),
        street=_pick(record, "street", default=address.get("street", "")),
        district=_pick(record, "district", default=address.get("district", "")),
        province=_pick(record, "province", default=address.get("province", "")),
        latitude=latitude,
        longitude=longitude,
        boundary=[tuple(p) for p in boundary],
        bedrooms=to_int(_pick(record, "bedrooms", default=house.get("bedrooms"))),
        bathrooms=to_int(_pick(record, "bathrooms", default=house.get("bathrooms"))),
        road_access=_as_bool(_pick(record, "road_access", "roadAccess", default=land.get("roadAccess"))),
        water_source=_as_bool(_pick(record, "water_source", "waterSource", default=land.get("waterSource"))),
        utilities=_as_list(_pick(record, "utilities", default=land.get("utilities"))),
        images=_as_list(_pick(record, "images", default=media.get("images"))),
        view_count=to_int(_pick(record, "view_count", "viewCount")) or 0,
        created_at=_pick(record, "created_at", "createdAt"),
        updated_at=_pick(record, "updated_at", "updatedAt"),
    )


def owner_from_record(record: Dict[str, Any]) -> Owner:
    return Owner(
        id=str(_pick(record, "id", "_id")),
        name=_pick(record, "name", default=""),
        email=_pick(record, "email", default=""),
        avatar=_pick(record, "avatar", default=""),
    )


def read_records(path: str) -> Tuple[List[Dict], List[Dict]]:
    """Return (listing records, owner records) from a JSON or CSV file."""
    if path.lower().endswith(".csv"):
        df = pd.read_csv(path, dtype={"id": str, "author_id": str})
        return df.to_dict(orient="records"), []

    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, list):
        return data, []
    return data.get("listings", []), data.get("owners", [])


def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Load listings and owners into the search database")
    ap.add_argument("files", nargs="+", help="JSON or CSV files to load")
    ap.add_argument("--db", type=str, default=os.getenv("LISTINGS_DB", "./data/db/listings.db"),
                    help="Path to SQLite DB")
    lvl_choices = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    ap.add_argument("--log-level", choices=lvl_choices, default=os.getenv("LOG_LEVEL", "INFO"),
                    help="Console log level")
    ap.add_argument("--log-file-path", default=None, help="Optional log file")
    return ap.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    global logger
    logger = init_logger(name="listings_api.seed", console_level=args.log_level,
                         log_file=args.log_file_path)

    os.makedirs(os.path.dirname(args.db) or ".", exist_ok=True)
    conn = db_connect(args.db)
    try:
        db_init(conn)
        new_items = 0
        updated_items = 0
        owners = 0
        for path in args.files:
            listing_records, owner_records = read_records(path)
            for record in owner_records:
                upsert_owner(conn, owner_from_record(record))
                owners += 1
            for record in listing_records:
                if upsert_listing(conn, listing_from_record(record)):
                    new_items += 1
                else:
                    updated_items += 1
            logger.info(f">>> Loaded {path}: {len(listing_records)} listings, {len(owner_records)} owners")
        logger.info(f">>> In DB: new listings: {new_items}, updated: {updated_items}, owners: {owners}")
    finally:
        conn.close()


if __name__ == "__main__":
    main()
