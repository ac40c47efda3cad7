"""
Database operations and connection management.

SQLite plays the role of the listing store: predicate find/count, a
nearest-first query capped at a maximum distance, and owner lookup. The
distance function is registered on every connection so that filtering and
ordering by distance happen inside the query.
"""
import json
import logging
import sqlite3
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional

from .config import config
from .entities import SEARCHABLE_STATUS, Listing, Owner
from .geo import ProximityFilter, haversine_meters
from .predicates import Predicate
from .utils import join_list, now_iso

logger = logging.getLogger(__name__)


DDL_LISTINGS = """
CREATE TABLE IF NOT EXISTS listings (
  id TEXT PRIMARY KEY,
  title TEXT NOT NULL,
  description TEXT DEFAULT '',
  price REAL NOT NULL DEFAULT 0,
  area REAL NOT NULL DEFAULT 0,
  property_type TEXT NOT NULL,
  listing_type TEXT NOT NULL DEFAULT 'sell',
  condition TEXT NOT NULL DEFAULT 'good',
  status TEXT NOT NULL DEFAULT 'pending',
  featured INTEGER NOT NULL DEFAULT 0,
  urgent INTEGER NOT NULL DEFAULT 0,
  author_id TEXT,
  tags TEXT DEFAULT '',
  keywords TEXT DEFAULT '',
  street TEXT DEFAULT '',
  district TEXT DEFAULT '',
  province TEXT DEFAULT '',
  latitude REAL,
  longitude REAL,
  boundary_json TEXT DEFAULT '',
  bedrooms INTEGER,
  bathrooms INTEGER,
  road_access INTEGER,
  water_source INTEGER,
  utilities TEXT DEFAULT '',
  images TEXT DEFAULT '',
  view_count INTEGER NOT NULL DEFAULT 0,
  created_at TEXT,
  updated_at TEXT
);
"""

DDL_OWNERS = """
CREATE TABLE IF NOT EXISTS owners (
  id TEXT PRIMARY KEY,
  name TEXT DEFAULT '',
  email TEXT DEFAULT '',
  avatar TEXT DEFAULT ''
);
"""

DDL_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_listings_status_created ON listings(status, created_at);",
    "CREATE INDEX IF NOT EXISTS idx_listings_point ON listings(latitude, longitude);",
    "CREATE INDEX IF NOT EXISTS idx_listings_price_area ON listings(price, area);",
    "CREATE INDEX IF NOT EXISTS idx_listings_types ON listings(property_type, listing_type);",
    "CREATE INDEX IF NOT EXISTS idx_listings_location ON listings(province, district);",
]

# Secondary keys keep ordering total, so repeated requests page identically
TIE_BREAK = "created_at DESC, id DESC"

SORT_OPTIONS = {
    "newest": f"ORDER BY {TIE_BREAK}",
    "oldest": "ORDER BY created_at ASC, id ASC",
    "price_asc": f"ORDER BY price ASC, {TIE_BREAK}",
    "price_desc": f"ORDER BY price DESC, {TIE_BREAK}",
    "area_asc": f"ORDER BY area ASC, {TIE_BREAK}",
    "area_desc": f"ORDER BY area DESC, {TIE_BREAK}",
}

PRICE_BUCKETS = [
    (0, 1_000_000, "0-1M"),
    (1_000_000, 5_000_000, "1M-5M"),
    (5_000_000, 10_000_000, "5M-10M"),
    (10_000_000, 50_000_000, "10M-50M"),
    (50_000_000, None, "50M+"),
]


def _distance_m(lat1, lon1, lat2, lon2):
    if None in (lat1, lon1, lat2, lon2):
        return None
    return haversine_meters(lat1, lon1, lat2, lon2)


def _ulower(text):
    if text is None:
        return None
    return str(text).lower()


def register_functions(conn: sqlite3.Connection) -> None:
    """Install the SQL functions predicates rely on."""
    conn.create_function("distance_m", 4, _distance_m, deterministic=True)
    conn.create_function("ulower", 1, _ulower, deterministic=True)


def db_connect(path: str) -> sqlite3.Connection:
    """Create database connection with optimized settings."""
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    register_functions(conn)
    return conn


def db_init(conn: sqlite3.Connection):
    """Initialize database schema with tables and indexes."""
    conn.execute(DDL_LISTINGS)
    conn.execute(DDL_OWNERS)
    for ddl in DDL_INDEXES:
        conn.execute(ddl)
    conn.commit()


@contextmanager
def get_db_connection():
    """Get a database connection with proper error handling."""
    conn = None
    try:
        if not config.DB_PATH:
            raise ValueError("Database path not configured")

        conn = sqlite3.connect(config.DB_PATH)
        conn.row_factory = sqlite3.Row  # Enable dict-like access
        register_functions(conn)
        yield conn
    except sqlite3.Error as e:
        logger.error(f"Database error: {e}")
        raise
    finally:
        if conn is not None:
            conn.close()


def get_order_clause(sort: str) -> str:
    """Generate ORDER BY clause based on sort parameter."""
    return SORT_OPTIONS.get(sort, SORT_OPTIONS["newest"])


def _rows_to_listings(cursor: sqlite3.Cursor) -> List[Listing]:
    return [Listing.from_row(dict(row)) for row in cursor.fetchall()]


def count_listings(predicate: Predicate) -> int:
    """Get total count of listings matching a predicate."""
    with get_db_connection() as conn:
        sql = f"SELECT COUNT(*) FROM listings{predicate.where_clause()}"
        result = conn.execute(sql, predicate.parameters).fetchone()
        return result[0] if result else 0


def find_listings(predicate: Predicate, sort: str = "newest",
                  limit: int = 10, offset: int = 0) -> List[Listing]:
    """Get listings matching a predicate with field sorting and pagination."""
    with get_db_connection() as conn:
        order_clause = get_order_clause(sort)
        sql = f"SELECT * FROM listings{predicate.where_clause()} {order_clause} LIMIT ? OFFSET ?"
        cursor = conn.execute(sql, predicate.parameters + (limit, offset))
        return _rows_to_listings(cursor)


def find_nearby(predicate: Predicate, proximity: ProximityFilter,
                limit: int = 10, offset: int = 0) -> List[Listing]:
    """
    Nearest-first listings within the proximity radius.

    The distance cutoff is added here, so callers pass the predicate without
    it. Equal distances fall back to newest first.
    """
    combined = predicate & proximity.predicate()
    distance_expr, distance_params = proximity.distance_sql()
    with get_db_connection() as conn:
        sql = (
            f"SELECT * FROM listings{combined.where_clause()} "
            f"ORDER BY {distance_expr} ASC, {TIE_BREAK} LIMIT ? OFFSET ?"
        )
        cursor = conn.execute(sql, combined.parameters + distance_params + (limit, offset))
        return _rows_to_listings(cursor)


def get_listing(listing_id: str) -> Optional[Listing]:
    """Get a single searchable listing by ID."""
    with get_db_connection() as conn:
        row = conn.execute(
            "SELECT * FROM listings WHERE id = ? AND status = ?",
            (listing_id, SEARCHABLE_STATUS),
        ).fetchone()
        return Listing.from_row(dict(row)) if row else None


def get_owners(owner_ids: Iterable[str]) -> Dict[str, Owner]:
    """Look up owners in one query. Unknown ids are simply absent."""
    ids = sorted(set(owner_ids))
    if not ids:
        return {}
    placeholders = ",".join("?" for _ in ids)
    with get_db_connection() as conn:
        cursor = conn.execute(
            f"SELECT id, name, email, avatar FROM owners WHERE id IN ({placeholders})", ids
        )
        return {
            row["id"]: Owner(
                id=row["id"],
                name=row["name"] or "",
                email=row["email"] or "",
                avatar=row["avatar"] or "",
            )
            for row in cursor.fetchall()
        }


def get_search_statistics() -> Dict[str, Any]:
    """Aggregate counts over searchable listings."""
    with get_db_connection() as conn:
        params = (SEARCHABLE_STATUS,)
        total = conn.execute("SELECT COUNT(*) FROM listings WHERE status = ?", params).fetchone()[0]

        by_type = conn.execute(
            "SELECT property_type, COUNT(*) FROM listings WHERE status = ? "
            "GROUP BY property_type ORDER BY COUNT(*) DESC, property_type ASC",
            params,
        ).fetchall()

        by_province = conn.execute(
            "SELECT province, COUNT(*) FROM listings WHERE status = ? "
            "GROUP BY province ORDER BY COUNT(*) DESC, province ASC LIMIT 10",
            params,
        ).fetchall()

        price_distribution = []
        for low, high, label in PRICE_BUCKETS:
            if high is None:
                sql = "SELECT COUNT(*) FROM listings WHERE status = ? AND price >= ?"
                bucket_params = (SEARCHABLE_STATUS, low)
            else:
                sql = "SELECT COUNT(*) FROM listings WHERE status = ? AND price >= ? AND price < ?"
                bucket_params = (SEARCHABLE_STATUS, low, high)
            count = conn.execute(sql, bucket_params).fetchone()[0]
            if count:
                price_distribution.append({"range": label, "count": count})

        return {
            "total_listings": total,
            "by_property_type": {ptype: count for ptype, count in by_type},
            "top_provinces": [{"province": p, "count": c} for p, c in by_province],
            "price_distribution": price_distribution,
        }


def upsert_listing(conn: sqlite3.Connection, lst: Listing) -> bool:
    """
    Insert or replace a listing.

    Returns True when the listing was new. created_at is kept from the
    existing row unless the incoming listing carries one.
    """
    existing = conn.execute("SELECT created_at FROM listings WHERE id = ?", (lst.id,)).fetchone()
    created_at = lst.created_at or (existing[0] if existing else None) or now_iso()
    conn.execute("""
    INSERT OR REPLACE INTO listings (
      id,title,description,price,area,property_type,listing_type,condition,status,
      featured,urgent,author_id,tags,keywords,street,district,province,latitude,longitude,
      boundary_json,bedrooms,bathrooms,road_access,water_source,utilities,images,view_count,
      created_at,updated_at
    ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)
    """, (
        lst.id, lst.title, lst.description, lst.price, lst.area, lst.property_type,
        lst.listing_type, lst.condition, lst.status, int(lst.featured), int(lst.urgent),
        lst.author_id, join_list(lst.tags), join_list(lst.keywords), lst.street,
        lst.district, lst.province, lst.latitude, lst.longitude,
        json.dumps([list(p) for p in lst.boundary]) if lst.boundary else "",
        lst.bedrooms, lst.bathrooms,
        None if lst.road_access is None else int(lst.road_access),
        None if lst.water_source is None else int(lst.water_source),
        join_list(lst.utilities), join_list(lst.images), lst.view_count,
        created_at, lst.updated_at or now_iso(),
    ))
    conn.commit()
    return existing is None


def upsert_owner(conn: sqlite3.Connection, owner: Owner):
    """Insert or replace an owner record."""
    conn.execute(
        "INSERT OR REPLACE INTO owners (id, name, email, avatar) VALUES (?, ?, ?, ?)",
        (owner.id, owner.name, owner.email, owner.avatar),
    )
    conn.commit()
