"""
Shared fixtures: a temporary SQLite store seeded with a small marketplace
around Vientiane.
"""
import pytest

from listings_api.config import Config
from listings_api.database import db_connect, db_init, upsert_listing, upsert_owner
from listings_api.entities import Listing, Owner


VIENTIANE = (17.9757, 102.6331)


def make_listing(listing_id: str, **overrides) -> Listing:
    """Approved house in central Vientiane unless overridden."""
    fields = dict(
        title=f"Listing {listing_id}",
        description="",
        price=100_000_000,
        area=200,
        property_type="house",
        listing_type="sell",
        condition="good",
        status="approved",
        province="Vientiane Capital",
        district="Chanthabouly",
        street="Samsenthai Road",
        latitude=VIENTIANE[0],
        longitude=VIENTIANE[1],
        author_id="owner-a",
        created_at="2024-01-01T00:00:00+00:00",
    )
    fields.update(overrides)
    return Listing(id=listing_id, **fields)


def sample_listings():
    return [
        make_listing(
            "land-1", title="Riverside land plot", property_type="land", price=300_000_000,
            area=800, district="Sikhottabong", latitude=17.9800, longitude=102.6300,
            boundary=[(102.70, 18.00), (102.71, 18.00), (102.71, 18.01), (102.70, 18.01)],
            tags=["land", "riverside"], featured=True, view_count=150,
            created_at="2024-03-01T00:00:00+00:00",
        ),
        make_listing(
            "land-2", title="Large plot by the road", property_type="land", price=700_000_000,
            area=1500, latitude=17.9600, longitude=102.6100, road_access=True,
            utilities=["Electricity", "water"], created_at="2024-03-02T00:00:00+00:00",
        ),
        make_listing(
            "land-3", title="Farm land", property_type="land", price=200_000_000, area=5000,
            province="Luang Prabang", district="Luang Prabang", latitude=19.8856,
            longitude=102.1347, water_source=True, author_id="owner-b",
            created_at="2024-03-03T00:00:00+00:00",
        ),
        make_listing(
            "land-4", title="Pending plot", property_type="land", price=600_000_000,
            status="pending", created_at="2024-03-04T00:00:00+00:00",
        ),
        make_listing(
            "land-5", title="Mountain view land", property_type="land", price=600_000_000,
            area=1000, province="Vientiane Province", district="Vang Vieng",
            latitude=18.9220, longitude=102.4480, utilities=["ไฟฟ้า"],
            created_at="2024-03-05T00:00:00+00:00",
        ),
        make_listing(
            "house-1", title="House near market",
            description="Family home five minutes from the market",
            price=450_000_000, bedrooms=3, bathrooms=2, latitude=18.0500, longitude=102.6331,
            created_at="2024-02-01T00:00:00+00:00",
        ),
        make_listing(
            "house-2", title="Quiet townhouse", property_type="townhouse",
            description="Walking distance to the night market", price=350_000_000,
            bedrooms=2, latitude=18.1000, longitude=102.6331, author_id="missing-owner",
            created_at="2024-02-02T00:00:00+00:00",
        ),
        make_listing(
            "condo-1", title="Riverside condo", property_type="condo", price=250_000_000,
            area=60, tags=["market view"], keywords=["market"], urgent=True,
            latitude=18.0900, longitude=102.6331, author_id="",
            created_at="2024-02-03T00:00:00+00:00",
        ),
        make_listing(
            "house-3", title="Market house", status="sold",
            created_at="2024-02-04T00:00:00+00:00",
        ),
    ]


def sample_owners():
    return [
        Owner(id="owner-a", name="Khamla S.", email="khamla@example.la", avatar="a.png"),
        Owner(id="owner-b", name="Noy P.", email="noy@example.la", avatar=""),
    ]


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = str(tmp_path / "listings.db")
    conn = db_connect(path)
    db_init(conn)
    conn.close()
    monkeypatch.setattr(Config, "DB_PATH", path)
    return path


@pytest.fixture
def seed(db_path):
    def _seed(listings=(), owners=()):
        conn = db_connect(db_path)
        try:
            for owner in owners:
                upsert_owner(conn, owner)
            for listing in listings:
                upsert_listing(conn, listing)
        finally:
            conn.close()
    return _seed


@pytest.fixture
def marketplace(seed):
    listings = sample_listings()
    seed(listings, sample_owners())
    return {listing.id: listing for listing in listings}
