"""
API configuration and settings management.
"""
import os


class Config:
    """Application configuration."""

    # Database
    DB_PATH: str = os.getenv("LISTINGS_DB", "./data/db/listings.db")

    # API settings
    API_TITLE: str = "Listings Search API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Property search and ranking for the listings marketplace"

    # CORS settings
    CORS_ORIGINS: list = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list = ["*"]
    CORS_ALLOW_HEADERS: list = ["*"]

    # Pagination defaults
    DEFAULT_PAGE_SIZE: int = int(os.getenv("DEFAULT_PAGE_SIZE", "10"))
    MAX_PAGE_SIZE: int = int(os.getenv("MAX_PAGE_SIZE", "100"))
    EXPORT_LIMIT: int = int(os.getenv("EXPORT_LIMIT", "10000"))

    # Search tuning.
    # Relevance ranking is exact only while the number of matches fits in
    # page_size * RELEVANCE_WINDOW_MULTIPLIER.
    RELEVANCE_WINDOW_MULTIPLIER: int = int(os.getenv("RELEVANCE_WINDOW_MULTIPLIER", "5"))
    DEFAULT_RADIUS_METERS: float = float(os.getenv("DEFAULT_RADIUS_METERS", "5000"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE: str = os.getenv("LOG_FILE", "")  # empty: stdout only

    @classmethod
    def validate(cls) -> None:
        """Validate configuration on startup."""
        if not os.path.exists(cls.DB_PATH):
            raise FileNotFoundError(f"Database file not found: {cls.DB_PATH}")
        if cls.RELEVANCE_WINDOW_MULTIPLIER < 1:
            raise ValueError("RELEVANCE_WINDOW_MULTIPLIER must be at least 1")
        if cls.DEFAULT_PAGE_SIZE < 1 or cls.DEFAULT_PAGE_SIZE > cls.MAX_PAGE_SIZE:
            raise ValueError("DEFAULT_PAGE_SIZE must be between 1 and MAX_PAGE_SIZE")


# Global config instance
config = Config()
