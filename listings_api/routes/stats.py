"""
Statistics API route handlers.
"""
import logging
from fastapi import APIRouter, HTTPException

from ..models import StatsOut
from ..database import get_search_statistics

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["statistics"])

@router.get("/stats/search", response_model=StatsOut)
def get_api_search_stats():
    """Get counts of searchable listings by type, province and price band."""
    try:
        stats_data = get_search_statistics()
        return StatsOut(**stats_data)
        
    except Exception as e:
        logger.error(f"Error fetching statistics: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")
