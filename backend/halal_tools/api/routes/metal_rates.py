"""
Precious metal rates API route
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from halal_tools.core.database import get_db
from halal_tools.core.errors import UpstreamUnavailable
from halal_tools.services.metal_rate_service import MetalRateService
from halal_tools.utils.datetime_utils import utc_now

router = APIRouter(prefix="/api/metal-rates", tags=["metal-rates"])


class MetalRatesResponse(BaseModel):
    gold: str
    silver: str
    timestamp: str
    fallback: bool
    message: str
    age_seconds: int


@router.get("", response_model=MetalRatesResponse)
@router.get("/", response_model=MetalRatesResponse, include_in_schema=False)
async def get_metal_rates(db: Session = Depends(get_db)):
    """Latest per-gram gold and silver prices"""
    latest = MetalRateService(db).get_latest()
    if latest is None:
        raise UpstreamUnavailable(
            "No metal rates stored yet",
            public_message="No metal rates found in database",
        )

    return MetalRatesResponse(
        gold=f"{latest.gold:.2f}",
        silver=f"{latest.silver:.2f}",
        timestamp=latest.fetched_at.isoformat(),
        fallback=latest.is_fallback,
        message=(
            "Using last known fallback data"
            if latest.is_fallback
            else "Live rates from MetalpriceAPI"
        ),
        age_seconds=max(int((utc_now() - latest.fetched_at).total_seconds()), 0),
    )
