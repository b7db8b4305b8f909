"""
Gold and silver spot price cache

Prices are fetched from MetalpriceAPI, converted from troy ounces to grams
and appended to ``metal_rates``. When a fetch fails the previous prices are
appended again with ``is_fallback`` set, so readers always see the newest
row and never a partial update.
"""
import asyncio
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

import httpx
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from halal_tools.core.config import Settings, get_settings
from halal_tools.core.logging_config import LoggingConfig
from halal_tools.core.metrics import metal_rate_refresh_total
from halal_tools.models.metal_rate import MetalRate
from halal_tools.utils.datetime_utils import utc_now

logger = LoggingConfig.get_logger(__name__)

GRAMS_PER_TROY_OUNCE = Decimal("31.1035")
CENTS = Decimal("0.01")


class MetalRateFetchError(Exception):
    """Spot price API unreachable or answered with unusable data"""


@dataclass(frozen=True)
class SpotPrices:
    """Per-gram prices in the base currency"""
    gold: Decimal
    silver: Decimal


def per_gram(ounce_price) -> Decimal:
    """Convert a per-ounce price to per-gram, rounded half-up to 2 places"""
    try:
        value = Decimal(str(ounce_price))
    except InvalidOperation as e:
        raise MetalRateFetchError(f"Not a price: {ounce_price!r}") from e
    if not value.is_finite() or value <= 0:
        raise MetalRateFetchError(f"Not a price: {ounce_price!r}")
    return (value / GRAMS_PER_TROY_OUNCE).quantize(CENTS, rounding=ROUND_HALF_UP)


class MetalRateService:
    """Fetches spot prices and maintains the append-only snapshot log"""

    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self._transport = transport

    async def fetch_spot_prices(self) -> SpotPrices:
        """
        Request current gold and silver prices

        Raises:
            MetalRateFetchError: Missing key, HTTP failure or missing rates
        """
        if not self.settings.metal_api_key:
            raise MetalRateFetchError("METAL_API_KEY is not configured")

        base = self.settings.metal_base_currency
        params = {
            "api_key": self.settings.metal_api_key,
            "base": base,
            "currencies": "XAU,XAG",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.metal_fetch_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.get(self.settings.metal_api_url, params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            raise MetalRateFetchError(f"Spot price request failed: {e}") from e
        except ValueError as e:
            raise MetalRateFetchError(f"Spot price response is not JSON: {e}") from e

        rates = data.get("rates") if isinstance(data, dict) else None
        if not isinstance(rates, dict):
            raise MetalRateFetchError("Spot price response has no rates")

        gold = rates.get(f"{base}XAU")
        silver = rates.get(f"{base}XAG")
        if not gold or not silver:
            raise MetalRateFetchError("Missing metal rates")

        return SpotPrices(gold=per_gram(gold), silver=per_gram(silver))

    async def refresh(self) -> Optional[MetalRate]:
        """
        Append a new snapshot

        Returns the appended row: live prices on success, a fallback copy of
        the latest row on failure, or None when there is nothing to fall
        back to. Database work runs in a worker thread so a slow or
        unreachable database does not stall the event loop.
        """
        try:
            prices = await self.fetch_spot_prices()
        except MetalRateFetchError as e:
            logger.warning(f"Spot price fetch failed, using last known rates: {e}")
            return await asyncio.to_thread(self._append_fallback)

        snapshot = MetalRate(
            gold=prices.gold,
            silver=prices.silver,
            fetched_at=utc_now(),
            is_fallback=False,
        )
        await asyncio.to_thread(self._append, snapshot)
        metal_rate_refresh_total.labels(status="live").inc()
        logger.info(
            "Spot prices stored",
            extra={"gold": str(prices.gold), "silver": str(prices.silver)},
        )
        return snapshot

    def get_latest(self) -> Optional[MetalRate]:
        """Most recent snapshot, or None when none was ever stored"""
        return self.db.execute(
            select(MetalRate)
            .order_by(MetalRate.fetched_at.desc(), MetalRate.id.desc())
            .limit(1)
        ).scalar_one_or_none()

    def _append_fallback(self) -> Optional[MetalRate]:
        latest = self.get_latest()
        if latest is None:
            metal_rate_refresh_total.labels(status="empty").inc()
            logger.error("No fallback metal rates available in the database")
            return None

        snapshot = MetalRate(
            gold=latest.gold,
            silver=latest.silver,
            fetched_at=utc_now(),
            is_fallback=True,
        )
        self._append(snapshot)
        metal_rate_refresh_total.labels(status="fallback").inc()
        logger.info("Fallback metal rates re-inserted")
        return snapshot

    def _append(self, snapshot: MetalRate) -> None:
        try:
            self.db.add(snapshot)
            self.db.commit()
            self.db.refresh(snapshot)
        except SQLAlchemyError:
            self.db.rollback()
            raise
