"""
Regional Market Pricing Service.

Cache-aside lookup of per-trade, per-zipcode pricing with a bounded-time
live fetch, and the market multiplier derived from it.

Architecture:
- Cache: append-only Firestore entries, usable while now < expiresAt
- Miss: one live fetch from the 1build provider under a hard timeout,
  persisted with expiresAt = now + ttl
- Any provider failure, timeout or misconfiguration yields None; the
  caller prices with a neutral multiplier
- Read-fetch-insert is not transactional; concurrent misses for the same
  key each fetch and insert their own entry
"""

import asyncio
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Protocol

import structlog

from config.errors import DraftPipelineError
from config.settings import settings
from models.market_pricing import (
    CachedPriceEntry,
    MarketBasis,
    MarketMultiplier,
    MarketPricingMeta,
    MarketPricingResult,
    PricingSource,
    TradePricing,
)

logger = structlog.get_logger(__name__)


# =============================================================================
# Constants
# =============================================================================

ZIP_PATTERN = re.compile(r"\b(\d{5})(?:-\d{4})?\b")

MIN_MARKET_MULTIPLIER = 0.90
MAX_MARKET_MULTIPLIER = 1.15

# Conservative hourly baselines per trade; a gentle nudge, not a rate card
DEFAULT_BASELINE_RATES: Dict[str, float] = {
    "bathroom": 85.0,
    "kitchen": 90.0,
    "roofing": 65.0,
    "plumbing": 95.0,
    "electrical": 105.0,
    "hvac": 110.0,
    "painting": 55.0,
    "flooring": 70.0,
    "drywall": 60.0,
}
DEFAULT_FALLBACK_BASELINE = 85.0


@dataclass
class MarketBaselines:
    """Per-trade baseline labor rates the market multiplier is measured against."""

    rates: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_BASELINE_RATES))
    fallback: float = DEFAULT_FALLBACK_BASELINE
    min_multiplier: float = MIN_MARKET_MULTIPLIER
    max_multiplier: float = MAX_MARKET_MULTIPLIER

    def baseline_for(self, trade_id: str) -> float:
        return self.rates.get(trade_id, self.fallback)


class PriceCacheRepository(Protocol):
    async def get_latest_price_entry(
        self, trade_id: str, zipcode: str, now: datetime
    ) -> Optional[CachedPriceEntry]: ...

    async def insert_price_entry(self, entry: CachedPriceEntry) -> str: ...


class TradePricingProvider(Protocol):
    def is_configured(self) -> bool: ...

    async def get_trade_pricing(self, trade: str, zipcode: str) -> TradePricing: ...


# =============================================================================
# Helpers
# =============================================================================


def extract_zip(address: Optional[str]) -> Optional[str]:
    """Return the first 5-digit zip code in an address, or None."""
    if not address:
        return None
    match = ZIP_PATTERN.search(address)
    return match.group(1) if match else None


def market_multiplier_from_pricing(
    trade_id: str,
    pricing: Optional[MarketPricingResult],
    baselines: Optional[MarketBaselines] = None,
) -> MarketMultiplier:
    """Derive the market multiplier from average labor rates.

    Average hourly rate across all labor entries divided by the trade's
    baseline, clamped to [0.90, 1.15]. No pricing or no labor entries gives
    a neutral multiplier with basis "none".
    """
    if pricing is None or not pricing.labor:
        return MarketMultiplier(multiplier=1.0, basis=MarketBasis.NONE)

    baselines = baselines or MarketBaselines()
    avg_rate = sum((l.hourly_rate or 0.0) for l in pricing.labor) / len(pricing.labor)

    baseline = baselines.baseline_for(trade_id)
    raw = avg_rate / baseline if baseline > 0 else 1.0

    multiplier = max(baselines.min_multiplier, min(baselines.max_multiplier, raw))
    return MarketMultiplier(multiplier=multiplier, basis=MarketBasis.LABOR)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Service
# =============================================================================


class MarketPricingService:
    """Cache-aside gateway over the regional pricing provider."""

    def __init__(
        self,
        cache: Optional[PriceCacheRepository] = None,
        provider: Optional[TradePricingProvider] = None,
        now_fn: Callable[[], datetime] = _utcnow,
    ):
        """Initialize MarketPricingService.

        Args:
            cache: Cache entry repository (default: FirestoreService).
            provider: Live pricing provider (default: OneBuildService).
            now_fn: Clock returning timezone-aware UTC datetimes.
        """
        if cache is None:
            from services.firestore_service import FirestoreService
            cache = FirestoreService()
        if provider is None:
            from services.onebuild_service import OneBuildService
            provider = OneBuildService()

        self.cache = cache
        self.provider = provider
        self._now = now_fn

    async def _read_cache(
        self, trade_id: str, zipcode: str, now: datetime
    ) -> Optional[CachedPriceEntry]:
        try:
            entry = await self.cache.get_latest_price_entry(trade_id, zipcode, now)
        except DraftPipelineError as e:
            logger.warning(
                "market_pricing_cache_read_failed",
                trade_id=trade_id,
                zipcode=zipcode,
                error=e.message,
            )
            return None

        if entry is None or not entry.is_usable(now):
            return None
        return entry

    async def get_trade_pricing_best_effort(
        self,
        trade_id: str,
        zipcode: str,
        ttl_hours: Optional[float] = None,
        timeout_ms: Optional[int] = None,
    ) -> Optional[MarketPricingResult]:
        """Get trade pricing from cache, else a bounded live fetch.

        Args:
            trade_id: Trade identifier.
            zipcode: 5-digit zip code.
            ttl_hours: Lifetime of a newly fetched entry (default from settings).
            timeout_ms: Hard timeout for the live fetch (default from settings).

        Returns:
            Pricing tagged ``cache`` or ``live``, or None when unavailable.
        """
        ttl_hours = ttl_hours if ttl_hours is not None else settings.pricing_cache_ttl_hours
        timeout_ms = timeout_ms if timeout_ms is not None else settings.pricing_live_timeout_ms
        now = self._now()

        cached = await self._read_cache(trade_id, zipcode, now)
        if cached is not None:
            logger.info(
                "market_pricing_cache_hit",
                trade_id=trade_id,
                zipcode=zipcode,
                fetched_at=cached.fetched_at.isoformat(),
            )
            return MarketPricingResult(
                materials=cached.payload.materials,
                labor=cached.payload.labor,
                meta=MarketPricingMeta(
                    zipcode=zipcode,
                    location=cached.location,
                    fetched_at=cached.fetched_at,
                    source=PricingSource.CACHE,
                ),
            )

        if not self.provider.is_configured():
            logger.info("market_pricing_provider_unconfigured", trade_id=trade_id, zipcode=zipcode)
            return None

        try:
            live = await asyncio.wait_for(
                self.provider.get_trade_pricing(trade_id, zipcode),
                timeout=timeout_ms / 1000.0,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "market_pricing_live_timeout",
                trade_id=trade_id,
                zipcode=zipcode,
                timeout_ms=timeout_ms,
            )
            return None
        except Exception as e:
            logger.warning(
                "market_pricing_live_failed",
                trade_id=trade_id,
                zipcode=zipcode,
                error=str(e),
            )
            return None

        entry = CachedPriceEntry.create(
            trade_id=trade_id,
            zipcode=zipcode,
            payload=live,
            now=now,
            ttl_hours=ttl_hours,
        )
        try:
            await self.cache.insert_price_entry(entry)
        except DraftPipelineError as e:
            logger.warning(
                "market_pricing_cache_write_failed",
                trade_id=trade_id,
                zipcode=zipcode,
                error=e.message,
            )

        logger.info(
            "market_pricing_live_fetched",
            trade_id=trade_id,
            zipcode=zipcode,
            labor_entries=len(live.labor),
        )
        return MarketPricingResult(
            materials=live.materials,
            labor=live.labor,
            meta=MarketPricingMeta(
                zipcode=zipcode,
                location=entry.location,
                fetched_at=now,
                source=PricingSource.LIVE,
            ),
        )
