"""Regional market pricing Pydantic models.

Trade pricing payloads fetched from the regional pricing provider, the
cache entries persisted for them, and the market multiplier derived from
them.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class PricingSource(str, Enum):
    """Where a market pricing payload came from."""

    CACHE = "cache"
    LIVE = "live"


class MarketBasis(str, Enum):
    """What the market multiplier was derived from."""

    NONE = "none"
    LABOR = "labor"


# =============================================================================
# PROVIDER PAYLOAD
# =============================================================================


class MaterialPrice(BaseModel):
    """Material unit cost for a search term."""

    name: str
    cost: float
    unit: str = "each"


class LaborRate(BaseModel):
    """Hourly labor rate for a search term."""

    name: str
    hourly_rate: Optional[float] = Field(default=None, alias="hourlyRate")

    class Config:
        populate_by_name = True


class TradePricing(BaseModel):
    """Materials and labor pricing for a trade at a location."""

    materials: List[MaterialPrice] = Field(default_factory=list)
    labor: List[LaborRate] = Field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


# =============================================================================
# CACHE ENTRY
# =============================================================================


class CachedPriceEntry(BaseModel):
    """Persisted trade pricing for a (trade, zipcode) key.

    Entries are never updated in place. A newer insert supersedes older
    ones, and an entry is usable only while ``now < expires_at``.
    """

    trade_id: str = Field(alias="tradeId")
    zipcode: str
    payload: TradePricing
    location: Optional[str] = None
    fetched_at: datetime = Field(alias="fetchedAt")
    expires_at: datetime = Field(alias="expiresAt")

    class Config:
        populate_by_name = True

    @classmethod
    def create(
        cls,
        trade_id: str,
        zipcode: str,
        payload: TradePricing,
        now: datetime,
        ttl_hours: float,
    ) -> "CachedPriceEntry":
        """Build a new entry fetched at ``now`` expiring ``ttl_hours`` later."""
        return cls(
            trade_id=trade_id,
            zipcode=zipcode,
            payload=payload,
            location=zipcode,
            fetched_at=now,
            expires_at=now + timedelta(hours=ttl_hours),
        )

    def is_usable(self, now: datetime) -> bool:
        return now < self.expires_at

    def to_document(self) -> Dict[str, Any]:
        """Firestore document representation."""
        return {
            "tradeId": self.trade_id,
            "zipcode": self.zipcode,
            "payload": self.payload.to_payload(),
            "location": self.location,
            "fetchedAt": self.fetched_at,
            "expiresAt": self.expires_at,
        }


# =============================================================================
# GATEWAY RESULT
# =============================================================================


class MarketPricingMeta(BaseModel):
    """Provenance of a market pricing payload."""

    zipcode: str
    location: Optional[str] = None
    fetched_at: datetime = Field(alias="fetchedAt")
    source: PricingSource

    class Config:
        populate_by_name = True


class MarketPricingResult(BaseModel):
    """Trade pricing returned by the cache gateway, tagged with its source."""

    materials: List[MaterialPrice] = Field(default_factory=list)
    labor: List[LaborRate] = Field(default_factory=list)
    meta: MarketPricingMeta = Field(alias="_meta")

    class Config:
        populate_by_name = True

    @property
    def source(self) -> PricingSource:
        return self.meta.source


class MarketMultiplier(BaseModel):
    """Clamped price adjustment derived from regional labor rates."""

    multiplier: float = 1.0
    basis: MarketBasis = MarketBasis.NONE
