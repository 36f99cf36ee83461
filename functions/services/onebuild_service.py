"""
1build Regional Pricing Service.

Fetches local material unit costs and labor hourly rates for a trade from the
1build external GraphQL gateway.

Architecture:
- One search per material/labor term, issued concurrently
- Zip codes resolved to (state, county) via exact map, then 3-digit prefix
- A failing term is dropped; the trade payload keeps the remaining terms
- No retries: callers bound the whole fetch with their own timeout
"""

import asyncio
from typing import Any, Dict, List, Optional

import httpx
import structlog

from config.errors import DraftPipelineError, ErrorCode, PricingError
from config.secrets import get_onebuild_api_key
from config.settings import settings
from models.market_pricing import LaborRate, MaterialPrice, TradePricing

logger = structlog.get_logger(__name__)


# =============================================================================
# Constants and Mappings
# =============================================================================

ONEBUILD_API_TIMEOUT = 10.0  # seconds, per request

# Search terms per trade; unknown trades search for the trade name itself
TRADE_SEARCH_TERMS: Dict[str, Dict[str, List[str]]] = {
    "bathroom": {
        "materials": ["toilet", "vanity", "tile", "shower", "faucet", "mirror"],
        "labor": ["plumber", "tile installer", "electrician"],
    },
    "kitchen": {
        "materials": ["cabinet", "countertop", "sink", "faucet", "backsplash tile"],
        "labor": ["cabinet installer", "plumber", "electrician", "tile installer"],
    },
    "roofing": {
        "materials": ["asphalt shingles", "roofing felt", "flashing", "ridge cap", "nails"],
        "labor": ["roofer"],
    },
    "plumbing": {
        "materials": ["pvc pipe", "copper pipe", "fittings", "water heater", "faucet"],
        "labor": ["plumber", "plumber journeyman"],
    },
    "electrical": {
        "materials": ["wire", "outlet", "switch", "breaker", "junction box"],
        "labor": ["electrician", "electrician journeyman"],
    },
    "hvac": {
        "materials": ["ductwork", "thermostat", "filter", "refrigerant"],
        "labor": ["hvac technician"],
    },
    "painting": {
        "materials": ["paint gallon", "primer", "caulk", "tape"],
        "labor": ["painter"],
    },
    "flooring": {
        "materials": ["hardwood flooring", "laminate", "vinyl plank", "underlayment"],
        "labor": ["flooring installer"],
    },
    "drywall": {
        "materials": ["drywall sheet", "joint compound", "drywall tape", "corner bead"],
        "labor": ["drywall installer", "drywall finisher"],
    },
}

ZIP_TO_LOCATION: Dict[str, Dict[str, str]] = {
    "77001": {"state": "Texas", "county": "Harris County"},
    "77002": {"state": "Texas", "county": "Harris County"},
    "90001": {"state": "California", "county": "Los Angeles County"},
    "90210": {"state": "California", "county": "Los Angeles County"},
    "10001": {"state": "New York", "county": "New York County"},
    "60601": {"state": "Illinois", "county": "Cook County"},
    "33101": {"state": "Florida", "county": "Miami-Dade County"},
    "85001": {"state": "Arizona", "county": "Maricopa County"},
    "98101": {"state": "Washington", "county": "King County"},
    "30301": {"state": "Georgia", "county": "Fulton County"},
    "02101": {"state": "Massachusetts", "county": "Suffolk County"},
    "80201": {"state": "Colorado", "county": "Denver County"},
}

ZIP_PREFIX_TO_LOCATION: Dict[str, Dict[str, str]] = {
    "770": {"state": "Texas", "county": "Harris County"},
    "771": {"state": "Texas", "county": "Harris County"},
    "750": {"state": "Texas", "county": "Dallas County"},
    "751": {"state": "Texas", "county": "Dallas County"},
    "900": {"state": "California", "county": "Los Angeles County"},
    "901": {"state": "California", "county": "Los Angeles County"},
    "902": {"state": "California", "county": "Los Angeles County"},
    "941": {"state": "California", "county": "San Francisco County"},
    "100": {"state": "New York", "county": "New York County"},
    "101": {"state": "New York", "county": "New York County"},
    "606": {"state": "Illinois", "county": "Cook County"},
    "331": {"state": "Florida", "county": "Miami-Dade County"},
    "850": {"state": "Arizona", "county": "Maricopa County"},
    "981": {"state": "Washington", "county": "King County"},
    "303": {"state": "Georgia", "county": "Fulton County"},
    "021": {"state": "Massachusetts", "county": "Suffolk County"},
    "802": {"state": "Colorado", "county": "Denver County"},
}

DEFAULT_LOCATION = {"state": "Texas", "county": "Harris County"}

SEARCH_SOURCES_QUERY = """
query SearchSources($input: SourceSearchInput!) {
  sources(input: $input) {
    nodes {
      id
      name
      calculatedUnitRateUsdCents
      laborRateUsdCents
      materialRateUsdCents
      uom
      state
      county
      sourceType
    }
    totalCount
  }
}
"""


def get_location_for_zip(zipcode: str) -> Dict[str, str]:
    """Resolve a zip code to the (state, county) 1build searches by."""
    if zipcode in ZIP_TO_LOCATION:
        return ZIP_TO_LOCATION[zipcode]
    return ZIP_PREFIX_TO_LOCATION.get(zipcode[:3], DEFAULT_LOCATION)


def get_search_terms(trade: str) -> Dict[str, List[str]]:
    """Material and labor search terms for a trade."""
    return TRADE_SEARCH_TERMS.get(
        trade.lower(),
        {"materials": [trade], "labor": [f"{trade} labor"]},
    )


# =============================================================================
# Service
# =============================================================================


class OneBuildService:
    """Client for the 1build external pricing API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize OneBuildService.

        Args:
            api_key: 1build external key (default from secrets).
            api_url: GraphQL gateway URL (default from settings).
            http_client: Optional shared client (tests inject a mock transport).
        """
        self.api_key = api_key if api_key is not None else (get_onebuild_api_key() or "")
        self.api_url = api_url or settings.onebuild_api_url
        self._http_client = http_client

        if not self.is_configured():
            logger.warning("onebuild_not_configured")

    def is_configured(self) -> bool:
        return bool(self.api_key) and len(self.api_key) > 10

    async def _query(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """POST a GraphQL query and return its ``data`` block."""
        headers = {
            "Content-Type": "application/json",
            "1build-api-key": self.api_key,
        }
        body = {"query": query, "variables": variables}

        if self._http_client is not None:
            response = await self._http_client.post(self.api_url, json=body, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=ONEBUILD_API_TIMEOUT) as client:
                response = await client.post(self.api_url, json=body, headers=headers)

        response.raise_for_status()
        result = response.json()

        errors = result.get("errors") or []
        if errors:
            raise DraftPipelineError(
                code=ErrorCode.EXTERNAL_API_ERROR,
                message=f"1build GraphQL error: {errors[0].get('message')}",
                details={"variables": variables},
            )
        return result.get("data") or {}

    async def search_sources(
        self,
        search_term: str,
        zipcode: str,
        source_type: Optional[str] = None,
        limit: int = 20,
    ) -> List[Dict[str, Any]]:
        """Search 1build sources near a zip code.

        Returns:
            Source nodes with ``unitCost`` converted from cents to dollars.
        """
        location = get_location_for_zip(zipcode)
        search_input: Dict[str, Any] = {
            "searchTerm": search_term,
            "state": location["state"],
            "county": location["county"],
            "page": {"limit": limit},
        }
        if source_type:
            search_input["sourceType"] = source_type

        data = await self._query(SEARCH_SOURCES_QUERY, {"input": search_input})
        nodes = (data.get("sources") or {}).get("nodes") or []

        return [
            {
                **node,
                "unitCost": (node.get("calculatedUnitRateUsdCents") or 0) / 100,
                "unit": node.get("uom") or "each",
            }
            for node in nodes
        ]

    async def _first_source(
        self,
        term: str,
        zipcode: str,
        source_type: str,
    ) -> Optional[Dict[str, Any]]:
        try:
            sources = await self.search_sources(term, zipcode, source_type, limit=1)
        except (httpx.HTTPError, ValueError, DraftPipelineError) as e:
            logger.warning(
                "onebuild_term_failed",
                term=term,
                zipcode=zipcode,
                source_type=source_type,
                error=str(e),
            )
            return None
        return sources[0] if sources else None

    async def get_trade_pricing(self, trade: str, zipcode: str) -> TradePricing:
        """Fetch material and labor pricing for a trade at a zip code.

        Raises:
            PricingError: If the service is not configured.
        """
        if not self.is_configured():
            raise PricingError(
                code=ErrorCode.PRICING_PROVIDER_UNCONFIGURED,
                message="1build external API key not configured",
                trade_id=trade,
                zipcode=zipcode,
            )

        terms = get_search_terms(trade)

        material_results, labor_results = await asyncio.gather(
            asyncio.gather(*(self._first_source(t, zipcode, "MATERIAL") for t in terms["materials"])),
            asyncio.gather(*(self._first_source(t, zipcode, "LABOR") for t in terms["labor"])),
        )

        materials = [
            MaterialPrice(name=name, cost=source["unitCost"], unit=source["unit"])
            for name, source in zip(terms["materials"], material_results)
            if source is not None
        ]
        labor = [
            LaborRate(name=name, hourly_rate=source["unitCost"])
            for name, source in zip(terms["labor"], labor_results)
            if source is not None
        ]

        logger.info(
            "onebuild_trade_pricing_fetched",
            trade=trade,
            zipcode=zipcode,
            materials=len(materials),
            labor=len(labor),
        )
        return TradePricing(materials=materials, labor=labor)
