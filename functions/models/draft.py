"""Mobile draft Pydantic models.

Inputs to a single draft run (job, template, user profile, photos) and the
DraftOutput consumed by the proposal UI. Attributes are snake_case with
camelCase aliases matching the JSON the mobile API exchanges.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from models.market_pricing import MarketBasis, PricingSource


class PackageTier(str, Enum):
    """Proposal package tiers."""

    GOOD = "GOOD"
    BETTER = "BETTER"
    BEST = "BEST"


# =============================================================================
# INPUTS
# =============================================================================


class JobInput(BaseModel):
    """Job record for a single draft run."""

    id: int
    client_name: str = Field(alias="clientName")
    address: str = ""
    trade_id: str = Field(alias="tradeId")
    trade_name: Optional[str] = Field(default=None, alias="tradeName")
    job_type_id: str = Field(alias="jobTypeId")
    job_type_name: str = Field(alias="jobTypeName")
    job_size: int = Field(default=2, ge=1, le=3, alias="jobSize", description="Small=1, Medium=2, Large=3")
    job_notes: Optional[str] = Field(default=None, alias="jobNotes")

    class Config:
        populate_by_name = True
        frozen = True


class PhotoInput(BaseModel):
    """Job-site photo with its (unvalidated) analysis findings."""

    public_url: str = Field(alias="publicUrl")
    kind: str = "other"
    findings: Optional[Any] = None

    class Config:
        populate_by_name = True
        frozen = True


class TemplateInput(BaseModel):
    """Proposal template for a trade/job type."""

    trade_id: str = Field(alias="tradeId")
    trade_name: Optional[str] = Field(default=None, alias="tradeName")
    job_type_id: str = Field(alias="jobTypeId")
    job_type_name: str = Field(alias="jobTypeName")
    base_scope: List[str] = Field(default_factory=list, alias="baseScope")
    base_price_low: float = Field(..., ge=0, alias="basePriceLow")
    base_price_high: float = Field(..., ge=0, alias="basePriceHigh")
    estimated_days_low: Optional[int] = Field(default=None, alias="estimatedDaysLow")
    estimated_days_high: Optional[int] = Field(default=None, alias="estimatedDaysHigh")
    warranty: Optional[str] = None
    exclusions: Optional[str] = None

    class Config:
        populate_by_name = True
        frozen = True


class UserProfile(BaseModel):
    """User pricing preferences (percent values, 100 = no change)."""

    price_multiplier: int = Field(default=100, alias="priceMultiplier")
    trade_multipliers: Dict[str, Any] = Field(default_factory=dict, alias="tradeMultipliers")

    class Config:
        populate_by_name = True
        frozen = True


class DraftRequest(BaseModel):
    """HTTP request body for draft generation."""

    job: JobInput
    template: TemplateInput
    user: UserProfile = Field(default_factory=UserProfile)
    photos: List[PhotoInput] = Field(default_factory=list)
    selected_issues: List[str] = Field(default_factory=list, alias="selectedIssues")

    class Config:
        populate_by_name = True


# =============================================================================
# PRICING
# =============================================================================


class PricingInputs(BaseModel):
    """Input bundle handed to the base pricebook."""

    base_price_low: float = Field(alias="basePriceLow")
    base_price_high: float = Field(alias="basePriceHigh")
    job_size: int = Field(alias="jobSize")
    user_price_multiplier: int = Field(alias="userPriceMultiplier")
    trade_multiplier: Optional[float] = Field(default=None, alias="tradeMultiplier")
    market_multiplier: float = Field(default=1.0, alias="marketMultiplier")

    class Config:
        populate_by_name = True


class PriceRange(BaseModel):
    """Low/high price pair in whole dollars."""

    price_low: int = Field(alias="priceLow")
    price_high: int = Field(alias="priceHigh")

    class Config:
        populate_by_name = True


class OneBuildProvenance(BaseModel):
    """Where the market multiplier's data came from."""

    source: PricingSource
    zipcode: str
    basis: MarketBasis


class PricingProvenanceInputs(PricingInputs):
    """Pricing inputs plus the market data they were derived from."""

    market_basis: MarketBasis = Field(default=MarketBasis.NONE, alias="marketBasis")
    onebuild: Optional[OneBuildProvenance] = None


class PricingProvenance(BaseModel):
    pricebook_version: str = Field(alias="pricebookVersion")
    inputs: PricingProvenanceInputs

    class Config:
        populate_by_name = True


# =============================================================================
# OUTPUT
# =============================================================================


class ScopeSection(BaseModel):
    """Titled group of scope items (e.g. "Faucet Replacement")."""

    title: str
    items: List[str] = Field(default_factory=list)


class ProposalLineItem(BaseModel):
    """Single priced line item of a proposal package."""

    id: str
    trade_id: str = Field(alias="tradeId")
    trade_name: Optional[str] = Field(default=None, alias="tradeName")
    job_type_id: str = Field(alias="jobTypeId")
    job_type_name: str = Field(alias="jobTypeName")
    job_size: int = Field(alias="jobSize")
    scope: List[str] = Field(default_factory=list)
    scope_sections: List[ScopeSection] = Field(default_factory=list, alias="scopeSections")
    options: Dict[str, Any] = Field(default_factory=dict)
    price_low: int = Field(alias="priceLow")
    price_high: int = Field(alias="priceHigh")
    estimated_days_low: Optional[int] = Field(default=None, alias="estimatedDaysLow")
    estimated_days_high: Optional[int] = Field(default=None, alias="estimatedDaysHigh")
    warranty: Optional[str] = None
    exclusions: Optional[str] = None

    class Config:
        populate_by_name = True


class DraftPackage(BaseModel):
    """One package tier of the draft."""

    label: str
    total: int
    line_items: List[ProposalLineItem] = Field(alias="lineItems")

    class Config:
        populate_by_name = True


class DraftOutput(BaseModel):
    """Generated draft: three packages, confidence, questions and provenance."""

    packages: Dict[PackageTier, DraftPackage]
    default_package: PackageTier = Field(default=PackageTier.BETTER, alias="defaultPackage")
    confidence: int = Field(..., ge=0, le=95)
    questions: List[str] = Field(default_factory=list)
    pricing: PricingProvenance

    class Config:
        populate_by_name = True

    def to_response(self) -> Dict[str, Any]:
        """JSON shape returned to the UI layer."""
        return self.model_dump(mode="json", by_alias=True)
