"""
Price Synthesizer & Package Tier Builder.

Bundles pricing inputs for the base pricebook and derives the GOOD, BETTER
and BEST packages from a single base line item.
"""

import uuid
from numbers import Real
from typing import Callable, Dict, List, Optional

import structlog

from models.draft import (
    DraftPackage,
    JobInput,
    PackageTier,
    PriceRange,
    PricingInputs,
    ProposalLineItem,
    ScopeSection,
    TemplateInput,
    UserProfile,
)
from services.pricebook import round_half_up

logger = structlog.get_logger(__name__)

PriceRangeFn = Callable[[PricingInputs], PriceRange]

BETTER_RATIO = 1.08
BEST_RATIO = 1.18

BETTER_EXTRA_SCOPE = [
    "Confirm field measurements and verify existing conditions prior to install.",
]
BEST_EXTRA_SCOPE = [
    "Include premium protection of adjacent finishes and enhanced daily jobsite cleanup.",
    "Provide photo documentation of key in-wall conditions as discovered.",
]

PACKAGE_LABELS = {
    PackageTier.GOOD: "Good",
    PackageTier.BETTER: "Better",
    PackageTier.BEST: "Best",
}


def _trade_multiplier(user: UserProfile, trade_id: str) -> Optional[float]:
    value = user.trade_multipliers.get(trade_id)
    # bool is a Real subclass but never a valid multiplier
    if isinstance(value, Real) and not isinstance(value, bool):
        return float(value)
    return None


def build_pricing_inputs(
    template: TemplateInput,
    job: JobInput,
    user: UserProfile,
    market_multiplier: float = 1.0,
) -> PricingInputs:
    """Bundle the inputs for the base pricebook."""
    return PricingInputs(
        base_price_low=template.base_price_low,
        base_price_high=template.base_price_high,
        job_size=job.job_size,
        user_price_multiplier=user.price_multiplier,
        trade_multiplier=_trade_multiplier(user, template.trade_id),
        market_multiplier=market_multiplier,
    )


def build_base_line_item(
    job: JobInput,
    template: TemplateInput,
    scope: List[str],
    price: PriceRange,
    scope_sections: Optional[List[ScopeSection]] = None,
) -> ProposalLineItem:
    """GOOD-tier line item for the job."""
    return ProposalLineItem(
        id=str(uuid.uuid4()),
        trade_id=template.trade_id,
        trade_name=template.trade_name,
        job_type_id=template.job_type_id,
        job_type_name=template.job_type_name,
        job_size=job.job_size,
        scope=list(scope),
        scope_sections=list(scope_sections or []),
        options={},
        price_low=price.price_low,
        price_high=price.price_high,
        estimated_days_low=template.estimated_days_low,
        estimated_days_high=template.estimated_days_high,
        warranty=template.warranty,
        exclusions=template.exclusions,
    )


def _escalate(
    item: ProposalLineItem,
    ratio: float,
    extra_scope: List[str],
) -> ProposalLineItem:
    return item.model_copy(
        update={
            "id": str(uuid.uuid4()),
            "scope": list(item.scope) + extra_scope,
            "scope_sections": list(item.scope_sections),
            "price_low": round_half_up(item.price_low * ratio),
            "price_high": round_half_up(item.price_high * ratio),
        }
    )


def _package(tier: PackageTier, item: ProposalLineItem) -> DraftPackage:
    return DraftPackage(
        label=PACKAGE_LABELS[tier],
        total=round_half_up((item.price_low + item.price_high) / 2),
        line_items=[item],
    )


def build_packages(base_line_item: ProposalLineItem) -> Dict[PackageTier, DraftPackage]:
    """Derive GOOD/BETTER/BEST packages from the base line item.

    BETTER and BEST scale both price bounds by 1.08 and 1.18 and append
    fixed scope items; each tier gets its own line item id.
    """
    better = _escalate(base_line_item, BETTER_RATIO, BETTER_EXTRA_SCOPE)
    best = _escalate(base_line_item, BEST_RATIO, BEST_EXTRA_SCOPE)

    packages = {
        PackageTier.GOOD: _package(PackageTier.GOOD, base_line_item),
        PackageTier.BETTER: _package(PackageTier.BETTER, better),
        PackageTier.BEST: _package(PackageTier.BEST, best),
    }

    logger.debug(
        "packages_built",
        totals={tier.value: pkg.total for tier, pkg in packages.items()},
    )
    return packages


def synthesize_packages(
    job: JobInput,
    template: TemplateInput,
    pricing_inputs: PricingInputs,
    scope: List[str],
    compute_price_range: PriceRangeFn,
    scope_sections: Optional[List[ScopeSection]] = None,
) -> Dict[PackageTier, DraftPackage]:
    """Price the GOOD line item via the pricebook and build all tiers."""
    price = compute_price_range(pricing_inputs)
    base = build_base_line_item(job, template, scope, price, scope_sections)
    return build_packages(base)
