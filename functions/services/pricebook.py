"""
Base pricebook.

Default ``compute_price_range`` collaborator: turns a template's base price
range into the GOOD package range for a job.

    price = base * size_factor * (user / 100) * (trade / 100) * market_multiplier

where ``user`` is the global price multiplier and ``trade`` the per-trade
multiplier for the template's trade (100 when unset). Both are percentages.
"""

import math
from typing import Dict

from models.draft import PriceRange, PricingInputs

SIZE_FACTORS: Dict[int, float] = {
    1: 0.75,  # small
    2: 1.0,   # medium
    3: 1.4,   # large
}


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def compute_price_range(inputs: PricingInputs) -> PriceRange:
    """Compute the (low, high) dollar range for the base line item."""
    size_factor = SIZE_FACTORS.get(inputs.job_size, 1.0)
    trade_factor = inputs.trade_multiplier / 100.0 if inputs.trade_multiplier is not None else 1.0
    factor = size_factor * (inputs.user_price_multiplier / 100.0) * trade_factor * inputs.market_multiplier

    low = round_half_up(inputs.base_price_low * factor)
    high = round_half_up(inputs.base_price_high * factor)
    if high < low:
        low, high = high, low
    return PriceRange(price_low=low, price_high=high)
