"""Unit tests for the base pricebook and package tier builder."""

import pytest

from models.draft import PackageTier, PriceRange, PricingInputs, ScopeSection, UserProfile
from services.package_builder import (
    BEST_EXTRA_SCOPE,
    BETTER_EXTRA_SCOPE,
    build_base_line_item,
    build_packages,
    build_pricing_inputs,
    synthesize_packages,
)
from services.pricebook import compute_price_range, round_half_up


def _inputs(**overrides):
    values = dict(
        base_price_low=1000,
        base_price_high=1400,
        job_size=2,
        user_price_multiplier=100,
        trade_multiplier=None,
        market_multiplier=1.0,
    )
    values.update(overrides)
    return PricingInputs(**values)


class TestPricebook:
    """Tests for compute_price_range."""

    @pytest.mark.parametrize(
        "value,expected",
        [(2.5, 3), (2.49, 2), (1295.9999, 1296), (1652.0, 1652), (0.5, 1)],
    )
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_medium_job_at_list_price(self):
        assert compute_price_range(_inputs()) == PriceRange(price_low=1000, price_high=1400)

    def test_small_job(self):
        assert compute_price_range(_inputs(job_size=1)) == PriceRange(price_low=750, price_high=1050)

    def test_large_job_with_trade_multiplier(self):
        # 1.4 * 0.90 * 1.10
        price = compute_price_range(_inputs(job_size=3, trade_multiplier=110, user_price_multiplier=90))

        assert price == PriceRange(price_low=1386, price_high=1940)

    def test_user_and_trade_multipliers_combine(self):
        price = compute_price_range(_inputs(user_price_multiplier=120, trade_multiplier=110))

        assert price == PriceRange(price_low=1320, price_high=1848)

    def test_trade_multiplier_alone(self):
        price = compute_price_range(_inputs(trade_multiplier=110))

        assert price == PriceRange(price_low=1100, price_high=1540)

    def test_user_multiplier(self):
        price = compute_price_range(_inputs(user_price_multiplier=90))

        assert price == PriceRange(price_low=900, price_high=1260)

    def test_market_multiplier(self):
        price = compute_price_range(_inputs(market_multiplier=1.05))

        assert price == PriceRange(price_low=1050, price_high=1470)

    def test_reversed_base_range_is_ordered(self):
        price = compute_price_range(_inputs(base_price_low=1400, base_price_high=1000))

        assert price.price_low <= price.price_high


class TestBuildPricingInputs:
    """Tests for build_pricing_inputs."""

    def test_defaults(self, sample_template, sample_job, sample_user):
        inputs = build_pricing_inputs(sample_template, sample_job, sample_user)

        assert inputs.base_price_low == 1000
        assert inputs.base_price_high == 1400
        assert inputs.job_size == 2
        assert inputs.user_price_multiplier == 100
        assert inputs.trade_multiplier is None
        assert inputs.market_multiplier == 1.0

    def test_trade_multiplier_for_template_trade(self, sample_template, sample_job):
        user = UserProfile(price_multiplier=100, trade_multipliers={"plumbing": 115, "hvac": 90})

        inputs = build_pricing_inputs(sample_template, sample_job, user, market_multiplier=1.05)

        assert inputs.trade_multiplier == 115.0
        assert inputs.market_multiplier == 1.05

    @pytest.mark.parametrize("value", ["115", True, None, {"pct": 115}])
    def test_non_numeric_trade_multiplier_ignored(self, sample_template, sample_job, value):
        user = UserProfile(trade_multipliers={"plumbing": value})

        inputs = build_pricing_inputs(sample_template, sample_job, user)

        assert inputs.trade_multiplier is None


class TestBuildPackages:
    """Tests for package tier derivation."""

    def test_list_price_example(self, sample_job, sample_template):
        packages = synthesize_packages(
            sample_job,
            sample_template,
            _inputs(),
            sample_template.base_scope,
            compute_price_range,
        )

        good = packages[PackageTier.GOOD]
        better = packages[PackageTier.BETTER]
        best = packages[PackageTier.BEST]

        assert (good.line_items[0].price_low, good.line_items[0].price_high, good.total) == (1000, 1400, 1200)
        assert (better.line_items[0].price_low, better.line_items[0].price_high, better.total) == (1080, 1512, 1296)
        assert (best.line_items[0].price_low, best.line_items[0].price_high, best.total) == (1180, 1652, 1416)
        assert [p.label for p in packages.values()] == ["Good", "Better", "Best"]

    def test_tier_scope(self, sample_job, sample_template):
        base = build_base_line_item(
            sample_job, sample_template, ["Step one."], PriceRange(price_low=100, price_high=200)
        )

        packages = build_packages(base)

        assert packages[PackageTier.GOOD].line_items[0].scope == ["Step one."]
        assert packages[PackageTier.BETTER].line_items[0].scope == ["Step one."] + BETTER_EXTRA_SCOPE
        assert packages[PackageTier.BEST].line_items[0].scope == ["Step one."] + BEST_EXTRA_SCOPE

    def test_unique_line_item_ids(self, sample_job, sample_template):
        base = build_base_line_item(
            sample_job, sample_template, [], PriceRange(price_low=100, price_high=200)
        )

        ids = {pkg.line_items[0].id for pkg in build_packages(base).values()}

        assert len(ids) == 3

    def test_base_line_item_copies_template(self, sample_job, sample_template):
        sections = [ScopeSection(title="Faucet Repair", items=["Fix it."])]

        item = build_base_line_item(
            sample_job,
            sample_template,
            ["Fix it."],
            PriceRange(price_low=100, price_high=200),
            sections,
        )

        assert item.trade_id == "plumbing"
        assert item.job_type_name == "Faucet Service"
        assert item.job_size == 2
        assert item.warranty == sample_template.warranty
        assert item.scope_sections == sections
        assert item.options == {}

    def test_sections_carried_to_every_tier(self, sample_job, sample_template):
        sections = [ScopeSection(title="Faucet Replacement", items=["Install new faucet."])]
        base = build_base_line_item(
            sample_job, sample_template, [], PriceRange(price_low=100, price_high=200), sections
        )

        for package in build_packages(base).values():
            assert package.line_items[0].scope_sections == sections

    @pytest.mark.parametrize(
        "low,high", [(0, 0), (1, 1), (99, 101), (1234, 5678), (5000, 5000)]
    )
    def test_tier_ordering(self, sample_job, sample_template, low, high):
        base = build_base_line_item(
            sample_job, sample_template, [], PriceRange(price_low=low, price_high=high)
        )

        packages = build_packages(base)
        items = [packages[tier].line_items[0] for tier in PackageTier]

        for item in items:
            assert item.price_low <= item.price_high
        assert items[0].price_low <= items[1].price_low <= items[2].price_low
        assert items[0].price_high <= items[1].price_high <= items[2].price_high
        assert packages[PackageTier.GOOD].total <= packages[PackageTier.BETTER].total
        assert packages[PackageTier.BETTER].total <= packages[PackageTier.BEST].total

    def test_price_range_fn_receives_inputs(self, sample_job, sample_template):
        seen = []

        def fake_range(inputs):
            seen.append(inputs)
            return PriceRange(price_low=10, price_high=20)

        inputs = _inputs(market_multiplier=1.1)
        packages = synthesize_packages(sample_job, sample_template, inputs, [], fake_range)

        assert seen == [inputs]
        assert packages[PackageTier.GOOD].total == 15
