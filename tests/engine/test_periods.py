"""
Tests for recompute_period_summary: P&L waterfall, add-back routing,
overrides and margin edge cases.
"""

import pytest

from deal_engine import AddBackItem, LineItem, LineItemCategory, PeriodOverrides, recompute_period_summary


@pytest.fixture
def line_items():
    return [
        LineItem(LineItemCategory.REVENUE, 1_000_000.0),
        LineItem(LineItemCategory.REVENUE, 200_000.0),
        LineItem(LineItemCategory.REVENUE, 50_000.0, is_negative=True),  # refunds
        LineItem(LineItemCategory.COGS, 600_000.0),
        LineItem(LineItemCategory.OPEX, 300_000.0),
        LineItem(LineItemCategory.D_AND_A, 20_000.0),
        LineItem(LineItemCategory.INTEREST, 10_000.0),
        LineItem(LineItemCategory.TAX, 15_000.0),
        LineItem(LineItemCategory.OTHER_INCOME, 5_000.0),
        LineItem(LineItemCategory.OTHER_EXPENSE, 2_000.0),
    ]


@pytest.fixture
def add_backs():
    return [
        AddBackItem(40_000.0, description="Owner vehicle"),
        AddBackItem(60_000.0, include_in_ebitda=False, description="Owner salary"),
    ]


def test_waterfall(line_items, add_backs):
    s = recompute_period_summary(line_items, add_backs)

    assert s.total_revenue == 1_150_000.0
    assert s.total_cogs == 600_000.0
    assert s.gross_profit == 550_000.0
    assert s.total_opex == 300_000.0
    assert s.ebitda == 250_000.0
    assert s.depreciation_amort == 20_000.0
    assert s.ebit == 230_000.0
    assert s.interest_expense == 10_000.0
    assert s.tax_expense == 15_000.0
    assert s.other_income == 5_000.0
    assert s.other_expense == 2_000.0
    assert s.net_income == 208_000.0


def test_add_back_routing(line_items, add_backs):
    s = recompute_period_summary(line_items, add_backs)

    # total_add_backs reports the EBITDA add-backs only
    assert s.total_add_backs == 40_000.0
    assert s.adjusted_ebitda == 290_000.0
    assert s.sde == 350_000.0


def test_margins(line_items, add_backs):
    s = recompute_period_summary(line_items, add_backs)

    assert s.gross_margin == pytest.approx(550_000 / 1_150_000)
    assert s.ebitda_margin == pytest.approx(250_000 / 1_150_000)
    assert s.adjusted_ebitda_margin == pytest.approx(290_000 / 1_150_000)
    assert s.net_margin == pytest.approx(208_000 / 1_150_000)


def test_empty_period_has_undefined_margins():
    s = recompute_period_summary([], [])

    assert s.total_revenue == 0.0
    assert s.ebitda == 0.0
    assert s.net_income == 0.0
    assert s.sde == 0.0
    assert s.gross_margin is None
    assert s.ebitda_margin is None
    assert s.adjusted_ebitda_margin is None
    assert s.net_margin is None


def test_revenue_override_flows_downstream(line_items, add_backs):
    s = recompute_period_summary(line_items, add_backs, PeriodOverrides(override_total_revenue=2_000_000.0))

    assert s.total_revenue == 2_000_000.0
    assert s.gross_profit == 1_400_000.0
    assert s.ebitda == 1_100_000.0
    assert s.gross_margin == pytest.approx(0.7)


def test_ebitda_override_drives_ebit_and_adjustments(line_items, add_backs):
    s = recompute_period_summary(line_items, add_backs, PeriodOverrides(override_ebitda=500_000.0))

    assert s.gross_profit == 550_000.0
    assert s.ebitda == 500_000.0
    assert s.ebit == 480_000.0
    assert s.adjusted_ebitda == 540_000.0
    assert s.sde == 600_000.0


def test_zero_override_is_honored(line_items):
    s = recompute_period_summary(line_items, [], PeriodOverrides(override_total_cogs=0.0))

    assert s.total_cogs == 0.0
    assert s.gross_profit == 1_150_000.0


def test_net_income_override_does_not_touch_ebitda(line_items):
    s = recompute_period_summary(line_items, [], PeriodOverrides(override_net_income=1.0))

    assert s.net_income == 1.0
    assert s.ebitda == 250_000.0
    assert s.net_margin == pytest.approx(1.0 / 1_150_000)


def test_plain_string_categories_are_accepted():
    s = recompute_period_summary([LineItem("REVENUE", 100.0), LineItem("COGS", 40.0)], [])

    assert s.total_revenue == 100.0
    assert s.gross_profit == 60.0


def test_sde_covers_ebitda_add_backs(line_items):
    add_backs = [AddBackItem(10_000.0), AddBackItem(5_000.0, include_in_ebitda=False)]
    s = recompute_period_summary(line_items, add_backs)

    assert s.sde - s.ebitda >= s.adjusted_ebitda - s.ebitda
