"""
Tests for historical-period quality checks.
"""

from deal_engine import HistoricalPeriod, run_quality_checks


def healthy(year, revenue=2_000_000.0, **overrides):
    fields = dict(
        year=year,
        total_revenue=revenue,
        total_cogs=revenue * 0.6,
        gross_profit=revenue * 0.4,
        ebitda=revenue * 0.4,
        adjusted_ebitda=revenue * 0.4,
        sde=revenue * 0.45,
        total_add_backs=0.0,
        gross_margin=0.40,
        ebitda_margin=0.20,
        categories=("REVENUE", "COGS", "OPEX"),
    )
    fields.update(overrides)
    return HistoricalPeriod(**fields)


def ids(checks):
    return [c.id for c in checks]


def test_no_periods_no_checks():
    assert run_quality_checks([]) == []


def test_clean_history_has_no_findings():
    checks = run_quality_checks([healthy(2024, 2_100_000.0), healthy(2023)])
    assert checks == []


def test_single_period_flagged():
    checks = run_quality_checks([healthy(2024)])
    assert ids(checks) == ["single-period"]
    assert checks[0].severity == "info"


def test_negative_ebitda():
    checks = run_quality_checks([healthy(2024, ebitda=-50_000.0), healthy(2023)])
    assert "negative-ebitda" in ids(checks)
    assert "$-50,000" in next(c for c in checks if c.id == "negative-ebitda").message


def test_below_thesis_minimum():
    checks = run_quality_checks([healthy(2024, adjusted_ebitda=400_000.0), healthy(2023)])
    assert "below-thesis-minimum" in ids(checks)


def test_add_back_ratio_bands():
    elevated = run_quality_checks([healthy(2024, total_add_backs=800_000.0), healthy(2023)])
    high = run_quality_checks([healthy(2024, total_add_backs=1_200_000.0), healthy(2023)])

    assert "elevated-addback-ratio" in ids(elevated)
    assert "high-addback-ratio" in ids(high)
    assert "elevated-addback-ratio" not in ids(high)


def test_margin_outliers():
    checks = run_quality_checks([healthy(2024, gross_margin=0.10, ebitda_margin=0.40), healthy(2023)])

    assert "low-gross-margin" in ids(checks)
    assert "high-ebitda-margin" in ids(checks)


def test_high_owner_comp():
    checks = run_quality_checks([healthy(2024, sde=1_400_000.0), healthy(2023)])
    assert "high-owner-comp" in ids(checks)


def test_yoy_volatility_per_year_pair():
    checks = run_quality_checks([healthy(2024, 3_000_000.0), healthy(2023), healthy(2022, 1_000_000.0)])

    assert "yoy-volatility-2024" in ids(checks)
    assert "yoy-volatility-2023" in ids(checks)
    message = next(c for c in checks if c.id == "yoy-volatility-2024").message
    assert "+50.0%" in message


def test_missing_line_items():
    checks = run_quality_checks([healthy(2024, categories=("REVENUE",)), healthy(2023)])

    missing = next(c for c in checks if c.id == "missing-line-items")
    assert "COGS" in missing.message
    assert "OPEX" in missing.message


def test_math_inconsistency():
    checks = run_quality_checks([healthy(2024, gross_profit=500_000.0), healthy(2023)])
    assert "math-inconsistency" in ids(checks)


def test_sorted_by_severity():
    checks = run_quality_checks(
        [healthy(2024, ebitda=-10.0, gross_margin=0.70, total_add_backs=700_000.0)]
    )
    order = {"error": 0, "warning": 1, "info": 2}

    assert [order[c.severity] for c in checks] == sorted(order[c.severity] for c in checks)
    assert checks[0].id == "negative-ebitda"
    assert checks[-1].severity == "info"
