"""
Tests for the single-deal engine: deal structure, debt service, year-1
cash flow, projection and exit analysis.
"""

import math
import unittest
from dataclasses import replace

from deal_engine import (
    DEFAULT_INPUTS,
    MIN_PROJECTION_YEARS,
    ValuationInputs,
    calculate_irr,
    calculate_valuation,
    pmt,
    remaining_balance,
)


def base_inputs(**overrides) -> ValuationInputs:
    inputs = replace(
        DEFAULT_INPUTS,
        target_revenue=5_000_000.0,
        target_ebitda=1_000_000.0,
        target_ebitda_margin=0.20,
    )
    return replace(inputs, **overrides)


class TestDealStructure(unittest.TestCase):
    def test_base_case_capital_stack(self):
        deal = calculate_valuation(base_inputs()).deal

        self.assertAlmostEqual(deal.enterprise_value, 4_000_000.0)
        self.assertAlmostEqual(deal.equity_check, 1_000_000.0)
        self.assertAlmostEqual(deal.bank_debt, 2_400_000.0)
        self.assertAlmostEqual(deal.seller_note, 600_000.0)
        self.assertAlmostEqual(deal.implied_ebitda_multiple, 4.0)
        self.assertAlmostEqual(deal.implied_revenue_multiple, 0.8)

    def test_revenue_method_prices_off_revenue(self):
        deal = calculate_valuation(base_inputs(valuation_method="revenue", entry_multiple=1.0)).deal

        self.assertAlmostEqual(deal.enterprise_value, 5_000_000.0)
        self.assertAlmostEqual(deal.implied_ebitda_multiple, 5.0)
        self.assertAlmostEqual(deal.implied_revenue_multiple, 1.0)

    def test_implied_multiples_undefined_without_base(self):
        deal = calculate_valuation(replace(DEFAULT_INPUTS)).deal

        self.assertEqual(deal.enterprise_value, 0.0)
        self.assertIsNone(deal.implied_ebitda_multiple)
        self.assertIsNone(deal.implied_revenue_multiple)


class TestDebtServiceAndCashFlow(unittest.TestCase):
    def test_debt_service(self):
        debt = calculate_valuation(base_inputs()).debt

        self.assertAlmostEqual(debt.bank_annual_payment, pmt(0.085, 10, 2_400_000.0))
        self.assertAlmostEqual(debt.seller_annual_payment, pmt(0.06, 5, 600_000.0))
        self.assertAlmostEqual(
            debt.total_annual_debt_service, debt.bank_annual_payment + debt.seller_annual_payment
        )
        self.assertAlmostEqual(debt.bank_monthly_payment, debt.bank_annual_payment / 12)
        self.assertAlmostEqual(debt.seller_monthly_payment, debt.seller_annual_payment / 12)

    def test_year1_cash_flow(self):
        outputs = calculate_valuation(base_inputs(capex_annual=50_000.0, one_time_adjustments=30_000.0))
        cf = outputs.cash_flow
        total_ds = outputs.debt.total_annual_debt_service

        # 1,000,000 + 30,000 one-time - 200,000 replacement salary
        self.assertAlmostEqual(cf.adjusted_ebitda, 830_000.0)
        self.assertAlmostEqual(cf.pre_tax_cash_flow, 830_000.0 - total_ds - 50_000.0)
        self.assertAlmostEqual(cf.after_tax_cash_flow, cf.pre_tax_cash_flow * 0.75)
        self.assertAlmostEqual(cf.dscr, 830_000.0 / total_ds)

    def test_all_equity_deal_has_infinite_dscr(self):
        outputs = calculate_valuation(base_inputs(equity_pct=1.0, bank_debt_pct=0.0, seller_note_pct=0.0))

        self.assertEqual(outputs.debt.total_annual_debt_service, 0.0)
        self.assertTrue(math.isinf(outputs.cash_flow.dscr))
        self.assertTrue(all(p.debt_service == 0.0 for p in outputs.projection))
        self.assertTrue(all(p.remaining_debt == 0.0 for p in outputs.projection))

    def test_zero_term_seller_note_does_not_raise(self):
        outputs = calculate_valuation(base_inputs(seller_note_term=0))
        bank = pmt(0.085, 10, 2_400_000.0)

        self.assertTrue(math.isinf(outputs.debt.seller_annual_payment))
        self.assertTrue(math.isinf(outputs.debt.total_annual_debt_service))
        self.assertEqual(outputs.cash_flow.dscr, 0.0)
        # the note is never outstanding in the projection, so only the bank loan is serviced
        self.assertAlmostEqual(outputs.projection[0].debt_service, bank)
        self.assertAlmostEqual(outputs.projection[0].remaining_debt, remaining_balance(0.085, 10, 2_400_000.0, 1))
        self.assertIsNotNone(outputs.exit.irr)


class TestProjection(unittest.TestCase):
    def test_projection_covers_at_least_ten_years(self):
        self.assertEqual(len(calculate_valuation(base_inputs(exit_year=5)).projection), MIN_PROJECTION_YEARS)
        self.assertEqual(len(calculate_valuation(base_inputs(exit_year=12)).projection), 12)

    def test_revenue_growth_and_bolt_on(self):
        projection = calculate_valuation(base_inputs(year_2_bolt_on_revenue=500_000.0)).projection

        self.assertAlmostEqual(projection[0].revenue, 5_000_000.0)
        self.assertAlmostEqual(projection[1].revenue, 5_250_000.0 + 500_000.0)
        self.assertAlmostEqual(projection[2].revenue, 5_750_000.0 * 1.05)

    def test_margin_matures_from_year_three(self):
        projection = calculate_valuation(base_inputs()).projection

        self.assertAlmostEqual(projection[0].ebitda_margin, 0.20)
        self.assertAlmostEqual(projection[1].ebitda_margin, 0.20)
        self.assertAlmostEqual(projection[2].ebitda_margin, 0.22)
        self.assertAlmostEqual(projection[9].ebitda_margin, 0.22)

    def test_synergies_start_in_year_two(self):
        projection = calculate_valuation(
            base_inputs(synergy_sg_a_savings=100_000.0, synergy_procurement=50_000.0, synergy_cross_sell_pct=0.02)
        ).projection

        self.assertEqual(projection[0].synergies, 0.0)
        self.assertAlmostEqual(projection[1].synergies, 150_000.0 + 5_250_000.0 * 0.02)
        self.assertAlmostEqual(
            projection[1].adjusted_ebitda,
            projection[1].ebitda + projection[1].synergies - 200_000.0,
        )

    def test_paid_off_tranche_stops_requiring_payment(self):
        outputs = calculate_valuation(base_inputs())
        projection = outputs.projection
        bank = outputs.debt.bank_annual_payment
        seller = outputs.debt.seller_annual_payment

        # Seller note (5 years) is serviced in years 1-5 only; bank (10 years) in 1-10.
        self.assertAlmostEqual(projection[4].debt_service, bank + seller)
        self.assertAlmostEqual(projection[5].debt_service, bank)
        self.assertAlmostEqual(projection[9].debt_service, bank)
        self.assertEqual(projection[9].remaining_debt, 0.0)

    def test_remaining_debt_is_end_of_year_balance(self):
        outputs = calculate_valuation(base_inputs())
        expected = remaining_balance(0.085, 10, 2_400_000.0, 3) + remaining_balance(0.06, 5, 600_000.0, 3)
        self.assertAlmostEqual(outputs.projection[2].remaining_debt, expected, places=4)

    def test_taxes_floored_at_zero(self):
        projection = calculate_valuation(base_inputs(owner_salary=2_000_000.0)).projection

        for year in projection:
            self.assertLess(year.pre_tax_cf, 0)
            self.assertEqual(year.taxes, 0.0)
            self.assertAlmostEqual(year.free_cash_flow, year.pre_tax_cf)

    def test_cumulative_fcf_accumulates(self):
        projection = calculate_valuation(base_inputs()).projection

        running = 0.0
        for year in projection:
            running += year.free_cash_flow
            self.assertAlmostEqual(year.cumulative_fcf, running, places=4)

    def test_year_moic(self):
        projection = calculate_valuation(base_inputs()).projection
        y3 = projection[2]

        self.assertAlmostEqual(y3.implied_ev, y3.adjusted_ebitda * 7.0)
        self.assertAlmostEqual(y3.equity_value, y3.implied_ev - y3.remaining_debt)
        self.assertAlmostEqual(y3.moic, (y3.equity_value + y3.cumulative_fcf) / 1_000_000.0)


class TestExitAnalysis(unittest.TestCase):
    def test_exit_reads_exit_year_row(self):
        outputs = calculate_valuation(base_inputs())
        exit_row = outputs.projection[6]
        exit_ = outputs.exit

        self.assertAlmostEqual(exit_.exit_revenue, exit_row.revenue)
        self.assertAlmostEqual(exit_.exit_ebitda, exit_row.adjusted_ebitda)
        self.assertAlmostEqual(exit_.exit_ev, exit_row.adjusted_ebitda * 7.0)
        self.assertAlmostEqual(exit_.remaining_debt_at_exit, exit_row.remaining_debt, places=4)
        self.assertAlmostEqual(exit_.equity_to_buyer, exit_.exit_ev - exit_.remaining_debt_at_exit)
        self.assertAlmostEqual(exit_.cumulative_fcf, exit_row.cumulative_fcf)
        self.assertAlmostEqual(exit_.total_return, exit_.equity_to_buyer + exit_.cumulative_fcf)
        self.assertAlmostEqual(exit_.moic, exit_.total_return / 1_000_000.0)

    def test_irr_uses_fcf_stream_plus_exit_equity(self):
        outputs = calculate_valuation(base_inputs())
        flows = [-1_000_000.0] + [p.free_cash_flow for p in outputs.projection[:7]]
        flows[-1] += outputs.exit.equity_to_buyer

        self.assertIsNotNone(outputs.exit.irr)
        self.assertAlmostEqual(outputs.exit.irr, calculate_irr(flows), places=9)
        self.assertGreater(outputs.exit.irr, 0.0)

    def test_revenue_exit_method(self):
        outputs = calculate_valuation(base_inputs(exit_valuation_method="revenue", exit_multiple=1.5))
        exit_row = outputs.projection[6]

        self.assertAlmostEqual(outputs.exit.exit_ev, exit_row.revenue * 1.5)
        self.assertAlmostEqual(exit_row.implied_ev, exit_row.revenue * 1.5)

    def test_exit_after_loan_terms_has_no_debt(self):
        outputs = calculate_valuation(base_inputs(exit_year=10))

        self.assertEqual(outputs.exit.remaining_debt_at_exit, 0.0)
        self.assertAlmostEqual(outputs.exit.equity_to_buyer, outputs.exit.exit_ev)

    def test_no_equity_means_zero_moic(self):
        outputs = calculate_valuation(base_inputs(equity_pct=0.0, bank_debt_pct=0.85))

        self.assertEqual(outputs.deal.equity_check, 0.0)
        self.assertEqual(outputs.exit.moic, 0.0)
        self.assertTrue(all(p.moic == 0.0 for p in outputs.projection))

    def test_higher_exit_multiple_raises_returns(self):
        low = calculate_valuation(base_inputs(exit_multiple=6.0)).exit
        high = calculate_valuation(base_inputs(exit_multiple=8.0)).exit

        self.assertGreater(high.moic, low.moic)
        self.assertGreater(high.irr, low.irr)

    def test_deterministic(self):
        inputs = base_inputs(year_2_bolt_on_revenue=250_000.0, synergy_cross_sell_pct=0.01)
        self.assertEqual(calculate_valuation(inputs), calculate_valuation(inputs))

    def test_models_reexports(self):
        from deal_engine import models

        self.assertIs(models.ValuationInputs, ValuationInputs)
        self.assertEqual(models.ValueBridge.__module__, "deal_engine.rollup")


if __name__ == "__main__":
    unittest.main()
