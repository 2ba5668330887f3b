import argparse
import json
import math
import sys

from deal_service.services.valuation import DealService
from deal_service.utils.json import sanitize_for_json


def _print_valuation(result):
    deal = result["deal"]
    cash_flow = result["cash_flow"]
    exit_ = result["exit"]
    print("\nValuation Summary:")
    print(f"Enterprise Value: {deal['enterprise_value']:,.0f}")
    print(f"Equity Check: {deal['equity_check']:,.0f}")
    debt_service = result["debt"]["total_annual_debt_service"]
    print(f"Total Debt Service: {debt_service:,.0f}" if math.isfinite(debt_service) else "Total Debt Service: n/a")
    # An all-equity deal has no coverage ratio.
    dscr = cash_flow["dscr"]
    print(f"DSCR: {dscr:.2f}x" if math.isfinite(dscr) else "DSCR: n/a")
    print(f"Exit EV (year {result['inputs']['exit_year']}): {exit_['exit_ev']:,.0f}")
    print(f"MOIC: {exit_['moic']:.2f}x")
    irr = exit_["irr"]
    print(f"IRR: {irr * 100:.1f}%" if irr is not None else "IRR: n/a")


def _print_rollup(result):
    exit_ = result["exit"]
    bridge = result["value_bridge"]
    print("\nRoll-up Summary:")
    print(f"Companies Acquired: {len(result['acquisitions'])}")
    print(f"Total Capital Deployed: {result['total_capital_deployed']:,.0f}")
    print(f"Weighted Entry Multiple: {result['weighted_entry_multiple']:.2f}x")
    print(f"Exit EV: {exit_['exit_ev']:,.0f}")
    print(f"MOIC: {exit_['moic']:.2f}x")
    irr = exit_["irr"]
    print(f"IRR: {irr * 100:.1f}%" if irr is not None else "IRR: n/a")
    print("\nValue Bridge:")
    for key in ("entry_value", "organic_growth_value", "synergy_value", "multiple_expansion_value", "exit_value"):
        print(f"  {key.replace('_', ' ').title()}: {bridge[key]:,.0f}")


def main():
    parser = argparse.ArgumentParser(description="Run a deal valuation or roll-up model from a JSON file.")
    parser.add_argument("path", type=str, help="JSON file with valuation assumptions (or roll-up structure with --rollup)")
    parser.add_argument("--rollup", action="store_true", help="Treat the file as a roll-up (platform + bolt_ons)")
    parser.add_argument("--json", action="store_true", help="Print the full result payload as JSON")
    args = parser.parse_args()

    with open(args.path) as f:
        payload = json.load(f)

    service = DealService()
    try:
        if args.rollup:
            result = service.calculate_rollup(payload)
        else:
            result = service.calculate_valuation(assumptions=payload)
    except ValueError as e:
        print(f"Invalid inputs in {args.path}: {e}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(json.dumps(sanitize_for_json(result), indent=2))
    elif args.rollup:
        _print_rollup(result)
    else:
        _print_valuation(result)


if __name__ == "__main__":
    main()
