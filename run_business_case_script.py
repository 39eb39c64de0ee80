import argparse
import json
import sys

from bizcase_engine import InputError, format_evidence_value, format_percent
from bizcase_service.services.business_case import BusinessCaseService


def parse_update(raw: str) -> dict:
    """``PATH=VALUE``; VALUE is parsed as JSON when possible, else kept as a string."""
    path, sep, value = raw.partition("=")
    if not sep or not path:
        raise argparse.ArgumentTypeError(f"expected PATH=VALUE, got '{raw}'")
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        parsed = value
    return {"path": path, "value": parsed}


def print_tree(node: dict, currency: str, depth: int = 0) -> None:
    value = format_evidence_value(node.get("value"), node.get("unit"), currency)
    driver = " [driver]" if node.get("is_driver") else ""
    formula = f"  = {node['formula']}" if node.get("formula") else ""
    print(f"{'  ' * depth}- {node['label']}: {value}{driver}{formula}")
    for child in node.get("children", []):
        print_tree(child, currency, depth + 1)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run a business case JSON file through the projection engine.")
    parser.add_argument("case_file", type=str, help="Path to the business case JSON document")
    parser.add_argument("--metric", "-m", type=str, help="Print the evidence trail for this metric (e.g. 'npv')", default=None)
    parser.add_argument("--month", type=int, help="1-based month for the evidence trail", default=None)
    parser.add_argument("--set", dest="updates", type=parse_update, action="append", default=[],
                        help="Assumption update PATH=VALUE (repeatable)")
    args = parser.parse_args(argv)

    try:
        with open(args.case_file, "r", encoding="utf-8") as fh:
            business_case = json.load(fh)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error reading business case file: {e}")
        return 1

    service = BusinessCaseService()
    meta = business_case.get("meta") if isinstance(business_case, dict) else None
    title = (meta.get("title") if isinstance(meta, dict) else None) or args.case_file
    print(f"Running business case '{title}'...")
    try:
        result = service.calculate_metrics(business_case, args.updates, include_monthly=False)
        display = result["display"]
        irr = result["irr"]
        irr_text = irr["message"] if irr["error"] else f"{format_percent(irr['rate'])} monthly ({format_percent(irr['annualized'])} annualized)"

        print("\nBusiness Case Summary:")
        print(f"Total Revenue: {display['total_revenue']}")
        print(f"NPV: {display['npv']}")
        print(f"IRR: {irr_text}")
        if result["payback_reached"]:
            print(f"Payback Period: {result['payback_period']} months")
        else:
            print("Payback Period: not reached")
        print(f"Break-even Month: {result['break_even_month']}")
        print(f"Investment Required: {display['total_investment_required']}")

        if args.metric:
            trail = service.evidence_trail(business_case, args.metric, month=args.month, updates=args.updates)
            print(f"\nEvidence Trail ({args.metric}):")
            print_tree(trail["root"], result["currency"])
    except (InputError, ValueError) as e:
        print(f"Error evaluating business case: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
