from __future__ import annotations

import argparse
import json
from typing import List, Optional

import pandas as pd

from divitrack.core.config import SETTINGS
from divitrack.services.portfolio_service import PortfolioService
from divitrack.storage.state_store import StateCorrupted
from divitrack.tools.quant_tools import projection_frame
from divitrack.utils.logging import setup_logging


def _service(args: argparse.Namespace) -> PortfolioService:
    return PortfolioService.open(args.data_path)


def cmd_add(args: argparse.Namespace) -> int:
    svc = _service(args)
    res = svc.add_holding(args.ticker, args.quantity, args.date)
    if not res.ok:
        print(f"ERROR: {res.error.message}")
        return 2

    h = res.holding
    info = svc.state.metadata.lookup(h.ticker)
    name = f" ({info.name})" if info else ""
    print(f"Added {h.quantity:g} {h.ticker}{name} as {h.id}")
    return 0


def cmd_remove(args: argparse.Namespace) -> int:
    svc = _service(args)
    holding = svc.state.holdings.get(args.id)
    if holding is not None and svc.remove_holding(args.id):
        print(f"Removed {args.id} ({holding.quantity:g} {holding.ticker})")
    else:
        print(f"No holding with id {args.id}")
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    svc = _service(args)
    holdings = svc.state.holdings.holdings
    if not holdings:
        print("No holdings added yet.")
        return 0

    rows = []
    for h in holdings:
        info = svc.state.metadata.lookup(h.ticker)
        rows.append(
            {
                "ID": h.id,
                "Ticker": h.ticker,
                "Name": info.name if info else "",
                "Shares": h.quantity,
                "Price": info.current_price if info else None,
                "Purchased": h.purchase_date.isoformat(),
            }
        )
    print(pd.DataFrame(rows).to_string(index=False, na_rep="..."))
    return 0


def cmd_summary(args: argparse.Namespace) -> int:
    summary = _service(args).summary()
    if args.json:
        print(summary.model_dump_json(indent=2))
        return 0

    print(f"Portfolio value:  ${summary.total_value:,.2f}")
    print(f"Annual income:    ${summary.annual_income:,.2f}")
    print(f"Average yield:    {summary.average_yield_pct:.2f}%")
    print(f"Yield on cost:    {summary.yield_on_cost_pct:.2f}%")
    print(f"Total shares:     {summary.total_shares:,.2f}")
    return 0


def cmd_project(args: argparse.Namespace) -> int:
    points = _service(args).projection()
    if args.json:
        print(json.dumps([p.model_dump() for p in points], indent=2))
        return 0

    print(projection_frame(points).to_string(index=False))
    print("\nAssumes all dividends are reinvested (DRIP) at the base case price.")
    return 0


def cmd_sources(args: argparse.Namespace) -> int:
    snapshot = _service(args).state.metadata.snapshot()
    cited = {t: m for t, m in sorted(snapshot.items()) if m.sources}
    if not cited:
        print("Add a stock to see information sources.")
        return 0

    for ticker, info in cited.items():
        print(f"{ticker} citations (updated {info.last_updated.isoformat(timespec='seconds')}):")
        for s in info.sources:
            print(f"  - {s.title}: {s.uri}")
    return 0


def cmd_refresh(args: argparse.Namespace) -> int:
    report = _service(args).refresh_metadata(force=args.force, max_age_seconds=args.max_age)
    for t in report.refreshed:
        print(f"Refreshed {t}")
    for t in report.skipped:
        print(f"Up to date {t}")
    for t, err in report.errors.items():
        print(f"ERROR: {t}: {err.message}")
    return 2 if report.errors else 0


def cmd_analyze(args: argparse.Namespace) -> int:
    resp = _service(args).analyze()
    print(resp.answer_md)
    for w in resp.warnings:
        print(f"WARN: {w}")
    return 2 if resp.error else 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="divitrack", description="Dividend portfolio tracker")
    p.add_argument("--data-path", default=None, help=f"SQLite file (default: {SETTINGS.data_path})")
    p.add_argument("--log-level", default=None)
    sub = p.add_subparsers(dest="cmd", required=True)

    a = sub.add_parser("add", help="Add a holding (fetches dividend data for new tickers)")
    a.add_argument("ticker")
    a.add_argument("quantity", type=float)
    a.add_argument("--date", default=None, help="Purchase date YYYY-MM-DD (default: today)")
    a.set_defaults(func=cmd_add)

    r = sub.add_parser("remove", help="Remove a holding by id")
    r.add_argument("id")
    r.set_defaults(func=cmd_remove)

    sub.add_parser("list", help="List holdings").set_defaults(func=cmd_list)

    s = sub.add_parser("summary", help="Portfolio totals")
    s.add_argument("--json", action="store_true")
    s.set_defaults(func=cmd_summary)

    pr = sub.add_parser("project", help="20-year DRIP projection (bear/base/bull)")
    pr.add_argument("--json", action="store_true")
    pr.set_defaults(func=cmd_project)

    sub.add_parser("sources", help="Citations behind the fetched data").set_defaults(func=cmd_sources)

    rf = sub.add_parser("refresh", help="Re-fetch stale dividend data")
    rf.add_argument("--force", action="store_true")
    rf.add_argument("--max-age", type=int, default=None, help="Seconds before data counts as stale")
    rf.set_defaults(func=cmd_refresh)

    sub.add_parser("analyze", help="AI review of the portfolio").set_defaults(func=cmd_analyze)
    return p


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level or SETTINGS.log_level)
    try:
        rc = args.func(args)
    except StateCorrupted as e:
        print(f"ERROR: {e}")
        rc = 2
    raise SystemExit(rc)


if __name__ == "__main__":
    main()
