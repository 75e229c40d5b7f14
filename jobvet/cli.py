"""
Command-line interface for JobVet.

Usage:
    python -m jobvet "https://boards.greenhouse.io/acme/jobs/12345"
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from jobvet.config import Settings, get_settings
from jobvet.errors import JobVetError
from jobvet.orchestrator import AnalysisReport, JobAnalyzer
from jobvet.storage.sqlite import JobStore


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="jobvet",
        description="Vet a job posting: fetch it politely, extract hiring signals and score the risk",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Greenhouse posting (persisted to the local database)
  python -m jobvet "https://boards.greenhouse.io/acme/jobs/12345"

  # Any careers page, full JSON report
  python -m jobvet "https://careers.example.com/jobs/42" --json

  # Deterministic only, even if JOBVET_OPENAI_API_KEY is set
  python -m jobvet "https://careers.example.com/jobs/42" --no-ai -v
""",
    )

    parser.add_argument(
        "url",
        help="Job posting URL",
    )
    parser.add_argument(
        "--db",
        default=None,
        help="SQLite database path (default: JOBVET_DB_PATH or ./jobvet.db); 'none' disables storage",
    )
    parser.add_argument(
        "--no-ai",
        action="store_true",
        help="Skip the language-model enrichment and analysis calls",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full report as JSON",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Print progress messages",
    )

    return parser.parse_args(argv)


def print_report(report: AnalysisReport) -> None:
    ident = report.identity
    feats = report.features
    risk = report.result

    print(f"{ident.title or 'Job'} at {ident.company or report.record.tenant}")
    if ident.location:
        print(f"  Location: {ident.location}")
    print(f"  Source:   {report.record.provider} ({report.record.provenance.value})"
          + (" [cached]" if report.cached else ""))
    print()

    if feats.has_salary:
        lo = f"{feats.salary_min:,.2f}" if feats.salary_min is not None else "?"
        hi = f"{feats.salary_max:,.2f}" if feats.salary_max is not None else "?"
        period = f" per {feats.comp_period.value}" if feats.comp_period else ""
        print(f"  Salary:   {lo} - {hi} {feats.currency or ''}{period}".rstrip())
        print(f"            (from {feats.salary_source.value if feats.salary_source else 'unknown'})")
    else:
        print("  Salary:   not disclosed")
    if feats.time_type:
        print(f"  Type:     {feats.time_type}")
    if feats.department:
        print(f"  Dept:     {feats.department}")
    print()

    print("=" * 50)
    print(f"Score: {risk.score:.2f}  ({risk.tier.value} risk)")
    print("=" * 50)
    for name, value in risk.breakdown.items():
        flag = "  <-- red flag" if name in risk.red_flags else ""
        print(f"  {name:<20} {value:.2f}{flag}")

    for w in report.warnings:
        print(f"\nNote: {w}")


async def async_main(args: argparse.Namespace, settings: Optional[Settings] = None) -> int:
    """Async entry point."""
    settings = settings or get_settings()

    db_path = args.db if args.db is not None else settings.db_path
    store = None if db_path.lower() == "none" else JobStore(db_path)

    try:
        async with JobAnalyzer(settings=settings, store=store, use_llm=not args.no_ai) as analyzer:
            report = await analyzer.analyze(args.url)
    except JobVetError as e:
        print(f"Error: {e.user_message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 130
    finally:
        if store is not None:
            store.close()

    if args.json:
        print(json.dumps(report.to_dict(), indent=2, default=str))
    else:
        print_report(report)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(async_main(args))


if __name__ == "__main__":
    sys.exit(main())
