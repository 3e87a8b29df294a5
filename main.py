"""Vitalzone v1.0 — CLI entry point."""

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path

from vitalzone import SQLiteStore, StorageError, analyze, generate_report, predict_for_person, run_daily


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Personalized burnout and readiness engine")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--db", type=Path, help="SQLite store path (store mode)")
    sub = parser.add_subparsers(dest="command", required=True)

    score = sub.add_parser("score", help="Score one person-day")
    score.add_argument("payload", nargs="?", default="sample_payload.json",
                       help="JSON payload file (ignored with --db)")
    score.add_argument("--person", help="Person id (store mode)")
    score.add_argument("--org", help="Organization id (store mode)")
    score.add_argument("--date", type=date.fromisoformat, default=None, help="Day to score, YYYY-MM-DD")
    score.add_argument("--json", action="store_true", help="Print raw JSON instead of the report")

    predict = sub.add_parser("predict", help="Forecast the burnout trajectory (store mode)")
    predict.add_argument("--person", required=True)
    predict.add_argument("--org")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command == "predict":
        if args.db is None:
            print("predict requires --db", file=sys.stderr)
            return 2
        prediction = predict_for_person(SQLiteStore(args.db), args.person, organization_id=args.org)
        print(json.dumps(prediction.to_dict(), indent=2))
        return 0

    if args.db is not None:
        if not args.person:
            print("score --db requires --person", file=sys.stderr)
            return 2
        try:
            result, _ = run_daily(SQLiteStore(args.db), args.person, args.date or date.today(), args.org)
        except StorageError as exc:
            logging.getLogger("vitalzone").error("Run failed, retry later: %s", exc)
            return 1
        print(json.dumps(result.to_dict(), indent=2))
        return 0

    result = analyze(args.payload)
    print(json.dumps(result, indent=2) if args.json else generate_report(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
