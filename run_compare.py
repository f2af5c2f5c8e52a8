#!/usr/bin/env python
"""Compare DB and ES project snapshots from the command line."""

import argparse
import json
import logging
import sys
from pathlib import Path

from esdbcompare import CompareError, ErrorResponse, load_config, run_compare


def main():
    parser = argparse.ArgumentParser(
        description="Compare project data from the DB and from ES",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_compare.py db.json es.json report.json
  python run_compare.py -b db.json -e es.json -r report.json -c config.yaml
        """
    )

    parser.add_argument(
        "db",
        nargs="?",
        help="Path to JSON snapshot of projects from the DB"
    )
    parser.add_argument(
        "es",
        nargs="?",
        help="Path to JSON snapshot of projects from ES"
    )
    parser.add_argument(
        "report",
        nargs="?",
        help="Path to output JSON report file"
    )

    # Also support named arguments
    parser.add_argument("-b", "--db", dest="db_named", help="Path to DB snapshot")
    parser.add_argument("-e", "--es", dest="es_named", help="Path to ES snapshot")
    parser.add_argument("-r", "--report", dest="report_named", help="Path to output report")
    parser.add_argument("-c", "--config", help="Path to YAML/JSON config file")
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress console output")

    args = parser.parse_args()

    # Use named args if positional not provided
    db_path = args.db or args.db_named
    es_path = args.es or args.es_named
    report_path = args.report or args.report_named

    # Validate required arguments
    if not db_path:
        parser.error("DB snapshot path is required")
    if not es_path:
        parser.error("ES snapshot path is required")
    if not report_path:
        parser.error("Report path is required")

    # Validate paths exist
    for path in (db_path, es_path, args.config):
        if path and not Path(path).exists():
            print(f"Error: File not found: {path}", file=sys.stderr)
            return 1

    try:
        config = load_config(args.config)
    except CompareError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    level = logging.WARNING if args.quiet else config.log_level.to_logging()
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    if not args.quiet:
        print(f"DB: {db_path}")
        print(f"ES: {es_path}")
        print(f"Report: {report_path}\n")

    result = run_compare(db_path, es_path, args.config)

    # Save report
    with open(report_path, 'w') as f:
        json.dump(result.to_dict(), indent=2, fp=f, default=str)

    if isinstance(result, ErrorResponse):
        print(f"Error: {result.error['message']}", file=sys.stderr)
        return 1

    if not args.quiet:
        print(f"\nProjects with inconsistencies: {result.meta.total_projects}")
        print(f"Inconsistent objects: {result.meta.total_objects}")
        print(f"Report saved to: {report_path}")

    # Return exit code
    return 0 if result.is_consistent else 1


if __name__ == "__main__":
    sys.exit(main())
