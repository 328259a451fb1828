#!/usr/bin/env python3
"""
export_readings.py — dump ledger readings straight from the ledger store.

  python scripts/export_readings.py              # every reading, oldest first
  python scripts/export_readings.py -n 10        # newest 10, newest first
  python scripts/export_readings.py --format csv > readings.csv

Reads go through the same retrieval service the API uses, so a failed read
aborts the export instead of writing a gapped file.
"""

import argparse
import csv
import json
import logging
import sys

from common.config import get_settings
from common.context import AppContext
from ledger.errors import DeploymentError, LedgerError

FIELDS = ["index", "timestamp", "co2", "no2", "pm25", "pm10"]


def _print_table(readings) -> None:
    if not readings:
        print("No readings found on the ledger.")
        return
    print(f"Total readings exported: {len(readings)}")
    for r in readings:
        print(f"Reading {r.index}:")
        print(f"  Timestamp: {r.timestamp.isoformat()}")
        print(f"  CO2: {r.co2}")
        print(f"  NO2: {r.no2}")
        print(f"  PM2.5: {r.pm25}")
        print(f"  PM10: {r.pm10}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Export AirLedger readings")
    parser.add_argument("-n", type=int, default=None,
                        help="only the newest N readings (default: all, oldest first)")
    parser.add_argument("--format", choices=["table", "json", "csv"], default="table")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING, stream=sys.stderr)

    try:
        ctx = AppContext.open(get_settings())
    except DeploymentError as e:
        print(f"Ledger identifier unresolved: {e}", file=sys.stderr)
        return 1
    except LedgerError as e:
        print(f"Ledger store unavailable: {e}", file=sys.stderr)
        return 1

    with ctx:
        try:
            if args.n is None:
                readings = ctx.retrieval.all_readings()
            else:
                readings = ctx.retrieval.last_n(args.n)
        except LedgerError as e:
            print(f"Error retrieving readings: {e}", file=sys.stderr)
            return 2

    if args.format == "json":
        json.dump([r.to_dict() for r in readings], sys.stdout, indent=2)
        print()
    elif args.format == "csv":
        writer = csv.DictWriter(sys.stdout, fieldnames=FIELDS)
        writer.writeheader()
        for r in readings:
            writer.writerow(r.to_dict())
    else:
        _print_table(readings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
