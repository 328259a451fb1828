#!/usr/bin/env python3
"""
poll_dashboard.py — terminal rendition of the AirLedger dashboard.

Polls /api/status and /api/last10 every DASHBOARD_POLL_SECONDS and prints:
  - N/A / Unknown when the service reports an empty ledger
  - an error row when a request itself fails
The two cases never render the same way.
"""

import argparse
import os
import sys
import time

import httpx
from dotenv import load_dotenv

load_dotenv()

REQUEST_TIMEOUT = 5  # seconds


def render_status(client: httpx.Client, api: str) -> str:
    try:
        r = client.get(f"{api}/api/status")
        r.raise_for_status()
        body = r.json()
    except httpx.HTTPStatusError as e:
        try:
            detail = e.response.json().get("error", "")
        except ValueError:
            detail = ""
        return f"  !! Error fetching status (HTTP {e.response.status_code}) {detail}"
    except (httpx.HTTPError, ValueError) as e:
        return f"  !! Error fetching status: {e}"

    reading = body.get("reading")
    if reading is None:
        return "  CO2: N/A  NO2: N/A  PM2.5: N/A  PM10: N/A  →  Unknown"
    label = {"HEALTHY": "Healthy", "UNHEALTHY": "Unhealthy"}.get(body.get("status"), "Unknown")
    return (
        f"  CO2: {reading['co2']}  NO2: {reading['no2']}  "
        f"PM2.5: {reading['pm25']}  PM10: {reading['pm10']}  →  {label}"
    )


def render_table(client: httpx.Client, api: str) -> str:
    try:
        r = client.get(f"{api}/api/last10")
        r.raise_for_status()
        rows = r.json()
    except (httpx.HTTPError, ValueError) as e:
        return f"  !! Error fetching data: {e}"

    if not rows:
        return "  No data available"
    lines = [f"  {'Timestamp':<22}{'CO2':>6}{'NO2':>6}{'PM2.5':>7}{'PM10':>6}"]
    for row in rows:
        lines.append(
            f"  {row['timestamp']:<22}{row['co2']:>6}{row['no2']:>6}"
            f"{row['pm25']:>7}{row['pm10']:>6}"
        )
    return "\n".join(lines)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Poll the AirLedger API")
    parser.add_argument("--api", default=os.getenv("AIRLEDGER_API", "http://localhost:8000"))
    parser.add_argument("--interval", type=float,
                        default=float(os.getenv("DASHBOARD_POLL_SECONDS", "5")))
    parser.add_argument("--once", action="store_true", help="poll a single time and exit")
    args = parser.parse_args(argv)

    with httpx.Client(timeout=REQUEST_TIMEOUT) as client:
        try:
            while True:
                print("── Air Quality ─────────────────────────────────────")
                print(render_status(client, args.api))
                print("── Last readings ───────────────────────────────────")
                print(render_table(client, args.api))
                print()
                if args.once:
                    return 0
                time.sleep(args.interval)
        except KeyboardInterrupt:
            return 0


if __name__ == "__main__":
    sys.exit(main())
