#!/usr/bin/env python3
"""
generate_dummy_log.py - Generate a dummy measurement log for testing
====================================================================

Writes Measurements.txt with a record every N minutes for the specified
number of days. Realistic logs dry out slowly and are re-baselined (flag 1)
whenever the moisture average falls to the dry ratio, as the controller would.

Usage:
  python3 generate_dummy_log.py [options]

Options:
  --days N         Number of days to generate (default: 7)
  --step-min N     Minutes between records (default: 100)
  --outfile FILE   Output file path (default: ../Measurements.txt)
  --zeros          Generate disconnected (all-zero) moisture values
  --realistic      Generate drying soil with watering events (default)

Examples:
  python3 generate_dummy_log.py --days 7
  python3 generate_dummy_log.py --days 1 --zeros --outfile zeros.txt
"""

import argparse
import math
import random
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from smartgarden.baseline import connected_average
from smartgarden.records import MeasurementRecord


def generate_realistic_record(timestamp, moisture, is_baseline=False):
    """Build a record with daily temperature swing and sensor noise.

    Args:
        timestamp (datetime): Record timestamp
        moisture (float): Underlying soil moisture code
        is_baseline (bool): Baseline flag

    Returns:
        MeasurementRecord
    """
    hour = timestamp.hour
    temperature = 24.0 + 8.0 * math.sin((hour - 9) * math.pi / 12) + random.gauss(0, 0.5)
    pressure = 101325.0 + random.gauss(0, 150)
    channels = tuple(
        float(max(1, min(1023, round(moisture + random.gauss(0, 8))))) for _ in range(4)
    )
    return MeasurementRecord(channels, round(temperature, 2), round(pressure, 2),
                             timestamp, is_baseline)


def generate_zero_record(timestamp):
    """Record with every moisture channel disconnected."""
    return MeasurementRecord((0.0, 0.0, 0.0, 0.0), 22.0, 101325.0, timestamp, False)


def generate_dummy_log(days, step_minutes, use_zeros=False, dry_ratio=0.10):
    """Generate records for the specified time period.

    Args:
        days (int): Number of days to generate
        step_minutes (int): Minutes between records
        use_zeros (bool): If True, all moisture channels read 0
        dry_ratio (float): Ratio at which a watering and re-baseline occurs

    Returns:
        list: MeasurementRecords in chronological order
    """
    records = []
    end_time = datetime.now(timezone.utc)
    current_time = end_time - timedelta(days=days)
    step_delta = timedelta(minutes=step_minutes)

    baseline = 700.0
    moisture = baseline
    while current_time <= end_time:
        if use_zeros:
            records.append(generate_zero_record(current_time))
        else:
            record = generate_realistic_record(current_time, moisture)
            records.append(record)
            current = connected_average(record.moisture) or 0.0
            if current / baseline <= dry_ratio:
                moisture = random.uniform(600, 750)
                baseline_record = generate_realistic_record(
                    current_time + timedelta(minutes=2), moisture, is_baseline=True
                )
                records.append(baseline_record)
                baseline = connected_average(baseline_record.moisture)
            else:
                moisture *= random.uniform(0.93, 0.98)
        current_time += step_delta

    return records


def main():
    parser = argparse.ArgumentParser(description="Generate a dummy measurement log")
    parser.add_argument("--days", type=int, default=7,
                        help="Number of days to generate (default: 7)")
    parser.add_argument("--step-min", type=int, default=100,
                        help="Minutes between records (default: 100)")
    parser.add_argument("--outfile", type=Path,
                        default=Path(__file__).parent.parent / "Measurements.txt",
                        help="Output file path")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--zeros", action="store_true", help="Generate all-zero moisture values")
    group.add_argument("--realistic", action="store_true", help="Generate drying soil (default)")
    args = parser.parse_args()

    if args.days <= 0 or args.step_min <= 0:
        parser.error("--days and --step-min must be positive")

    records = generate_dummy_log(args.days, args.step_min, use_zeros=args.zeros)
    args.outfile.parent.mkdir(parents=True, exist_ok=True)
    with open(args.outfile, "w", encoding="utf-8") as f:
        f.write("\n".join(r.to_line() for r in records))

    baselines = sum(1 for r in records if r.is_baseline)
    print(f"Generated {len(records)} records ({baselines} baselines)")
    print(f"Saved to: {args.outfile}")


if __name__ == "__main__":
    main()
