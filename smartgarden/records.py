"""
Measurement Log
===============

Defines the measurement record line format and handles reading, appending
and checking the measurement log. One record per line:

    <s1>,<s2>,<s3>,<s4>,<temperature>,<pressure>,<timestamp>,<0|1>

Field order and delimiter are the compatibility contract for anything that
reads historical logs. The log is append-only at the record level but is
rewritten in full on every append, so only one writer may run at a time.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .errors import LogParseError, LogUnavailable
from .hal import FileLogStore, LogStore

logger = logging.getLogger(__name__)

FIELD_COUNT = 8
MOISTURE_CHANNELS = 4
MOISTURE_MAX = 1023  # 10-bit ADC code

Timestamp = Union[datetime, str]


def format_timestamp(timestamp: Timestamp) -> str:
    if isinstance(timestamp, datetime):
        return timestamp.isoformat()
    if "," in timestamp or "\n" in timestamp or "\r" in timestamp:
        raise ValueError(f"Timestamp text may not contain delimiters: {timestamp!r}")
    return timestamp


def parse_timestamp(text: str) -> Timestamp:
    """Parse an ISO-8601 timestamp.

    Older logs carry locale-formatted dates; those are kept as text rather
    than rejected so the rest of the record stays usable. Naive times are
    taken as UTC.
    """
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return text
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class MeasurementRecord:
    """One sample: four moisture codes, temperature, pressure, time, baseline flag."""

    moisture: Tuple[float, ...]
    temperature: float
    pressure: float
    timestamp: Timestamp
    is_baseline: bool = False

    def __post_init__(self):
        if len(self.moisture) != MOISTURE_CHANNELS:
            raise ValueError(
                f"Expected {MOISTURE_CHANNELS} moisture values, got {len(self.moisture)}"
            )
        object.__setattr__(self, "moisture", tuple(float(v) for v in self.moisture))

    @classmethod
    def now(cls, moisture: Sequence[float], temperature: float, pressure: float,
            is_baseline: bool = False) -> "MeasurementRecord":
        return cls(tuple(moisture), temperature, pressure,
                   datetime.now(timezone.utc), is_baseline)

    def to_line(self) -> str:
        fields = [str(v) for v in self.moisture]
        fields.append(str(float(self.temperature)))
        fields.append(str(float(self.pressure)))
        fields.append(format_timestamp(self.timestamp))
        fields.append("1" if self.is_baseline else "0")
        return ",".join(fields)

    @classmethod
    def from_line(cls, line: str, line_number: Optional[int] = None) -> "MeasurementRecord":
        """Parse one log line.

        Raises:
            LogParseError: if the line does not hold exactly 8 well-formed fields,
                a number is not finite or a moisture code is outside 0-1023
        """
        parts = line.strip().split(",")
        if len(parts) != FIELD_COUNT:
            raise LogParseError(
                f"expected {FIELD_COUNT} fields, got {len(parts)}", line, line_number
            )

        try:
            numbers = [float(p) for p in parts[:6]]
        except ValueError as e:
            raise LogParseError(f"non-numeric field: {e}", line, line_number)

        if not all(math.isfinite(v) for v in numbers):
            raise LogParseError("non-finite numeric field", line, line_number)
        for v in numbers[:4]:
            if not 0 <= v <= MOISTURE_MAX:
                raise LogParseError(
                    f"moisture {v} outside 0-{MOISTURE_MAX}", line, line_number
                )

        flag = parts[7].strip()
        if flag not in ("0", "1"):
            raise LogParseError(f"baseline flag must be 0 or 1, got {flag!r}", line, line_number)

        return cls(
            moisture=tuple(numbers[:4]),
            temperature=numbers[4],
            pressure=numbers[5],
            timestamp=parse_timestamp(parts[6].strip()),
            is_baseline=flag == "1",
        )


@dataclass
class ParsedLog:
    records: List[MeasurementRecord] = field(default_factory=list)
    errors: List[LogParseError] = field(default_factory=list)


def parse_log(text: str) -> ParsedLog:
    """Parse log text into records, collecting malformed lines instead of raising."""
    parsed = ParsedLog()
    if not text:
        return parsed

    for number, line in enumerate(text.replace("\r\n", "\n").split("\n"), start=1):
        if not line.strip():
            continue
        try:
            parsed.records.append(MeasurementRecord.from_line(line, number))
        except LogParseError as e:
            parsed.errors.append(e)
    return parsed


class MeasurementLog:
    """Reads and appends measurement records through a LogStore."""

    def __init__(self, store: LogStore):
        self.store = store

    def read_text(self) -> str:
        """Return the log text, or "" if the log has never been written."""
        try:
            return self.store.read_all()
        except LogUnavailable:
            return ""

    def append(self, record: MeasurementRecord) -> None:
        """Read the whole log, add one line and write it back.

        A missing log starts fresh; any other read failure propagates so the
        existing history is never overwritten.
        """
        line = record.to_line()
        existing = self.read_text()
        self.store.write_all(existing + "\n" + line if existing else line)

    def records(self) -> ParsedLog:
        parsed = parse_log(self.read_text())
        for error in parsed.errors:
            logger.warning("Skipping malformed log line: %s", error)
        return parsed

    def get_log_stats(self) -> Dict[str, Any]:
        """Summarize the log.

        Returns:
            Dictionary with record counts and the oldest/newest ISO timestamps
        """
        parsed = parse_log(self.read_text())
        stamps = sorted(r.timestamp for r in parsed.records if isinstance(r.timestamp, datetime))
        return {
            "total_records": len(parsed.records),
            "baseline_records": sum(1 for r in parsed.records if r.is_baseline),
            "malformed_lines": len(parsed.errors),
            "legacy_timestamps": sum(1 for r in parsed.records if not isinstance(r.timestamp, datetime)),
            "oldest_record": stamps[0].isoformat() if stamps else None,
            "newest_record": stamps[-1].isoformat() if stamps else None,
        }


def validate_log_integrity(file_path: Path) -> Dict[str, Any]:
    """Validate a measurement log file.

    Args:
        file_path: Path to the log file

    Returns:
        Validation results dictionary
    """
    results = {
        "valid": True,
        "errors": [],
        "warnings": [],
        "total_records": 0,
        "baseline_records": 0,
    }

    store = FileLogStore(file_path)
    try:
        text = store.read_all()
    except LogUnavailable:
        results["warnings"].append(f"{file_path} does not exist yet")
        return results
    except OSError as e:
        results["errors"].append(f"Failed to read log: {e}")
        results["valid"] = False
        return results

    parsed = parse_log(text)
    results["total_records"] = len(parsed.records)
    results["baseline_records"] = sum(1 for r in parsed.records if r.is_baseline)
    results["errors"].extend(str(e) for e in parsed.errors)

    stamps = []
    for i, record in enumerate(parsed.records):
        if isinstance(record.timestamp, datetime):
            stamps.append(record.timestamp)
        else:
            results["warnings"].append(f"Record {i}: non-ISO timestamp {record.timestamp!r}")
        if all(v == 0 for v in record.moisture):
            results["warnings"].append(f"Record {i}: all moisture channels read 0")

    if stamps != sorted(stamps):
        results["warnings"].append("Records are not in chronological order")

    results["valid"] = len(results["errors"]) == 0
    return results
