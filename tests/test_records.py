"""
Test records.py - Measurement log format, parsing and appends
"""

import pytest
import shutil
import sys
import tempfile
from datetime import datetime, timezone
from pathlib import Path

# Add repo root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from smartgarden.errors import LogParseError, LogUnavailable
from smartgarden.hal import FileLogStore, MemoryLogStore
from smartgarden.records import (
    MeasurementLog,
    MeasurementRecord,
    parse_log,
    validate_log_integrity,
)

NOON = datetime(2026, 10, 17, 12, 0, 0, tzinfo=timezone.utc)


def make_record(moisture=(512, 498, 505, 520), is_baseline=False, timestamp=NOON):
    return MeasurementRecord(tuple(moisture), 20.5, 101325.0, timestamp, is_baseline)


class TestMeasurementRecord:
    """Test record serialization."""

    def test_to_line_exact(self):
        """Field order: four moisture, temperature, pressure, timestamp, flag."""
        record = MeasurementRecord((512, 512, 512, 512), 20.0, 101325.0, NOON, True)
        assert record.to_line() == (
            "512.0,512.0,512.0,512.0,20.0,101325.0,2026-10-17T12:00:00+00:00,1"
        )

    def test_flag_zero(self):
        assert make_record().to_line().endswith(",0")

    def test_round_trip(self):
        record = MeasurementRecord((50.0, 60.0, 55.5, 58.25), 35.125, 101300.5, NOON, False)
        parsed = MeasurementRecord.from_line(record.to_line())
        assert parsed == record

    def test_parse_integer_fields(self):
        """Older logs wrote raw integer ADC codes."""
        record = MeasurementRecord.from_line("512,512,512,512,20.0,101325.0,T0,1")
        assert record.moisture == (512.0, 512.0, 512.0, 512.0)
        assert record.is_baseline is True

    def test_legacy_timestamp_kept_as_text(self):
        record = MeasurementRecord.from_line("1,2,3,4,20.0,101325.0,10/17/2026 3:04:05 PM,0")
        assert record.timestamp == "10/17/2026 3:04:05 PM"

    def test_naive_timestamp_taken_as_utc(self):
        record = MeasurementRecord.from_line("1,2,3,4,20.0,101325.0,2026-10-17T12:00:00,0")
        assert record.timestamp == NOON

    def test_wrong_field_count(self):
        with pytest.raises(LogParseError):
            MeasurementRecord.from_line("1,2,3,4,20.0,101325.0,1")

    def test_non_numeric_field(self):
        with pytest.raises(LogParseError):
            MeasurementRecord.from_line("1,x,3,4,20.0,101325.0,T0,0")

    def test_bad_flag(self):
        with pytest.raises(LogParseError):
            MeasurementRecord.from_line("1,2,3,4,20.0,101325.0,T0,yes")

    @pytest.mark.parametrize("line", [
        "inf,512,512,512,20.0,101325.0,T0,1",
        "512,nan,512,512,20.0,101325.0,T0,1",
        "512,512,1e400,512,20.0,101325.0,T0,1",
        "512,512,512,512,-inf,101325.0,T0,0",
        "512,512,512,512,20.0,nan,T0,0",
    ])
    def test_non_finite_field_rejected(self, line):
        with pytest.raises(LogParseError):
            MeasurementRecord.from_line(line)

    @pytest.mark.parametrize("code", ["-1", "1024", "5000"])
    def test_moisture_outside_adc_range_rejected(self, code):
        with pytest.raises(LogParseError, match="outside 0-1023"):
            MeasurementRecord.from_line(f"{code},512,512,512,20.0,101325.0,T0,1")

    def test_adc_range_limits_accepted(self):
        record = MeasurementRecord.from_line("0,1023,0,1023,20.0,101325.0,T0,0")
        assert record.moisture == (0.0, 1023.0, 0.0, 1023.0)

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            MeasurementRecord.from_line("garbage")

    def test_requires_four_channels(self):
        with pytest.raises(ValueError):
            MeasurementRecord((1, 2, 3), 20.0, 101325.0, NOON)

    def test_timestamp_text_with_comma_rejected(self):
        with pytest.raises(ValueError):
            MeasurementRecord((1, 2, 3, 4), 20.0, 101325.0, "Oct 17, 2026").to_line()


class TestParseLog:
    """Test whole-log parsing."""

    def test_empty(self):
        parsed = parse_log("")
        assert parsed.records == []
        assert parsed.errors == []

    def test_crlf_and_blank_lines(self):
        text = "\r\n1,2,3,4,20.0,101325.0,T0,0\r\n\r\n5,6,7,8,21.0,101300.0,T1,1\n"
        parsed = parse_log(text)
        assert [r.moisture[0] for r in parsed.records] == [1.0, 5.0]

    def test_malformed_line_skipped(self):
        """One bad line does not stop the rest of the log from parsing."""
        text = "1,2,3,4,20.0,101325.0,T0,0\nnot,a,record\n5,6,7,8,21.0,101300.0,T1,1"
        parsed = parse_log(text)
        assert len(parsed.records) == 2
        assert len(parsed.errors) == 1
        assert parsed.errors[0].line_number == 2


class TestMeasurementLog:
    """Test read-modify-write appends."""

    def test_first_append_has_no_leading_newline(self):
        store = MemoryLogStore()
        MeasurementLog(store).append(make_record())
        assert not store.text.startswith("\n")
        assert store.text == make_record().to_line()

    def test_append_adds_line(self):
        store = MemoryLogStore()
        log = MeasurementLog(store)
        log.append(make_record())
        log.append(make_record(is_baseline=True))
        lines = store.text.split("\n")
        assert len(lines) == 2
        assert lines[1].endswith(",1")

    def test_read_text_missing(self):
        assert MeasurementLog(MemoryLogStore()).read_text() == ""

    def test_records(self):
        store = MemoryLogStore("1,2,3,4,20.0,101325.0,T0,0\nbroken")
        parsed = MeasurementLog(store).records()
        assert len(parsed.records) == 1
        assert len(parsed.errors) == 1

    def test_get_log_stats(self):
        store = MemoryLogStore()
        log = MeasurementLog(store)
        log.append(make_record(timestamp=datetime(2026, 10, 16, tzinfo=timezone.utc)))
        log.append(make_record(is_baseline=True))
        store.text += "\nbroken"
        stats = log.get_log_stats()
        assert stats["total_records"] == 2
        assert stats["baseline_records"] == 1
        assert stats["malformed_lines"] == 1
        assert stats["oldest_record"] == "2026-10-16T00:00:00+00:00"
        assert stats["newest_record"] == NOON.isoformat()

    def test_get_log_stats_empty(self):
        stats = MeasurementLog(MemoryLogStore()).get_log_stats()
        assert stats["total_records"] == 0
        assert stats["oldest_record"] is None


class TestFileLog:
    """Test the file-backed store and integrity checks."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.log_file = Path(self.temp_dir) / "Measurements.txt"

    def teardown_method(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_missing_file_unavailable(self):
        with pytest.raises(LogUnavailable):
            FileLogStore(self.log_file).read_all()

    def test_append_persists(self):
        log = MeasurementLog(FileLogStore(self.log_file))
        log.append(make_record())
        log.append(make_record(is_baseline=True))
        parsed = parse_log(self.log_file.read_text())
        assert [r.is_baseline for r in parsed.records] == [False, True]

    def test_no_temp_files_left(self):
        MeasurementLog(FileLogStore(self.log_file)).append(make_record())
        assert [p.name for p in Path(self.temp_dir).iterdir()] == ["Measurements.txt"]

    def test_validate_missing(self):
        results = validate_log_integrity(self.log_file)
        assert results["valid"] is True
        assert results["warnings"]

    def test_validate_reports_errors_and_warnings(self):
        self.log_file.write_text(
            "1,2,3,4,20.0,101325.0,2026-10-17T12:00:00+00:00,0\n"
            "bad line\n"
            "0,0,0,0,20.0,101325.0,2026-10-16T12:00:00+00:00,0\n"
        )
        results = validate_log_integrity(self.log_file)
        assert results["valid"] is False
        assert results["total_records"] == 2
        assert len(results["errors"]) == 1
        assert any("chronological" in w for w in results["warnings"])
        assert any("read 0" in w for w in results["warnings"])

    def test_undecodable_bytes_replaced(self):
        """Invalid UTF-8 only spoils its own line."""
        self.log_file.write_bytes(
            b"1,2,3,4,20.0,101325.0,T0,0\n\xff\xfe garbage\n5,6,7,8,21.0,101300.0,T1,1"
        )
        parsed = MeasurementLog(FileLogStore(self.log_file)).records()
        assert [r.moisture[0] for r in parsed.records] == [1.0, 5.0]
        assert len(parsed.errors) == 1
        assert parsed.errors[0].line_number == 2

    def test_validate_undecodable_line(self):
        self.log_file.write_bytes(b"1,2,3,4,20.0,101325.0,T0,0\n\xff\xfe\n")
        results = validate_log_integrity(self.log_file)
        assert results["valid"] is False
        assert results["total_records"] == 1
        assert len(results["errors"]) == 1


if __name__ == "__main__":
    pytest.main([__file__])
