"""
Test baseline.py - Baseline resolution and connected-channel averages
"""

import pytest
import sys
from pathlib import Path

# Add repo root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from smartgarden.baseline import resolve_baseline, connected_average, FALLBACK_BASELINE


class TestResolveBaseline:
    """Test last-write-wins baseline resolution."""

    def test_empty_log_uses_fallback(self):
        assert resolve_baseline("") == (700.0, 700.0, 700.0, 700.0)
        assert resolve_baseline(None) == FALLBACK_BASELINE

    def test_no_baseline_record_uses_fallback(self):
        text = "1,2,3,4,20.0,101325.0,T0,0\n5,6,7,8,20.0,101325.0,T1,0"
        assert resolve_baseline(text) == FALLBACK_BASELINE

    def test_later_baseline_wins(self):
        """Two baseline records: the later one is the reference."""
        text = "\n".join([
            "100,100,100,100,20.0,101325.0,T0,1",
            "50,50,50,50,20.0,101325.0,T1,0",
            "600,610,620,630,20.0,101325.0,T2,1",
            "40,40,40,40,20.0,101325.0,T3,0",
        ])
        assert resolve_baseline(text) == (600.0, 610.0, 620.0, 630.0)

    def test_flag_from_parsed_field_not_trailing_text(self):
        """A malformed line ending in '1' is not mistaken for a baseline."""
        text = "\n".join([
            "512,512,512,512,20.0,101325.0,T0,1",
            "300,300,300,300,20.0,101325.0,1",
        ])
        assert resolve_baseline(text) == (512.0, 512.0, 512.0, 512.0)

    def test_timestamp_ending_in_one_not_a_baseline(self):
        text = "\n".join([
            "512,512,512,512,20.0,101325.0,T0,1",
            "300,300,300,300,20.0,101325.0,2026-10-17T12:00:01,0",
        ])
        assert resolve_baseline(text) == (512.0, 512.0, 512.0, 512.0)

    def test_malformed_lines_do_not_crash(self):
        text = "garbage\n\n,,,\n600,600,600,600,20.0,101325.0,T0,1\nmore garbage"
        assert resolve_baseline(text) == (600.0, 600.0, 600.0, 600.0)

    def test_non_finite_baseline_skipped(self):
        """An 'inf' baseline is malformed; the previous baseline still holds."""
        text = "\n".join([
            "512,512,512,512,20.0,101325.0,T0,1",
            "inf,512,512,512,20.0,101325.0,T1,1",
            "nan,nan,nan,nan,20.0,101325.0,T2,1",
        ])
        assert resolve_baseline(text) == (512.0, 512.0, 512.0, 512.0)

    def test_out_of_range_baseline_skipped(self):
        assert resolve_baseline("2000,2000,2000,2000,20.0,101325.0,T0,1") == FALLBACK_BASELINE

    def test_custom_fallback(self):
        assert resolve_baseline("", (1.0, 2.0, 3.0, 4.0)) == (1.0, 2.0, 3.0, 4.0)


class TestConnectedAverage:
    """Test averaging that skips disconnected (zero) channels."""

    def test_all_connected(self):
        assert connected_average([50, 60, 55, 58]) == pytest.approx(55.75)

    def test_zero_channels_excluded(self):
        """Zeros are disconnected sensors, not dry soil."""
        assert connected_average([0, 60, 0, 40]) == pytest.approx(50.0)

    def test_all_zero_is_none(self):
        assert connected_average([0, 0, 0, 0]) is None

    def test_single_channel(self):
        assert connected_average([0, 0, 0, 700]) == 700.0


if __name__ == "__main__":
    pytest.main([__file__])
