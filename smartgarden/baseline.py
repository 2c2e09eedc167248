"""
Baseline resolution: the reference moisture reading dryness is judged against.
"""

import logging
from typing import Optional, Sequence, Tuple

from .records import parse_log

logger = logging.getLogger(__name__)

FALLBACK_VALUE = 700.0
FALLBACK_BASELINE = (FALLBACK_VALUE,) * 4


def resolve_baseline(log_text: Optional[str],
                     fallback: Tuple[float, ...] = FALLBACK_BASELINE) -> Tuple[float, ...]:
    """Return the moisture values of the last record flagged as baseline.

    Later baseline records override earlier ones. Malformed lines are skipped.

    Args:
        log_text: Full log text, or None/"" when no log exists
        fallback: Values to use when no baseline record is found

    Returns:
        Tuple of four moisture values
    """
    if not log_text:
        logger.info("No measurement log yet, using fallback baseline %s", list(fallback))
        return tuple(fallback)

    parsed = parse_log(log_text)
    for error in parsed.errors:
        logger.warning("Skipping malformed log line: %s", error)

    baseline = None
    for record in parsed.records:
        if record.is_baseline:
            baseline = record.moisture

    if baseline is None:
        logger.info("No baseline record in log, using fallback baseline %s", list(fallback))
        return tuple(fallback)
    return baseline


def connected_average(values: Sequence[float]) -> Optional[float]:
    """Mean over channels reading above 0; None when every channel reads 0.

    A channel reading 0 is treated as disconnected, not as bone-dry soil.
    """
    connected = [v for v in values if v > 0]
    if not connected:
        return None
    return sum(connected) / len(connected)
