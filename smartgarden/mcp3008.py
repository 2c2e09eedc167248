"""
MCP3008 10-bit ADC over SPI
===========================

The command is padded so the start bit sits alone in the first byte and the
10 result bits line up on the byte boundary of the reply:

    Write 0000 000S GDDD xxxx xxxx xxxx
    Read  ???? ???? ???? ?N98 7654 3210

    S = start bit, G = single-ended/differential, D = channel,
    N = null bit, 9-0 = sample bits
"""

import logging
from typing import List, Optional, Sequence

from .errors import TransportError
from .hal import SpiTransport

logger = logging.getLogger(__name__)

START_BYTE = 0x01
SINGLE_ENDED = 0x08
FRAME_LENGTH = 3

SAMPLE_MIN = 0
SAMPLE_MAX = 1023


def build_command(channel: int) -> bytes:
    """Build the 3-byte single-ended read command for `channel` (0-7)."""
    if channel not in range(8):
        raise ValueError(f"Invalid channel {channel}, must be 0-7")
    return bytes([START_BYTE, (channel | SINGLE_ENDED) << 4, 0x00])


def decode_response(frame: bytes) -> int:
    """Extract the 10-bit sample from a 3-byte reply frame."""
    if len(frame) != FRAME_LENGTH:
        raise ValueError(f"MCP3008 frames are {FRAME_LENGTH} bytes, got {len(frame)}")
    return frame[2] + ((frame[1] & 0x03) << 8)


def validate_sample(sample: int) -> int:
    """Post-condition on a decoded sample; out of range means a framing fault."""
    if not SAMPLE_MIN <= sample <= SAMPLE_MAX:
        raise TransportError(f"ADC sample {sample} outside {SAMPLE_MIN}-{SAMPLE_MAX}")
    return sample


class Mcp3008:
    """Reads single-ended channels, yielding 0 when the transport is missing or fails."""

    def __init__(self, transport: Optional[SpiTransport]):
        self.transport = transport

    @property
    def available(self) -> bool:
        return self.transport is not None

    def read_channel(self, channel: int) -> int:
        command = build_command(channel)
        if self.transport is None:
            return 0
        try:
            return validate_sample(decode_response(self.transport.transfer_full_duplex(command)))
        except (TransportError, ValueError) as e:
            logger.warning("ADC channel %d read failed, using 0: %s", channel, e)
            return 0

    def read_channels(self, channels: Sequence[int]) -> List[int]:
        return [self.read_channel(ch) for ch in channels]
