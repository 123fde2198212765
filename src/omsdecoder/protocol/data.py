"""Field interpreters for the bit-packed data types used by OMS water meters.

Functions:
    - compose_le: Little-endian composition of up to 4 data bytes
    - decode_datetime32: Type F, date and time CP32
    - decode_date16: Type G, date CP16
    - decode_volume32: Signed 32-bit volume in litres, scaled to m³
    - decode_status8: Error flags byte

Calendar ranges are not validated. Out of range components are passed through
as encoded so that the presentation layer can show what the meter sent.

Reference: EN 13757-3:2018
    - Annex A, Table A.5: Type F (date and time CP32)
    - Annex A, Table A.6: Type G (date CP16)
"""

from __future__ import annotations

from .value import MeterDate, MeterDateTime

# =============================================================================
# Constants
# =============================================================================

DATE_NOT_SET = 0xFFFF  # Type G invalid marker
VOLUME_NOT_AVAILABLE = 0xFFFFFFFF  # Raw volume marker for "no value"

DATETIME_YEAR_BASE = 2000
DATETIME_YEAR_OFFSET = 3  # Subtracted from the 7 bit year field of CP32 values

VOLUME_SCALE = 1000.0  # Litres per m³

STATUS_OK = 0x00


def compose_le(data: bytes) -> int:
    """Compose the first (at most) 4 bytes of data into an unsigned integer, LSB first."""
    return int.from_bytes(data[:4], byteorder="little")


def decode_datetime32(raw: int) -> MeterDateTime:
    """Decode a 32-bit CP32 date and time.

    Bit layout (little-endian value):
        minute = bits 0-5
        hour   = bits 8-12
        day    = bits 16-20
        month  = bits 21-24
        year   = 2000 + bits 25-31 - 3

    Args:
        raw: Raw 32-bit value

    Returns:
        The decoded components
    """
    minute = raw & 0b00111111
    hour = (raw >> 8) & 0b00011111
    day = (raw >> 16) & 0b00011111
    month = (raw >> 21) & 0b00001111
    year = DATETIME_YEAR_BASE + (((raw >> 25) & 0b01111111) - DATETIME_YEAR_OFFSET)

    return MeterDateTime(year=year, month=month, day=day, hour=hour, minute=minute)


def decode_date16(raw: int) -> MeterDate | None:
    """Decode a 16-bit CP16 date.

    Bit layout: day = bits 0-4, month = bits 5-8, year = 2000 + bits 9-15.

    Args:
        raw: Raw 16-bit value

    Returns:
        The decoded components, or None if the date is not set (0xFFFF)
    """
    if raw == DATE_NOT_SET:
        return None

    day = raw & 0b00011111
    month = (raw >> 5) & 0b00001111
    year = DATETIME_YEAR_BASE + ((raw >> 9) & 0b01111111)

    return MeterDate(year=year, month=month, day=day)


def decode_volume32(raw: int) -> float:
    """Decode a 32-bit volume in litres to cubic meters.

    The raw value is interpreted as a signed two's complement integer, so the
    "not available" marker 0xFFFFFFFF yields -0.001.
    """
    signed = raw - (1 << 32) if raw & 0x80000000 else raw
    return signed / VOLUME_SCALE


def is_volume_available(raw: int) -> bool:
    return raw != VOLUME_NOT_AVAILABLE


def decode_status8(raw: int) -> int:
    """Decode the error flags byte. 0 means OK, any other value is an error."""
    return raw & 0xFF
