"""Decoded values and measurement variants produced by the record decoder.

Classes:
    - ValueUnit: Units of the values reported
    - MeterDateTime: Components of a type F (CP32) date and time
    - MeterDate: Components of a type G (CP16) date
    - Measurement: Base class of all decoded records
    - VolumeMeasurement, DateTimeMeasurement, DateMeasurement,
      StatusMeasurement, UnknownMeasurement: The measurement variants

Date and time components are reported exactly as encoded. No calendar
validation takes place, so they are not converted to datetime objects eagerly.

Reference: EN 13757-3:2018, Annex A
"""

from __future__ import annotations

from abc import ABC
from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum


class ValueUnit(StrEnum):
    """Units of the measurements reported by the decoder."""

    M3 = "m3"  # Cubic meter


@dataclass(frozen=True, kw_only=True)
class MeterDateTime:
    """Date and time components from a CP32 value.

    Attributes:
        year: Full year (2000 + encoded year - 3)
        month: Month as encoded (not validated)
        day: Day as encoded (not validated)
        hour: Hour as encoded (not validated)
        minute: Minute as encoded (not validated)
    """

    year: int
    month: int
    day: int
    hour: int
    minute: int

    def to_datetime(self) -> datetime:
        """Convert to a naive Python datetime.

        Raises:
            ValueError: If the components do not form a valid calendar date/time
        """
        return datetime(self.year, self.month, self.day, self.hour, self.minute)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d} {self.hour:02d}:{self.minute:02d}"


@dataclass(frozen=True, kw_only=True)
class MeterDate:
    """Date components from a CP16 value."""

    year: int
    month: int
    day: int

    def to_date(self) -> date:
        """Convert to a Python date.

        Raises:
            ValueError: If the components do not form a valid calendar date
        """
        return date(self.year, self.month, self.day)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"


# =============================================================================
# Measurements
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class Measurement(ABC):
    """Base class for one decoded data record.

    Attributes:
        offset: Position of the record's DIF in the plaintext
    """

    offset: int = 0


@dataclass(frozen=True, kw_only=True)
class VolumeMeasurement(Measurement):
    """Volume reading in cubic meters.

    Attributes:
        raw: Raw 32-bit value as received
        value: Raw value as signed integer divided by 1000
        storage_number: 0 for the current value, > 0 for history entries
        is_backflow: True for a backward flow volume
        is_available: False when the meter sent the 0xFFFFFFFF marker
    """

    raw: int
    value: float
    storage_number: int = 0
    is_backflow: bool = False
    is_available: bool = True

    unit: ValueUnit = ValueUnit.M3

    @property
    def is_history(self) -> bool:
        return self.storage_number > 0


@dataclass(frozen=True, kw_only=True)
class DateTimeMeasurement(Measurement):
    """Meter date and time (CP32)."""

    raw: int
    value: MeterDateTime


@dataclass(frozen=True, kw_only=True)
class DateMeasurement(Measurement):
    """Date (CP16), value is None when the date is not set (0xFFFF)."""

    raw: int
    value: MeterDate | None
    storage_number: int = 0

    @property
    def is_set(self) -> bool:
        return self.value is not None


@dataclass(frozen=True, kw_only=True)
class StatusMeasurement(Measurement):
    """Meter status byte, 0 means OK and any other value an error."""

    code: int

    @property
    def is_ok(self) -> bool:
        return self.code == 0


@dataclass(frozen=True, kw_only=True)
class UnknownMeasurement(Measurement):
    """Record not interpreted by the decoder, raw bytes are kept for diagnostics."""

    dif: int
    vif: int
    data: bytes = b""
