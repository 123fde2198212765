"""Data record parsing for decrypted OMS application payloads.

This module implements the record layer of EN 13757-3: a decrypted payload is
a sequence of data records, each made of a DIB (DIF + DIFEs), a VIB
(VIF + VIFEs) and a data field whose length follows from the DIF.

Classes:
    - DataRecord: One parsed record (DIB, VIB and raw data bytes)
    - IncompleteRecord: Description of a record cut off by the end of the buffer
    - RecordDecoder: Forward-only iterator turning a plaintext into Measurements

Functions:
    - interpret_record: Classify a DataRecord into a Measurement variant

Decoding stops at the first idle filler (0x2F) found at a record boundary, at
the end of the buffer (also when it ends inside a record header), or at a
record whose declared data length does not fit into the remaining bytes. In
the last case the records decoded so far stay valid and the decoder exposes an
IncompleteRecord.

Reference: EN 13757-3:2018, section 6 (Variable data structure)
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass

from ..exceptions import OutOfBoundsError
from .common import IDLE_FILLER, VERIFICATION_MARKER, ByteCursor
from .data import (
    compose_le,
    decode_date16,
    decode_datetime32,
    decode_status8,
    decode_volume32,
    is_volume_available,
)
from .dif import DIB, resolve_data_length
from .value import (
    DateMeasurement,
    DateTimeMeasurement,
    Measurement,
    StatusMeasurement,
    UnknownMeasurement,
    VolumeMeasurement,
)
from .vif import VIB

logger = logging.getLogger(__name__)


class _DataOverrunError(OutOfBoundsError):
    """Declared data length exceeds the remaining buffer."""

    def __init__(self, offset: int, declared_length: int, available: int) -> None:
        super().__init__(
            f"Record at offset {offset} declares {declared_length} data bytes, only {available} remain"
        )
        self.declared_length = declared_length
        self.available = available


@dataclass(frozen=True, kw_only=True)
class DataRecord:
    """One data record as read from the plaintext.

    Attributes:
        offset: Position of the DIF in the plaintext
        dib: DIF/DIFE chain
        vib: VIF/VIFE chain
        data: Raw data bytes
    """

    offset: int
    dib: DIB
    vib: VIB
    data: bytes

    @property
    def data_length(self) -> int:
        return len(self.data)

    @property
    def raw_value(self) -> int:
        """Data bytes composed little-endian (first 4 bytes at most)."""
        return compose_le(self.data)

    @classmethod
    def from_cursor(cls, cursor: ByteCursor) -> DataRecord:
        """Read one complete record from cursor.

        Raises:
            OutOfBoundsError: If the buffer ends before the VIF
            _DataOverrunError: If the declared data length runs past the end of
                the buffer
        """
        offset = cursor.position

        dib = DIB.from_cursor(cursor)
        vib = VIB.from_cursor(cursor)

        data_length = resolve_data_length(dib.data_field, cursor)

        if data_length > cursor.remaining():
            raise _DataOverrunError(offset, data_length, cursor.remaining())

        return cls(offset=offset, dib=dib, vib=vib, data=cursor.read(data_length))


@dataclass(frozen=True, kw_only=True)
class IncompleteRecord:
    """A record that did not fit into the remaining plaintext.

    Attributes:
        offset: Position of the record's DIF in the plaintext
        declared_length: Data length announced by the DIF (or the LVAR byte)
        available: Bytes that were left for the data field
    """

    offset: int
    declared_length: int
    available: int


def interpret_record(record: DataRecord) -> Measurement:
    """Classify a data record and decode its value.

    Rules, checked in order:
        - VIF 0x6D with 4 data bytes: date and time
        - VIF code 0x13 with 4 data bytes: volume (backflow if the first VIFE is 0x3C)
        - VIF 0xFD, first VIFE 0x17, 1 data byte: status
        - VIF 0x6C with 2 data bytes: date
        - anything else: unknown record with the raw data bytes

    Args:
        record: A complete data record

    Returns:
        The matching Measurement variant
    """
    vib = record.vib

    if vib.is_date_time and record.data_length == 4:
        raw = record.raw_value
        return DateTimeMeasurement(offset=record.offset, raw=raw, value=decode_datetime32(raw))

    if vib.is_volume and record.data_length == 4:
        raw = record.raw_value
        return VolumeMeasurement(
            offset=record.offset,
            raw=raw,
            value=decode_volume32(raw),
            storage_number=record.dib.storage_number,
            is_backflow=vib.is_backflow,
            is_available=is_volume_available(raw),
        )

    if vib.is_error_flags and record.data_length == 1:
        return StatusMeasurement(offset=record.offset, code=decode_status8(record.data[0]))

    if vib.is_date and record.data_length == 2:
        raw = record.raw_value
        return DateMeasurement(
            offset=record.offset,
            raw=raw,
            value=decode_date16(raw),
            storage_number=record.dib.storage_number,
        )

    return UnknownMeasurement(offset=record.offset, dif=record.dib.dif, vif=vib.vif, data=record.data)


class RecordDecoder(Iterator[Measurement]):
    """Forward-only iterator over the measurements in a verified plaintext.

    The decoder reads one record per step and holds no state besides its
    cursor. It cannot be rewound; create a new decoder to decode again.

    Attributes:
        incomplete_record: Set when decoding stopped at a truncated record

    Usage:
        decoder = RecordDecoder(plaintext)
        measurements = list(decoder)

        if decoder.incomplete_record is not None:
            ...
    """

    incomplete_record: IncompleteRecord | None

    _cursor: ByteCursor
    _finished: bool

    def __init__(self, plaintext: bytes, *, start: int = len(VERIFICATION_MARKER)) -> None:
        """Initialize the decoder.

        Args:
            plaintext: Decrypted and verified payload
            start: Offset of the first record, defaults to just past the
                verification marker
        """
        self._cursor = ByteCursor(plaintext, start)
        self._finished = False

        self.incomplete_record = None

    @property
    def finished(self) -> bool:
        return self._finished

    def __iter__(self) -> RecordDecoder:
        return self

    def __next__(self) -> Measurement:
        if self._finished:
            raise StopIteration

        if self._cursor.remaining() == 0 or self._cursor.peek() == IDLE_FILLER:
            self._finished = True
            raise StopIteration

        offset = self._cursor.position

        try:
            record = DataRecord.from_cursor(self._cursor)
        except _DataOverrunError as e:
            self._stop_incomplete(
                IncompleteRecord(offset=offset, declared_length=e.declared_length, available=e.available)
            )
            raise StopIteration from None
        except OutOfBoundsError:
            logger.debug("Buffer ends inside the record header at offset %d", offset)
            self._finished = True
            raise StopIteration from None

        measurement = interpret_record(record)
        logger.debug("Record at offset %d: %r", offset, measurement)

        return measurement

    def _stop_incomplete(self, incomplete_record: IncompleteRecord) -> None:
        logger.warning(
            "Incomplete record at offset %d (declared length %d, %d bytes available), decoding stopped",
            incomplete_record.offset,
            incomplete_record.declared_length,
            incomplete_record.available,
        )
        self.incomplete_record = incomplete_record
        self._finished = True
