"""DIF (Data Information Field) chain parsing and data length resolution.

This module implements the DIF/DIFE part of an OMS data record header:

Classes:
    - DIB: Data Information Block, one DIF plus zero or more DIFE bytes

Functions:
    - resolve_data_length: Data length for a DIF data field code

The DIF/DIFE chain structure:
    DIF (1 byte) + optional DIFEs

    The extension bit (bit 7) in each field indicates if another DIFE byte
    follows. Bit 6 of the DIF is the storage number LSB.

Storage number handling is deliberately simplified: every DIFE replaces the
storage number with its own low nibble instead of concatenating the nibbles
as EN 13757-3 section 6.3.7 describes. Meters in scope only use a single DIFE.

Reference: EN 13757-3:2018
    - Table 4 (page 13): Data field encoding
    - Table 8 (page 14): DIFE encoding
"""

from __future__ import annotations

from dataclasses import dataclass

from .common import ByteCursor

# =============================================================================
# DIF Constants (EN 13757-3:2018)
# =============================================================================


DIF_EXTENSION_BIT_MASK = 0b10000000  # Bit 7: extension bit (more DIFE bytes follow)
DIF_STORAGE_NUMBER_BIT_MASK = 0b01000000  # Bit 6: LSB of storage number
DIF_DATA_FIELD_MASK = 0b00001111  # Bits 0-3: data field (length and coding)

DIFE_EXTENSION_BIT_MASK = 0b10000000  # Bit 7: extension bit (more DIFE bytes follow)
DIFE_STORAGE_NUMBER_BIT_MASK = 0b00001111  # Bits 0-3: storage number bits in DIFE

DATA_FIELD_VARIABLE_LENGTH = 0x0D  # Length is given by the first data byte (LVAR)

# =============================================================================
# Data Length Table (EN 13757-3:2018, Table 4)
# =============================================================================


_DataLengthTable: dict[int, int] = {
    0x00: 0,  # No data
    0x01: 1,  # 8 bit integer
    0x02: 2,  # 16 bit integer
    0x03: 3,  # 24 bit integer
    0x04: 4,  # 32 bit integer
    0x05: 4,  # 32 bit real
    0x06: 6,  # 48 bit integer
    0x07: 8,  # 64 bit integer
    0x09: 1,  # 2 digit BCD
    0x0A: 2,  # 4 digit BCD
    0x0B: 3,  # 6 digit BCD
    0x0C: 4,  # 8 digit BCD
}


def resolve_data_length(data_field: int, cursor: ByteCursor) -> int:
    """Resolve the number of data bytes for a DIF data field code.

    Fixed-length codes are looked up in the length table. For the variable
    length code (0x0D) the next byte is consumed from cursor and used as the
    length; when no byte is left the length is 0. Every other code (readout
    selection, 12 digit BCD, special functions) carries no data here.

    Args:
        data_field: DIF bits 0-3
        cursor: Cursor positioned after the VIF/VIFE chain

    Returns:
        Number of data bytes following
    """
    if data_field == DATA_FIELD_VARIABLE_LENGTH:
        return cursor.read_u8() if cursor.remaining() > 0 else 0

    return _DataLengthTable.get(data_field, 0)


# =============================================================================
# DIB - DIF/DIFE chain
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class DIB:
    """Data Information Block (DIF plus DIFE chain).

    Attributes:
        dif: The DIF byte
        difes: DIFE bytes in chain order
        storage_number: DIF bit 6, replaced by the low nibble of each DIFE
    """

    dif: int
    difes: tuple[int, ...] = ()
    storage_number: int = 0

    @property
    def data_field(self) -> int:
        return self.dif & DIF_DATA_FIELD_MASK

    @classmethod
    def from_cursor(cls, cursor: ByteCursor) -> DIB:
        """Read a DIF and its DIFE chain from cursor.

        DIFE bytes are read while the previous field has the extension bit set
        and bytes remain. A chain cut short by the end of the buffer ends
        quietly, the missing VIF is reported by the caller.

        Raises:
            OutOfBoundsError: If no DIF byte is left
        """
        dif = cursor.read_u8()

        storage_number = 1 if dif & DIF_STORAGE_NUMBER_BIT_MASK else 0

        difes: list[int] = []

        current_field = dif
        while current_field & DIF_EXTENSION_BIT_MASK and cursor.remaining() > 0:
            current_field = cursor.read_u8()
            difes.append(current_field)
            storage_number = current_field & DIFE_STORAGE_NUMBER_BIT_MASK

        return cls(dif=dif, difes=tuple(difes), storage_number=storage_number)
