"""VIF (Value Information Field) chain parsing and the VIF codes in use.

Only the codes that meters in scope actually send are interpreted; every other
VIF/VIFE is carried through untouched and ends up in an unknown record.

Reference: EN 13757-3:2018, Tables 10-16
"""

from __future__ import annotations

from dataclasses import dataclass

from .common import ByteCursor

# ============================================================================
# VIF Constants
# ============================================================================


VIF_EXTENSION_BIT_MASK = 0b10000000  # Bit 7: extension bit (more VIFE bytes follow)
VIF_CODE_MASK = 0b01111111  # Bits 0-6: VIF code without extension bit

VIF_VOLUME_LITRE = 0x13  # Volume, 10^-3 m³ (Table 10, E001 0nnn with nnn = 3)
VIF_DATE = 0x6C  # Date, data type G (Table 10)
VIF_DATE_TIME = 0x6D  # Date and time, data type F (Table 10)
VIF_SECOND_EXTENSION = 0xFD  # Extension to Table 12, with extension bit set

VIFE_ERROR_FLAGS = 0x17  # Error flags (binary), Table 12
VIFE_BACKWARD_FLOW = 0x3C  # Accumulation of abs value only if negative contributions, Table 15


# ============================================================================
# VIB - VIF/VIFE chain
# ============================================================================


@dataclass(frozen=True, kw_only=True)
class VIB:
    """Value Information Block (VIF plus VIFE chain).

    Attributes:
        vif: The VIF byte as received, including the extension bit
        vifes: VIFE bytes in chain order, including their extension bits
    """

    vif: int
    vifes: tuple[int, ...] = ()

    @property
    def code(self) -> int:
        """VIF code without the extension bit."""
        return self.vif & VIF_CODE_MASK

    @property
    def first_vife(self) -> int | None:
        return self.vifes[0] if self.vifes else None

    @property
    def is_volume(self) -> bool:
        return self.code == VIF_VOLUME_LITRE

    @property
    def is_backflow(self) -> bool:
        """True for a volume accumulated only from negative contributions."""
        return self.first_vife is not None and self.first_vife & VIF_CODE_MASK == VIFE_BACKWARD_FLOW

    @property
    def is_date_time(self) -> bool:
        return self.vif == VIF_DATE_TIME

    @property
    def is_date(self) -> bool:
        return self.vif == VIF_DATE

    @property
    def is_error_flags(self) -> bool:
        return self.vif == VIF_SECOND_EXTENSION and self.first_vife == VIFE_ERROR_FLAGS

    @classmethod
    def from_cursor(cls, cursor: ByteCursor) -> VIB:
        """Read a VIF and its VIFE chain from cursor.

        VIFE bytes are read while the previous field has the extension bit
        set and bytes remain.

        Raises:
            OutOfBoundsError: If no VIF byte is left
        """
        vif = cursor.read_u8()

        vifes: list[int] = []

        current_field = vif
        while current_field & VIF_EXTENSION_BIT_MASK and cursor.remaining() > 0:
            current_field = cursor.read_u8()
            vifes.append(current_field)

        return cls(vif=vif, vifes=tuple(vifes))
