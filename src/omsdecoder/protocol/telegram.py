"""Telegram header view and initialization vector construction.

This module implements the read-only view on an already framed wireless M-Bus
telegram carrying an OMS Extended Link Layer (ELL) and a short Transport Layer
(TPL) header, as sent by meters using security mode 5 (AES-128-CBC).

Header layout (offsets into the telegram):

    0       L-field (length, excluding itself)
    1       C-field (control)
    2-3     M-field (manufacturer, little-endian FLAG code)
    4-7     Identification (serial number, little-endian)
    8       Version
    9       Device type
    10-11   ELL CI-field and communication control
    12      ELL access number
    13      TPL CI-field
    14      TPL access number
    15      TPL status
    16-17   TPL configuration word (little-endian)
    18-     Encrypted payload

Reference: EN 13757-4:2019, EN 13757-7:2018, OMS Specification Volume 2, section 9.2.4
"""

from __future__ import annotations

import logging

from ..exceptions import TelegramTooShortError
from .common import AES_BLOCK_SIZE, TELEGRAM_HEADER_LENGTH

logger = logging.getLogger(__name__)

# =============================================================================
# Header Constants
# =============================================================================

_LENGTH_FIELD_OFFSET = 0
_CONTROL_FIELD_OFFSET = 1
_MANUFACTURER_OFFSET = 2  # 2 bytes
_IDENTIFICATION_OFFSET = 4  # 4 bytes serial number
_VERSION_OFFSET = 8
_DEVICE_TYPE_OFFSET = 9
_ELL_ACCESS_COUNTER_OFFSET = 12
_TPL_ACCESS_COUNTER_OFFSET = 14
_TPL_CONFIG_OFFSET = 16  # 2 bytes

TPL_CONFIG_MODE_SHIFT = 8  # Security mode lives in the high byte of the configuration word
TPL_CONFIG_MODE_MASK = 0x0F

SECURITY_MODE_AES_CBC_IV = 5  # The only mode this decoder supports

IV_LENGTH = 16


class Telegram:
    """Immutable view on a framed wM-Bus telegram and its header fields.

    The constructor enforces the header length invariant, so every header
    property can be read without further checks.

    Raises:
        TelegramTooShortError: If fewer than 18 bytes are supplied
    """

    _data: bytes

    def __init__(self, data: bytes) -> None:
        if len(data) < TELEGRAM_HEADER_LENGTH:
            raise TelegramTooShortError(
                f"Telegram has {len(data)} bytes, at least {TELEGRAM_HEADER_LENGTH} are required"
            )

        self._data = bytes(data)

    def __len__(self) -> int:
        return len(self._data)

    def __bytes__(self) -> bytes:
        return self._data

    def __repr__(self) -> str:
        return f"Telegram(serial_number={self.serial_number:08X}, length={len(self._data)})"

    @property
    def length_field(self) -> int:
        return self._data[_LENGTH_FIELD_OFFSET]

    @property
    def control_field(self) -> int:
        return self._data[_CONTROL_FIELD_OFFSET]

    @property
    def manufacturer_field(self) -> int:
        return int.from_bytes(self._data[_MANUFACTURER_OFFSET : _MANUFACTURER_OFFSET + 2], byteorder="little")

    @property
    def manufacturer(self) -> str:
        """Three letter manufacturer code (FLAG association), e.g. "EFE"."""
        code = self.manufacturer_field
        return "".join(chr(((code >> shift) & 0b00011111) + 64) for shift in (10, 5, 0))

    @property
    def serial_number(self) -> int:
        return int.from_bytes(self._data[_IDENTIFICATION_OFFSET : _IDENTIFICATION_OFFSET + 4], byteorder="little")

    @property
    def version(self) -> int:
        return self._data[_VERSION_OFFSET]

    @property
    def device_type(self) -> int:
        return self._data[_DEVICE_TYPE_OFFSET]

    @property
    def ell_access_counter(self) -> int:
        return self._data[_ELL_ACCESS_COUNTER_OFFSET]

    @property
    def tpl_access_counter(self) -> int:
        return self._data[_TPL_ACCESS_COUNTER_OFFSET]

    @property
    def tpl_config(self) -> int:
        return int.from_bytes(self._data[_TPL_CONFIG_OFFSET : _TPL_CONFIG_OFFSET + 2], byteorder="little")

    @property
    def security_mode(self) -> int:
        return (self.tpl_config >> TPL_CONFIG_MODE_SHIFT) & TPL_CONFIG_MODE_MASK

    @property
    def payload(self) -> bytes:
        """All bytes following the header."""
        return self._data[TELEGRAM_HEADER_LENGTH:]

    @property
    def cipher_payload(self) -> bytes:
        """Payload truncated to the largest multiple of the AES block size.

        A trailing partial block is dropped silently; it is never passed to
        the cipher.
        """
        payload = self.payload
        aligned_length = len(payload) - len(payload) % AES_BLOCK_SIZE

        if aligned_length != len(payload):
            logger.debug("Dropping %d trailing bytes of partial cipher block", len(payload) - aligned_length)

        return payload[:aligned_length]

    def build_iv(self) -> bytes:
        """Derive the 16 byte AES-CBC initialization vector from the header.

        Layout:
            iv[0:2]   = telegram[2:4]   (manufacturer)
            iv[2:8]   = telegram[4:10]  (identification, version, device type)
            iv[8]     = telegram[12]    (ELL access number)
            iv[9]     = telegram[14]    (TPL access number)
            iv[10:16] = 0x00

        Returns:
            The 16 byte initialization vector
        """
        iv = bytearray(IV_LENGTH)

        iv[0:2] = self._data[_MANUFACTURER_OFFSET : _MANUFACTURER_OFFSET + 2]
        iv[2:8] = self._data[_IDENTIFICATION_OFFSET : _DEVICE_TYPE_OFFSET + 1]
        iv[8] = self._data[_ELL_ACCESS_COUNTER_OFFSET]
        iv[9] = self._data[_TPL_ACCESS_COUNTER_OFFSET]

        return bytes(iv)
