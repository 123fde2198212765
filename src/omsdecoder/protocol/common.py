"""Common types and utilities shared across protocol components.

This module contains the byte cursor used by the record decoder and the
constants shared between the telegram, crypto and record layers.

Reference: EN 13757-3:2018, EN 13757-7:2018, OMS Specification Volume 2
"""

from __future__ import annotations

from ..exceptions import OutOfBoundsError

# =============================================================================
# Shared Constants
# =============================================================================

AES_BLOCK_SIZE = 16  # AES-128 block size in bytes

TELEGRAM_HEADER_LENGTH = 18  # Link layer + ELL + short TPL header, payload starts here

IDLE_FILLER = 0x2F  # Idle filler DIF, also marks "no more records" at a record boundary

VERIFICATION_MARKER = bytes([IDLE_FILLER, IDLE_FILLER])  # Expected first two plaintext bytes


# =============================================================================
# Byte Cursor
# =============================================================================


class ByteCursor:
    """Bounds-checked sequential reader over a fixed byte buffer.

    The cursor never modifies the buffer. Every read past the end raises
    OutOfBoundsError and leaves the position unchanged.

    Attributes:
        position: Offset of the next byte to be read
    """

    position: int

    _buffer: bytes

    def __init__(self, buffer: bytes, position: int = 0) -> None:
        if not 0 <= position <= len(buffer):
            raise ValueError(f"Cursor position {position} outside buffer of {len(buffer)} bytes")

        self._buffer = bytes(buffer)
        self.position = position

    def __len__(self) -> int:
        return len(self._buffer)

    def remaining(self) -> int:
        """Number of bytes left to read."""
        return len(self._buffer) - self.position

    def peek(self) -> int:
        """Return the next byte without consuming it.

        Raises:
            OutOfBoundsError: If the cursor is at the end of the buffer
        """
        if self.position >= len(self._buffer):
            raise OutOfBoundsError(f"Cannot peek at offset {self.position}, buffer is {len(self._buffer)} bytes")

        return self._buffer[self.position]

    def read_u8(self) -> int:
        """Read and consume one byte.

        Raises:
            OutOfBoundsError: If the cursor is at the end of the buffer
        """
        value = self.peek()
        self.position += 1
        return value

    def read(self, size: int) -> bytes:
        """Read and consume exactly size bytes.

        Raises:
            OutOfBoundsError: If fewer than size bytes remain
        """
        if size < 0:
            raise ValueError(f"Cannot read a negative number of bytes: {size}")

        if size > self.remaining():
            raise OutOfBoundsError(
                f"Cannot read {size} bytes at offset {self.position}, only {self.remaining()} remain"
            )

        data = self._buffer[self.position : self.position + size]
        self.position += size
        return data
