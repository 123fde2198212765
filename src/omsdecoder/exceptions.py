"""OMS decoder exception classes."""

from __future__ import annotations


class OMSError(Exception):
    """Base exception for all OMS decoder errors."""


class OMSTelegramError(OMSError):
    """Telegram framing errors (header cannot be read)."""


class TelegramTooShortError(OMSTelegramError):
    """Telegram is shorter than the fixed 18 byte header."""


class OMSDecryptionError(OMSError):
    """Errors raised while decrypting or verifying the encrypted payload."""


class InvalidKeyError(OMSDecryptionError):
    """AES key is not exactly 16 bytes."""


class CiphertextMisalignedError(OMSDecryptionError):
    """Ciphertext length is not a multiple of the AES block size."""


class VerificationFailedError(OMSDecryptionError):
    """Decrypted payload does not start with the 0x2F 0x2F marker (wrong key or IV)."""


class OutOfBoundsError(OMSError):
    """Read past the end of a byte buffer."""
