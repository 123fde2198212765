"""pyOMSDecoder: Decoder for encrypted wireless M-Bus OMS meter telegrams.

This library decrypts OMS security mode 5 (AES-128-CBC) telegrams and decodes
the data records of the plaintext into typed measurements (volume, date,
date and time, status), with a summary suitable for integration into
applications and frameworks like Home Assistant.
"""

from __future__ import annotations

from .decoder import Summary, decode
from .exceptions import (
    CiphertextMisalignedError,
    InvalidKeyError,
    OMSDecryptionError,
    OMSError,
    OMSTelegramError,
    OutOfBoundsError,
    TelegramTooShortError,
    VerificationFailedError,
)
from .protocol.record import IncompleteRecord

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Decoding
    "decode",
    "Summary",
    "IncompleteRecord",
    # Exceptions
    "OMSError",
    "OMSTelegramError",
    "TelegramTooShortError",
    "OMSDecryptionError",
    "InvalidKeyError",
    "CiphertextMisalignedError",
    "VerificationFailedError",
    "OutOfBoundsError",
]
