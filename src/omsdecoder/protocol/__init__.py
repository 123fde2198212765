"""Protocol layer components for OMS telegram decryption and record decoding.

This package contains the telegram header view, mode 5 decryption and the
EN 13757-3 data record decoder.

Reference: EN 13757-3:2018, EN 13757-7:2018, OMS Specification Volume 2
"""

from .common import ByteCursor
from .crypto import AESCipher, BlockCipher, Decryptor
from .record import DataRecord, IncompleteRecord, RecordDecoder, interpret_record
from .telegram import Telegram
from .value import (
    DateMeasurement,
    DateTimeMeasurement,
    Measurement,
    MeterDate,
    MeterDateTime,
    StatusMeasurement,
    UnknownMeasurement,
    VolumeMeasurement,
)

__all__ = [
    # Common types
    "ByteCursor",
    # Telegram and decryption
    "Telegram",
    "BlockCipher",
    "AESCipher",
    "Decryptor",
    # Records
    "DataRecord",
    "IncompleteRecord",
    "RecordDecoder",
    "interpret_record",
    # Measurements
    "Measurement",
    "VolumeMeasurement",
    "DateTimeMeasurement",
    "DateMeasurement",
    "StatusMeasurement",
    "UnknownMeasurement",
    "MeterDateTime",
    "MeterDate",
]
