"""Telegram decoding pipeline and measurement summary.

The pipeline is strictly sequential:

    telegram bytes -> Telegram (header view) -> IV -> Decryptor (verified
    plaintext) -> RecordDecoder (measurements) -> fold -> Summary

All state lives in local values, so decoding the same telegram twice yields
identical results and independent telegrams can be decoded concurrently.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from functools import reduce

from .protocol.crypto import BlockCipher, Decryptor
from .protocol.record import IncompleteRecord, RecordDecoder
from .protocol.telegram import SECURITY_MODE_AES_CBC_IV, Telegram
from .protocol.value import DateTimeMeasurement, Measurement, MeterDateTime, StatusMeasurement, VolumeMeasurement

logger = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class SummaryState:
    """Accumulator threaded through the measurement fold.

    Attributes:
        total_volume: First current (storage 0), non-backflow volume in m³
        status: Most recent status byte
        date_time: Most recent meter date and time
    """

    total_volume: float | None = None
    status: int | None = None
    date_time: MeterDateTime | None = None


def fold_measurement(state: SummaryState, measurement: Measurement) -> SummaryState:
    """Return the summary state after seeing one more measurement."""
    if isinstance(measurement, VolumeMeasurement):
        if state.total_volume is None and not measurement.is_backflow and measurement.storage_number == 0:
            return replace(state, total_volume=measurement.value)
        return state

    if isinstance(measurement, StatusMeasurement):
        return replace(state, status=measurement.code)

    if isinstance(measurement, DateTimeMeasurement):
        return replace(state, date_time=measurement.value)

    return state


def summarize(measurements: Iterable[Measurement]) -> SummaryState:
    """Fold a measurement sequence into its summary state."""
    return reduce(fold_measurement, measurements, SummaryState())


@dataclass(frozen=True, kw_only=True)
class Summary:
    """Result of decoding one telegram.

    Attributes:
        serial_number: Meter identification from the telegram header
        total_volume: First current, non-backflow volume in m³, if any
        status: Most recent status byte, if any (0 = OK)
        date_time: Most recent meter date and time, if any
        measurements: Every measurement in record order
        incomplete_record: Set when decoding stopped at a truncated record
    """

    serial_number: int
    total_volume: float | None = None
    status: int | None = None
    date_time: MeterDateTime | None = None
    measurements: tuple[Measurement, ...] = ()
    incomplete_record: IncompleteRecord | None = None

    @property
    def is_complete(self) -> bool:
        return self.incomplete_record is None

    @property
    def is_status_ok(self) -> bool | None:
        return None if self.status is None else self.status == 0


def decode_plaintext(plaintext: bytes, serial_number: int) -> Summary:
    """Decode the records of a verified plaintext into a Summary.

    Args:
        plaintext: Decrypted payload starting with 0x2F 0x2F
        serial_number: Meter identification to carry into the summary

    Returns:
        Summary of all records decoded before the end marker, the end of the
        buffer, or a truncated record
    """
    decoder = RecordDecoder(plaintext)
    measurements = tuple(decoder)
    state = summarize(measurements)

    return Summary(
        serial_number=serial_number,
        total_volume=state.total_volume,
        status=state.status,
        date_time=state.date_time,
        measurements=measurements,
        incomplete_record=decoder.incomplete_record,
    )


def decrypt_telegram(telegram: Telegram, key: bytes, *, cipher: BlockCipher | None = None) -> bytes:
    """Decrypt and verify the payload of a mode 5 telegram.

    Raises:
        InvalidKeyError: If key is not 16 bytes
        VerificationFailedError: If the plaintext does not start with 0x2F 0x2F
    """
    if telegram.security_mode != SECURITY_MODE_AES_CBC_IV:
        logger.warning(
            "TPL configuration 0x%04X announces security mode %d, decrypting as mode %d",
            telegram.tpl_config,
            telegram.security_mode,
            SECURITY_MODE_AES_CBC_IV,
        )

    iv = telegram.build_iv()
    logger.debug("Telegram %r, IV %s", telegram, iv.hex(" ").upper())

    return Decryptor(cipher).decrypt_and_verify(key, iv, telegram.cipher_payload)


def decode(telegram: bytes, key: bytes, *, cipher: BlockCipher | None = None) -> Summary:
    """Decode an encrypted OMS telegram.

    Args:
        telegram: Framed telegram bytes (at least 18)
        key: 16 byte AES-128 key
        cipher: Block cipher capability, defaults to pycryptodome AES

    Returns:
        Summary with the serial number, summary values and all measurements

    Raises:
        TelegramTooShortError: If the telegram is shorter than 18 bytes
        InvalidKeyError: If key is not 16 bytes
        VerificationFailedError: If decryption does not yield the 0x2F 0x2F marker
    """
    parsed = Telegram(telegram)

    plaintext = decrypt_telegram(parsed, key, cipher=cipher)

    return decode_plaintext(plaintext, parsed.serial_number)
