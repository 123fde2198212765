"""Unit tests for data record parsing, interpretation and the record decoder.

This module covers:
- DataRecord.from_cursor (complete records and data overruns)
- interpret_record classification rules
- RecordDecoder on the reference, complete and truncated payloads
- Stop conditions (idle filler, end of buffer, truncated record)
"""

from __future__ import annotations

import logging

import pytest

from omsdecoder.exceptions import OutOfBoundsError
from omsdecoder.protocol.common import ByteCursor
from omsdecoder.protocol.dif import DIB
from omsdecoder.protocol.record import DataRecord, IncompleteRecord, RecordDecoder, interpret_record
from omsdecoder.protocol.value import (
    DateMeasurement,
    DateTimeMeasurement,
    MeterDate,
    MeterDateTime,
    StatusMeasurement,
    UnknownMeasurement,
    VolumeMeasurement,
)
from omsdecoder.protocol.vif import VIB

# =============================================================================
# Test Constants
# =============================================================================

TEST_DATE_TIME = MeterDateTime(year=2025, month=9, day=26, hour=16, minute=36)


def _record(dif: int, vif: int, data: bytes, *, vifes: tuple[int, ...] = (), storage_number: int = 0) -> DataRecord:
    return DataRecord(
        offset=2,
        dib=DIB(dif=dif, storage_number=storage_number),
        vib=VIB(vif=vif, vifes=vifes),
        data=data,
    )


# =============================================================================
# DataRecord Tests
# =============================================================================


class TestDataRecord:
    """Tests for DataRecord.from_cursor."""

    def test_volume_record(self) -> None:
        """Test reading a complete volume record."""
        cursor = ByteCursor(bytes.fromhex("2f2f04133930000001"), 2)
        record = DataRecord.from_cursor(cursor)

        assert record.offset == 2
        assert record.dib == DIB(dif=0x04)
        assert record.vib == VIB(vif=0x13)
        assert record.data == b"\x39\x30\x00\x00"
        assert record.data_length == 4
        assert record.raw_value == 0x3039
        assert cursor.position == 8

    def test_variable_length_record(self) -> None:
        """Test reading a variable length record."""
        cursor = ByteCursor(bytes.fromhex("0d7803aabbcc"))
        record = DataRecord.from_cursor(cursor)

        assert record.data == b"\xaa\xbb\xcc"
        assert cursor.remaining() == 0

    def test_data_overrun_raises(self) -> None:
        """Test that a data overrun raises."""
        cursor = ByteCursor(bytes.fromhex("04130102"))
        with pytest.raises(OutOfBoundsError, match="declares 4 data bytes, only 2 remain"):
            DataRecord.from_cursor(cursor)

    def test_missing_vif_raises(self) -> None:
        """Test that a missing VIF raises."""
        with pytest.raises(OutOfBoundsError):
            DataRecord.from_cursor(ByteCursor(b"\x04"))


# =============================================================================
# interpret_record Tests
# =============================================================================


class TestInterpretRecord:
    """Tests for interpret_record classification."""

    def test_date_time(self) -> None:
        """Test classification of a date and time record."""
        measurement = interpret_record(_record(0x04, 0x6D, b"\xa4\x30\x3a\x39"))
        assert measurement == DateTimeMeasurement(offset=2, raw=0x393A30A4, value=TEST_DATE_TIME)

    def test_volume(self) -> None:
        """Test classification of a current volume record."""
        measurement = interpret_record(_record(0x04, 0x13, b"\x39\x30\x00\x00"))
        assert isinstance(measurement, VolumeMeasurement)
        assert measurement.value == pytest.approx(12.345)
        assert measurement.raw == 0x3039
        assert measurement.storage_number == 0
        assert not measurement.is_backflow
        assert measurement.is_available

    def test_history_volume_keeps_storage_number(self) -> None:
        """Test that a history volume keeps its storage number."""
        measurement = interpret_record(_record(0x84, 0x13, b"\x12\x00\x00\x00", storage_number=2))
        assert isinstance(measurement, VolumeMeasurement)
        assert measurement.storage_number == 2
        assert measurement.is_history

    def test_backflow_volume(self) -> None:
        """Test classification of a backflow volume."""
        measurement = interpret_record(_record(0x04, 0x93, b"\x64\x00\x00\x00", vifes=(0x3C,)))
        assert isinstance(measurement, VolumeMeasurement)
        assert measurement.is_backflow
        assert measurement.value == pytest.approx(0.1)

    def test_volume_not_available(self) -> None:
        """Test the not available volume marker."""
        measurement = interpret_record(_record(0x84, 0x13, b"\xff\xff\xff\xff", storage_number=3))
        assert isinstance(measurement, VolumeMeasurement)
        assert not measurement.is_available
        assert measurement.value == pytest.approx(-0.001)
        assert measurement.raw == 0xFFFFFFFF

    def test_status(self) -> None:
        """Test classification of a status record."""
        assert interpret_record(_record(0x01, 0xFD, b"\x00", vifes=(0x17,))) == StatusMeasurement(offset=2, code=0)

    def test_status_error(self) -> None:
        """Test a status record with an error code."""
        measurement = interpret_record(_record(0x01, 0xFD, b"\x04", vifes=(0x17,)))
        assert isinstance(measurement, StatusMeasurement)
        assert not measurement.is_ok

    def test_date(self) -> None:
        """Test classification of a date record."""
        measurement = interpret_record(_record(0x42, 0x6C, b"\x7f\x2c", storage_number=1))
        assert measurement == DateMeasurement(
            offset=2,
            raw=0x2C7F,
            value=MeterDate(year=2022, month=3, day=31),
            storage_number=1,
        )

    def test_date_not_set(self) -> None:
        """Test a date record that is not set."""
        measurement = interpret_record(_record(0x42, 0x6C, b"\xff\xff", storage_number=1))
        assert isinstance(measurement, DateMeasurement)
        assert measurement.value is None
        assert not measurement.is_set

    @pytest.mark.parametrize(
        ("dif", "vif", "data", "vifes"),
        [
            (0x02, 0x13, b"\x39\x30", ()),
            (0x02, 0x6D, b"\xa4\x30", ()),
            (0x02, 0xFD, b"\x00\x00", (0x17,)),
            (0x04, 0x6C, b"\x7f\x2c\x00\x00", ()),
            (0x01, 0xFD, b"\x00", (0x16,)),
            (0x04, 0x14, b"\x39\x30\x00\x00", ()),
            (0x0F, 0x17, b"", ()),
        ],
        ids=[
            "volume_wrong_length",
            "date_time_wrong_length",
            "status_wrong_length",
            "date_wrong_length",
            "other_extension_vife",
            "other_vif",
            "no_data",
        ],
    )
    def test_unknown(self, dif: int, vif: int, data: bytes, vifes: tuple[int, ...]) -> None:
        """Test records falling through to the unknown variant."""
        measurement = interpret_record(_record(dif, vif, data, vifes=vifes))
        assert measurement == UnknownMeasurement(offset=2, dif=dif, vif=vif, data=data)


# =============================================================================
# RecordDecoder Tests
# =============================================================================


class TestRecordDecoderReference:
    """RecordDecoder on the decrypted reference payload."""

    def test_measurement_count_and_completion(self, reference_plaintext: bytes) -> None:
        """Test that the reference payload decodes completely."""
        decoder = RecordDecoder(reference_plaintext)
        measurements = list(decoder)

        assert len(measurements) == 21
        assert decoder.incomplete_record is None
        assert decoder.finished

    def test_offsets(self, reference_plaintext: bytes) -> None:
        """Test the record offsets in the reference payload."""
        offsets = [measurement.offset for measurement in RecordDecoder(reference_plaintext)]
        assert offsets == [2, 8, 12, 18, 22, 28, 35, 42, 49, 56, *range(63, 134, 7)]

    def test_leading_records(self, reference_plaintext: bytes) -> None:
        """Test the first four records of the reference payload."""
        measurements = list(RecordDecoder(reference_plaintext))

        assert measurements[0] == DateTimeMeasurement(offset=2, raw=0x393A30A4, value=TEST_DATE_TIME)
        assert measurements[1] == UnknownMeasurement(offset=8, dif=0xF9, vif=0x1D, data=b"\x8c")
        assert measurements[2] == UnknownMeasurement(offset=12, dif=0x9D, vif=0x17, data=b"")
        assert measurements[3] == DateMeasurement(offset=18, raw=0xFFFF, value=None, storage_number=1)

    def test_volumes(self, reference_plaintext: bytes) -> None:
        """Test the history volumes of the reference payload."""
        volumes = [m for m in RecordDecoder(reference_plaintext) if isinstance(m, VolumeMeasurement)]

        assert len(volumes) == 17
        assert [v.storage_number for v in volumes] == [1, 1, 1, 1, 2, 2, 3, 3, 4, 4, 5, 5, 6, 6, 7, 7, 8]
        assert [v.is_backflow for v in volumes] == [False, True] + [False] * 15
        assert volumes[4].value == pytest.approx(0.018)
        assert all(v.is_available for v in volumes[:6])
        assert not any(v.is_available for v in volumes[6:])
        assert all(v.value == pytest.approx(-0.001) for v in volumes[6:])

    def test_no_current_volume(self, reference_plaintext: bytes) -> None:
        """Test that the reference payload has no current volume."""
        assert not any(
            isinstance(m, VolumeMeasurement) and m.storage_number == 0 for m in RecordDecoder(reference_plaintext)
        )


class TestRecordDecoderComplete:
    """RecordDecoder on the synthetic payload with every supported record type."""

    def test_measurements(self, complete_plaintext: bytes) -> None:
        """Test every measurement of the complete payload."""
        measurements = list(RecordDecoder(complete_plaintext))

        assert [type(m) for m in measurements] == [
            DateTimeMeasurement,
            VolumeMeasurement,
            VolumeMeasurement,
            VolumeMeasurement,
            StatusMeasurement,
            DateMeasurement,
        ]
        assert [m.offset for m in measurements] == [2, 8, 14, 20, 27, 31]

        current, history, backflow = measurements[1:4]
        assert isinstance(current, VolumeMeasurement)
        assert isinstance(history, VolumeMeasurement)
        assert isinstance(backflow, VolumeMeasurement)
        assert (current.value, current.storage_number) == (pytest.approx(12.345), 0)
        assert (history.value, history.storage_number) == (pytest.approx(1.234), 1)
        assert backflow.is_backflow
        assert backflow.value == pytest.approx(0.1)

        assert measurements[4] == StatusMeasurement(offset=27, code=0)
        assert measurements[5] == DateMeasurement(
            offset=31, raw=0x2C7F, value=MeterDate(year=2022, month=3, day=31), storage_number=1
        )


class TestRecordDecoderStop:
    """Stop conditions of RecordDecoder."""

    def test_truncated_record(self, truncated_plaintext: bytes, caplog: pytest.LogCaptureFixture) -> None:
        """Test that a data overrun yields an incomplete record."""
        decoder = RecordDecoder(truncated_plaintext)

        with caplog.at_level(logging.WARNING, logger="omsdecoder.protocol.record"):
            measurements = list(decoder)

        assert [m.offset for m in measurements] == [2, 8, 14]
        assert decoder.incomplete_record == IncompleteRecord(offset=18, declared_length=32, available=11)
        assert "Incomplete record at offset 18" in caplog.text

    @pytest.mark.parametrize(
        ("plaintext_hex", "expected_count", "expected_incomplete"),
        [
            ("2f2f", 0, None),
            ("2f2f2f2f", 0, None),
            ("2f2f04133930000002", 1, None),
            ("2f2f04", 0, None),
            ("2f2f84", 0, None),
            ("2f2f0d13", 1, None),
            ("2f2f04130102", 0, IncompleteRecord(offset=2, declared_length=4, available=2)),
            ("2f2f0d130501", 0, IncompleteRecord(offset=2, declared_length=5, available=1)),
        ],
        ids=[
            "marker_only",
            "idle_filler",
            "record_then_missing_vif",
            "missing_vif",
            "dife_chain_cut",
            "missing_lvar_byte",
            "fixed_length_overrun",
            "variable_length_overrun",
        ],
    )
    def test_stop_conditions(
        self, plaintext_hex: str, expected_count: int, expected_incomplete: IncompleteRecord | None
    ) -> None:
        """Test the end of buffer, filler and overrun stop conditions."""
        decoder = RecordDecoder(bytes.fromhex(plaintext_hex))

        assert len(list(decoder)) == expected_count
        assert decoder.incomplete_record == expected_incomplete
        assert decoder.finished

    def test_missing_length_byte_emits_empty_record(self) -> None:
        """Test that a variable length record cut before its LVAR byte is kept with no data."""
        decoder = RecordDecoder(bytes.fromhex("2f2f0d13"))

        assert list(decoder) == [UnknownMeasurement(offset=2, dif=0x0D, vif=0x13, data=b"")]
        assert decoder.incomplete_record is None

    def test_header_cut_ends_cleanly(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that a buffer ending after a DIF ends decoding without an incomplete record."""
        decoder = RecordDecoder(bytes.fromhex("2f2f04133930000002"))

        with caplog.at_level(logging.WARNING, logger="omsdecoder.protocol.record"):
            measurements = list(decoder)

        assert [m.offset for m in measurements] == [2]
        assert decoder.incomplete_record is None
        assert "Incomplete record" not in caplog.text

    def test_filler_stops_before_later_records(self) -> None:
        """Test that the idle filler ends decoding."""
        plaintext = bytes.fromhex("2f2f0413393000002f0413d2040000")
        assert [m.offset for m in RecordDecoder(plaintext)] == [2]

    def test_not_restartable(self, complete_plaintext: bytes) -> None:
        """Test that an exhausted decoder stays exhausted."""
        decoder = RecordDecoder(complete_plaintext)

        assert len(list(decoder)) == 6
        assert list(decoder) == []
        with pytest.raises(StopIteration):
            next(decoder)

    def test_independent_decoders_agree(self, reference_plaintext: bytes) -> None:
        """Test that two decoders on the same payload agree."""
        assert list(RecordDecoder(reference_plaintext)) == list(RecordDecoder(reference_plaintext))

    def test_custom_start(self) -> None:
        """Test decoding from a custom start offset."""
        measurements = list(RecordDecoder(bytes.fromhex("04133930000002"), start=0))
        assert [m.offset for m in measurements] == [0]
