"""Plain text rendering of decoded telegrams.

Presentation only: every function here takes decoded values and returns
strings, nothing is printed and nothing is decoded.
"""

from __future__ import annotations

from .decoder import Summary
from .protocol.telegram import Telegram
from .protocol.value import (
    DateMeasurement,
    DateTimeMeasurement,
    Measurement,
    StatusMeasurement,
    UnknownMeasurement,
    VolumeMeasurement,
)

_DEVICE_TYPE_NAMES: dict[int, str] = {
    0x06: "Warm water meter",
    0x07: "Water meter",
    0x15: "Hot water meter",
    0x16: "Cold water meter",
}


def format_hex(data: bytes) -> str:
    return data.hex(" ").upper()


def format_status(code: int) -> str:
    return "OK" if code == 0 else "Error"


def format_telegram(telegram: Telegram) -> str:
    """Render the telegram header fields and the derived IV."""
    device_type = _DEVICE_TYPE_NAMES.get(telegram.device_type, "Unknown device type")

    lines = [
        "=== Telegram Structure ===",
        f"L-field:    0x{telegram.length_field:02X} ({len(telegram)} bytes)",
        f"C-field:    0x{telegram.control_field:02X}",
        f"M-field:    0x{telegram.manufacturer_field:04X} ({telegram.manufacturer})",
        f"Serial:     {telegram.serial_number:08X}",
        f"Version:    0x{telegram.version:02X}",
        f"Type:       0x{telegram.device_type:02X} ({device_type})",
        f"ELL-ACC:    0x{telegram.ell_access_counter:02X}",
        f"TPL-ACC:    0x{telegram.tpl_access_counter:02X}",
        f"TPL-CFG:    0x{telegram.tpl_config:04X} -> Mode {telegram.security_mode}",
        f"IV:         {format_hex(telegram.build_iv())}",
    ]
    return "\n".join(lines)


def format_measurement(measurement: Measurement) -> str:
    """Render one measurement as a single line."""
    if isinstance(measurement, VolumeMeasurement):
        label = "Backflow" if measurement.is_backflow else "Volume"
        text = f"{label} = {measurement.value:.3f} {measurement.unit}"
        if not measurement.is_available and not measurement.is_backflow:
            text += " (Not available)"
        if measurement.is_history:
            text += f" (History {measurement.storage_number})"
        return text

    if isinstance(measurement, DateTimeMeasurement):
        return f"Meter Date/Time = {measurement.value}"

    if isinstance(measurement, DateMeasurement):
        text = f"Date = {measurement.value if measurement.value is not None else 'Not set'}"
        if measurement.storage_number > 0:
            text += f" (History {measurement.storage_number})"
        return text

    if isinstance(measurement, StatusMeasurement):
        return f"Status = 0x{measurement.code:02X} ({format_status(measurement.code)})"

    if isinstance(measurement, UnknownMeasurement):
        data = format_hex(measurement.data)
        return f"Unknown record: DIF=0x{measurement.dif:02X}, VIF=0x{measurement.vif:02X}, Data={data}"

    raise TypeError(f"Unsupported measurement type {type(measurement).__name__}")


def format_summary(summary: Summary) -> str:
    """Render the summary block."""
    lines = ["=== Summary ===", f"Meter ID:          {summary.serial_number:08X}"]

    if summary.total_volume is not None:
        lines.append(f"Total Consumption: {summary.total_volume:.3f} m3")

    if summary.status is not None:
        lines.append(f"Meter Status:      {'OK' if summary.status == 0 else 'ERROR'}")

    if summary.date_time is not None:
        lines.append(f"Timestamp:         {summary.date_time}")

    return "\n".join(lines)


def format_report(telegram: Telegram, summary: Summary) -> str:
    """Render the complete report: header, one line per record, summary."""
    sections = [format_telegram(telegram)]

    record_lines = ["=== Decoded Meter Data ==="]
    record_lines.extend(
        f"Record {number}: {format_measurement(measurement)}"
        for number, measurement in enumerate(summary.measurements, start=1)
    )
    if summary.incomplete_record is not None:
        record_lines.append(f"Record {len(summary.measurements) + 1}: Incomplete record")
    sections.append("\n".join(record_lines))

    sections.append(format_summary(summary))

    return "\n\n".join(sections)
