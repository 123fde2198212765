"""Command line driver: decode one telegram given as hex and print the report."""

from __future__ import annotations

import argparse
import logging
import os
import string
import sys
from collections.abc import Sequence

from .decoder import decode_plaintext, decrypt_telegram
from .exceptions import OMSError
from .protocol.crypto import AES_KEY_LENGTH
from .protocol.telegram import Telegram
from .report import format_report

logger = logging.getLogger(__name__)

KEY_ENVIRONMENT_VARIABLE = "OMS_KEY"

EXIT_OK = 0
EXIT_DECODE_ERROR = 1
EXIT_USAGE_ERROR = 2


def parse_hex(text: str, expected_length: int | None = None) -> bytes:
    """Convert a hex string to bytes.

    Whitespace is ignored and both upper and lower case digits are accepted.

    Args:
        text: Hex digits, two per byte
        expected_length: If given, the exact number of bytes required

    Returns:
        The decoded bytes

    Raises:
        ValueError: On odd digit count, non-hex characters or wrong length
    """
    digits = "".join(text.split())

    if len(digits) % 2 != 0:
        raise ValueError(f"Hex string has an odd number of digits ({len(digits)})")

    invalid = set(digits) - set(string.hexdigits)
    if invalid:
        raise ValueError(f"Hex string contains invalid characters: {''.join(sorted(invalid))}")

    data = bytes.fromhex(digits)

    if expected_length is not None and len(data) != expected_length:
        raise ValueError(f"Expected {expected_length} bytes, got {len(data)}")

    return data


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="omsdecoder",
        description="Decrypt and decode a wireless M-Bus OMS telegram (security mode 5, AES-128-CBC).",
    )
    parser.add_argument("telegram", help="Telegram as hex string, or - to read it from stdin")
    parser.add_argument(
        "-k",
        "--key",
        default=os.environ.get(KEY_ENVIRONMENT_VARIABLE),
        help=f"AES-128 key as 32 hex digits (default: ${KEY_ENVIRONMENT_VARIABLE})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.key:
        parser.print_usage(sys.stderr)
        print(f"error: no key given, use --key or set {KEY_ENVIRONMENT_VARIABLE}", file=sys.stderr)
        return EXIT_USAGE_ERROR

    telegram_text = sys.stdin.read() if args.telegram == "-" else args.telegram

    try:
        key = parse_hex(args.key, AES_KEY_LENGTH)
        telegram_bytes = parse_hex(telegram_text)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_USAGE_ERROR

    try:
        telegram = Telegram(telegram_bytes)
        plaintext = decrypt_telegram(telegram, key)
    except OMSError as e:
        logger.debug("Decoding failed", exc_info=True)
        print(f"Decryption failed: {e}", file=sys.stderr)
        return EXIT_DECODE_ERROR

    summary = decode_plaintext(plaintext, telegram.serial_number)

    print(format_report(telegram, summary))
    return EXIT_OK
