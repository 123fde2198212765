"""Shared test fixtures for pyOMSDecoder tests."""

from __future__ import annotations

from typing import Any

import pytest

# =============================================================================
# Reference telegram (water meter, manufacturer EFE, serial 50898527)
# =============================================================================

REFERENCE_KEY_HEX = "4255794D3DCCFD46953146E701B7DB68"

REFERENCE_TELEGRAM_HEX = (
    "a144c5142785895070078c20607a9d00902537ca231fa2da5889be8df3673ec1"
    "36aebfb80d4ce395ba98f6b3844a115e4be1b1c9f0a2d5ffbb92906aa388deaa"
    "82c929310e9e5c4c0922a784df89cf0ded833be8da996eb5885409b6c9867978"
    "dea24001d68c603408d758a1e2b91c42ebad86a9b9d287880083bb0702850574"
    "d7b51e9c209ed68e0374e9b01febfd92b4cb9410fdeaf7fb526b742dc9a8d068"
    "2653"
)

REFERENCE_HEADER_HEX = "a144c5142785895070078c20607a9d009025"

REFERENCE_IV_HEX = "c514278589507007609d000000000000"

# Decrypted payload of the reference telegram
REFERENCE_PLAINTEXT_HEX = (
    "2f2f046da4303a39f9131d8c9d9d9c601700426cffff44130000000044933c00"
    "00000084011300000000c401130000000084021312000000c402130000000084"
    "0313ffffffffc40313ffffffff840413ffffffffc40413ffffffff840513ffff"
    "ffffc40513ffffffff840613ffffffffc40613ffffffff840713ffffffffc407"
    "13ffffffff840813ffffffff2f2f2f2f"
)

# =============================================================================
# Synthetic telegrams, same header and key, payload encrypted with AES-128-CBC
# =============================================================================

# 2F2F | 04 6D A4303A39 | 04 13 39300000 | 44 13 D2040000 | 04 93 3C 64000000 |
# 01 FD 17 00 | 42 6C 7F2C | 2F filler
COMPLETE_PLAINTEXT_HEX = (
    "2f2f046da4303a390413393000004413d204000004933c6400000001fd1700426c7f2c"
    "2f2f2f2f2f2f2f2f2f2f2f2f2f"
)
COMPLETE_CIPHERTEXT_HEX = (
    "234a362b99e93145840b3004405e1a4a7971a8125c5322044d4abc3bf7fb05ab"
    "e8acd940bc790160e74c2962f621c4e6"
)

# 2F2F | 04 6D A4303A39 | 04 13 39300000 | 01 FD 17 00 | 0D 13 20 (32 bytes declared) + 11 bytes
TRUNCATED_PLAINTEXT_HEX = "2f2f046da4303a3904133930000001fd17000d13200000000000000000000000"
TRUNCATED_CIPHERTEXT_HEX = "4cfa19a3c1af112ec6a37d6d8b86e571df08345500b15ce3fb6548305da834e7"


@pytest.fixture
def reference_key() -> bytes:
    """AES-128 key of the reference meter."""
    return bytes.fromhex(REFERENCE_KEY_HEX)


@pytest.fixture
def reference_telegram() -> bytes:
    """Reference telegram, 162 bytes, 144 bytes of ciphertext."""
    return bytes.fromhex(REFERENCE_TELEGRAM_HEX)


@pytest.fixture
def reference_plaintext() -> bytes:
    """Decrypted payload of the reference telegram."""
    return bytes.fromhex(REFERENCE_PLAINTEXT_HEX)


@pytest.fixture
def complete_telegram() -> bytes:
    """Telegram with current volume, history volume, backflow, status and date records."""
    return bytes.fromhex(REFERENCE_HEADER_HEX + COMPLETE_CIPHERTEXT_HEX)


@pytest.fixture
def complete_plaintext() -> bytes:
    return bytes.fromhex(COMPLETE_PLAINTEXT_HEX)


@pytest.fixture
def truncated_telegram() -> bytes:
    """Telegram whose last record declares more data than the payload holds."""
    return bytes.fromhex(REFERENCE_HEADER_HEX + TRUNCATED_CIPHERTEXT_HEX)


@pytest.fixture
def truncated_plaintext() -> bytes:
    return bytes.fromhex(TRUNCATED_PLAINTEXT_HEX)


class FakeCipher:
    """BlockCipher returning a fixed plaintext and recording its calls."""

    def __init__(self, plaintext: bytes) -> None:
        self.plaintext = plaintext
        self.calls: list[tuple[bytes, bytes, bytes]] = []

    def decrypt_cbc(self, key: bytes, iv: bytes, ciphertext: bytes) -> bytes:
        self.calls.append((key, iv, ciphertext))
        return self.plaintext


@pytest.fixture
def fake_cipher_factory() -> Any:
    """Create FakeCipher instances returning a given plaintext."""
    return FakeCipher


# Test markers for different test types
def pytest_configure(config: Any) -> None:
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test (fast, no real cipher)")
    config.addinivalue_line("markers", "integration: mark test as an integration test (full pipeline, real AES)")
