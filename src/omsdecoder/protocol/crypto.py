"""Payload decryption for OMS security mode 5 (AES-128-CBC with derived IV).

Classes:
    - BlockCipher: Protocol for the block cipher capability used by the decryptor
    - AESCipher: BlockCipher backed by pycryptodome
    - Decryptor: CBC decryption plus the 0x2F 0x2F verification check

The verification marker is the only integrity check available in mode 5. It
detects a wrong key or a wrong IV, it does not detect tampering.

Reference: OMS Specification Volume 2, section 9.2.4 (Security mode 5)
"""

from __future__ import annotations

import logging
from typing import Protocol

from Crypto.Cipher import AES

from ..exceptions import CiphertextMisalignedError, InvalidKeyError, VerificationFailedError
from .common import AES_BLOCK_SIZE, VERIFICATION_MARKER

logger = logging.getLogger(__name__)

AES_KEY_LENGTH = 16  # AES-128


class BlockCipher(Protocol):
    """Block cipher capability performing CBC decryption."""

    def decrypt_cbc(self, key: bytes, iv: bytes, ciphertext: bytes) -> bytes:
        """Decrypt ciphertext (length a multiple of 16) in CBC mode."""
        ...


class AESCipher:
    """AES-128-CBC decryption using pycryptodome."""

    def decrypt_cbc(self, key: bytes, iv: bytes, ciphertext: bytes) -> bytes:
        try:
            cipher = AES.new(key, AES.MODE_CBC, iv=iv)
        except ValueError as e:
            raise InvalidKeyError(f"Cannot set up AES-CBC cipher: {e}") from e

        return cipher.decrypt(ciphertext)


class Decryptor:
    """Decrypts and verifies the encrypted payload of a mode 5 telegram.

    Attributes:
        cipher: Block cipher capability, defaults to AESCipher
    """

    cipher: BlockCipher

    def __init__(self, cipher: BlockCipher | None = None) -> None:
        self.cipher = cipher if cipher is not None else AESCipher()

    def decrypt(self, key: bytes, iv: bytes, ciphertext: bytes) -> bytes:
        """Decrypt ciphertext without verifying the result.

        Args:
            key: 16 byte AES key
            iv: 16 byte initialization vector
            ciphertext: Encrypted bytes, length must be a multiple of 16

        Returns:
            Plaintext of the same length as ciphertext

        Raises:
            InvalidKeyError: If key is not 16 bytes
            CiphertextMisalignedError: If ciphertext is not block aligned
        """
        if len(key) != AES_KEY_LENGTH:
            raise InvalidKeyError(f"AES-128 key must be {AES_KEY_LENGTH} bytes, got {len(key)}")

        if len(ciphertext) % AES_BLOCK_SIZE != 0:
            raise CiphertextMisalignedError(
                f"Ciphertext length {len(ciphertext)} is not a multiple of {AES_BLOCK_SIZE}"
            )

        return self.cipher.decrypt_cbc(key, iv, ciphertext)

    def decrypt_and_verify(self, key: bytes, iv: bytes, ciphertext: bytes) -> bytes:
        """Decrypt ciphertext and check the verification marker.

        Returns:
            Verified plaintext, starting with 0x2F 0x2F

        Raises:
            InvalidKeyError: If key is not 16 bytes
            CiphertextMisalignedError: If ciphertext is not block aligned
            VerificationFailedError: If the plaintext does not start with 0x2F 0x2F
        """
        plaintext = self.decrypt(key, iv, ciphertext)

        if plaintext[: len(VERIFICATION_MARKER)] != VERIFICATION_MARKER:
            logger.debug("Decryption verification failed, expected 2F2F got %s", plaintext[:2].hex().upper())
            raise VerificationFailedError(
                f"Verification bytes 2F2F not found, got {plaintext[:2].hex().upper() or 'nothing'}"
            )

        logger.debug("Decryption verified, %d plaintext bytes", len(plaintext))
        return plaintext
