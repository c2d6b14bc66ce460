"""Status codes reported by MIFARE DESFire and NTAG21x tags, and tag exceptions."""

from __future__ import annotations

import enum

INVALID_ERROR_CODE = "Invalid error code"


class DESFireStatus(enum.IntEnum):
    """Status codes of a MIFARE DESFire PICC, plus the PCD-side crypto error."""

    OPERATION_OK = 0x00
    NO_CHANGES = 0x0C
    OUT_OF_EEPROM_ERROR = 0x0E
    ILLEGAL_COMMAND_CODE = 0x1C
    INTEGRITY_ERROR = 0x1E
    NO_SUCH_KEY = 0x40
    LENGTH_ERROR = 0x7E
    PERMISSION_ERROR = 0x9D
    PARAMETER_ERROR = 0x9E
    APPLICATION_NOT_FOUND = 0xA0
    APPL_INTEGRITY_ERROR = 0xA1
    AUTHENTICATION_ERROR = 0xAE
    ADDITIONAL_FRAME = 0xAF
    BOUNDARY_ERROR = 0xBE
    PICC_INTEGRITY_ERROR = 0xC1
    COMMAND_ABORTED = 0xCA
    PICC_DISABLED_ERROR = 0xCD
    COUNT_ERROR = 0xCE
    DUPLICATE_ERROR = 0xDE
    EEPROM_ERROR = 0xEE
    FILE_NOT_FOUND = 0xF0
    FILE_INTEGRITY_ERROR = 0xF1
    CRYPTO_ERROR = 0x01


class NTAGStatus(enum.IntEnum):
    """Error codes kept for NTAG21x tags."""

    OPERATION_OK = 0x00
    TAG_INFO_MISSING_ERROR = 0xBA
    UNKNOWN_TAG_TYPE_ERROR = 0xBB


class TagError(Exception):
    """An operation on a tag failed."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class CryptoError(TagError):
    """Secure messaging failed: a MAC, CMAC or CRC did not verify."""

    def __init__(self, message: str, code: int | None = DESFireStatus.CRYPTO_ERROR) -> None:
        super().__init__(message, code)


def _lookup(enum_type: type[enum.IntEnum], code: int) -> str:
    try:
        return enum_type(code).name
    except ValueError:
        return INVALID_ERROR_CODE


def desfire_error_lookup(code: int) -> str:
    """Return the name of a DESFire status code, or "Invalid error code"."""
    return _lookup(DESFireStatus, code)


def ntag21x_error_lookup(code: int) -> str:
    """Return the name of an NTAG21x error code, or "Invalid error code"."""
    return _lookup(NTAGStatus, code)