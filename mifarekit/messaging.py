"""Secure messaging for MIFARE DESFire: MACing, CMACing and enciphering frames."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from mifarekit.cipher import (
    MAX_CRYPTO_BLOCK_SIZE,
    Direction,
    Operation,
    cipher_blocks_chained,
    desfire_crc32,
    iso14443a_crc,
    padded_data_length,
)
from mifarekit.cipher import cmac as compute_cmac
from mifarekit.errors import CryptoError, DESFireStatus
from mifarekit.keys import DESFireKey

_LEGACY_MAC_LENGTH = 4
_CMAC_LENGTH = 8


class CommunicationSettings(enum.IntFlag):
    """Communication mode (low nibble) combined with processing flags."""

    PLAIN = 0x0000
    MACED = 0x0001
    ENCIPHERED = 0x0003
    MODE_MASK = 0x000F
    # Data sent to the PICC updates the CMAC.
    CMAC_COMMAND = 0x0010
    # Data received from the PICC is checked against its CMAC.
    CMAC_VERIFY = 0x0020
    # MAC the command (legacy authentication).
    MAC_COMMAND = 0x0100
    # The response carries a MAC to verify (legacy authentication).
    MAC_VERIFY = 0x0200
    ENC_COMMAND = 0x1000
    NO_CRC = 0x2000


class AuthenticationScheme(enum.Enum):
    LEGACY = "legacy"
    NEW = "new"


_PLAIN = int(CommunicationSettings.PLAIN)
_MACED = int(CommunicationSettings.MACED)
_ENCIPHERED = int(CommunicationSettings.ENCIPHERED)


@dataclass
class SecureSession:
    """Cryptographic state shared with an authenticated DESFire PICC."""

    session_key: DESFireKey | None = None
    authentication_scheme: AuthenticationScheme = AuthenticationScheme.LEGACY
    ivect: bytes = bytes(MAX_CRYPTO_BLOCK_SIZE)
    cmac: bytes = bytes(16)
    last_pcd_error: int = DESFireStatus.OPERATION_OK

    @property
    def _legacy(self) -> bool:
        return self.authentication_scheme is AuthenticationScheme.LEGACY

    def _fail(self, message: str) -> None:
        self.last_pcd_error = DESFireStatus.CRYPTO_ERROR
        raise CryptoError(message)

    def _require_key(self) -> DESFireKey:
        if self.session_key is None:
            raise ValueError("no session key: the session is not authenticated")
        return self.session_key

    def _update_cmac(self, key: DESFireKey, data: bytes) -> None:
        mac = compute_cmac(key, self.ivect, data)
        self.ivect = mac + self.ivect[len(mac):]
        self.cmac = mac + self.cmac[len(mac):]

    def enciphered_data_length(self, nbytes: int, communication_settings: int) -> int:
        """Buffer size needed to encipher nbytes of data and its CRC."""
        settings = int(communication_settings)
        crc_length = 0
        if not settings & CommunicationSettings.NO_CRC:
            crc_length = 2 if self._legacy else 4
        block_size = self.session_key.block_size if self.session_key else 1
        return padded_data_length(nbytes + crc_length, block_size)

    def cipher_blocks(self, data: bytes, direction: Direction, operation: Operation) -> bytes:
        """CBC-process data with the session key and vector.

        Legacy sessions restart from a zero vector every time; new ones chain.
        """
        key = self._require_key()
        if self._legacy:
            self.ivect = bytes(MAX_CRYPTO_BLOCK_SIZE)
        output, self.ivect = cipher_blocks_chained(key, self.ivect, data, direction, operation)
        return output

    def preprocess(
        self,
        data: bytes,
        offset: int = 0,
        communication_settings: int = CommunicationSettings.PLAIN,
    ) -> bytes:
        """Secure a command frame; bytes before offset are left in clear."""
        data = bytes(data)
        key = self.session_key
        if key is None:
            return data
        if not 0 <= offset <= len(data):
            raise ValueError(f"offset {offset} is outside the {len(data)}-byte frame")
        settings = int(communication_settings)
        mode = settings & CommunicationSettings.MODE_MASK

        if mode in (_PLAIN, _MACED):
            if mode == _PLAIN and self._legacy:
                return data
            append_mac = mode == _MACED
            if self._legacy:
                if not settings & CommunicationSettings.MAC_COMMAND:
                    return data
                edl = padded_data_length(len(data) - offset, key.block_size) + offset
                buffer = data + bytes(edl - len(data))
                enciphered = self.cipher_blocks(
                    buffer[offset:], Direction.SEND, Operation.ENCIPHER
                )
                mac = (buffer[:offset] + enciphered)[edl - 8:edl - 8 + _LEGACY_MAC_LENGTH]
                return data + mac
            if not settings & CommunicationSettings.CMAC_COMMAND:
                return data
            self._update_cmac(key, data)
            if append_mac:
                return data + self.cmac[:_CMAC_LENGTH]
            return data

        if mode == _ENCIPHERED:
            if not settings & CommunicationSettings.ENC_COMMAND:
                return data
            edl = self.enciphered_data_length(len(data) - offset, settings) + offset
            buffer = bytearray(data)
            if not settings & CommunicationSettings.NO_CRC:
                if self._legacy:
                    buffer += iso14443a_crc(data[offset:])
                else:
                    buffer += desfire_crc32(data)
            buffer += bytes(edl - len(buffer))
            operation = Operation.DECIPHER if self._legacy else Operation.ENCIPHER
            output = self.cipher_blocks(bytes(buffer[offset:]), Direction.SEND, operation)
            return bytes(buffer[:offset]) + output

        self._fail("Unknown communication settings")
        raise AssertionError("unreachable")

    def postprocess(
        self,
        data: bytes,
        communication_settings: int = CommunicationSettings.PLAIN,
    ) -> bytes:
        """Check and strip a response frame ending with its status byte.

        The result is the payload followed by the status byte.
        """
        data = bytes(data)
        key = self.session_key
        if key is None or len(data) == 1:
            return data
        settings = int(communication_settings)
        mode = settings & CommunicationSettings.MODE_MASK

        if mode in (_PLAIN, _MACED):
            if mode == _PLAIN and self._legacy:
                return data
            if self._legacy:
                return self._verify_mac(key, data, settings)
            return self._verify_cmac(key, data, settings)
        if mode == _ENCIPHERED:
            return self._decipher_response(key, data)

        self._fail("Unknown communication settings")
        raise AssertionError("unreachable")

    def _verify_mac(self, key: DESFireKey, data: bytes, settings: int) -> bytes:
        if not settings & CommunicationSettings.MAC_VERIFY:
            return data
        remaining = len(data) - key.mac_length
        if remaining <= 0:
            self._fail("No room for MAC")
        payload = data[:remaining - 1]
        edl = self.enciphered_data_length(len(payload), settings)
        enciphered = self.cipher_blocks(
            payload + bytes(edl - len(payload)), Direction.SEND, Operation.ENCIPHER
        )
        received = data[remaining - 1:remaining - 1 + _LEGACY_MAC_LENGTH]
        if received != enciphered[edl - 8:edl - 8 + _LEGACY_MAC_LENGTH]:
            self._fail("MACing not verified")
        return payload + data[-1:]

    def _verify_cmac(self, key: DESFireKey, data: bytes, settings: int) -> bytes:
        if not settings & CommunicationSettings.CMAC_COMMAND:
            return data
        if not settings & CommunicationSettings.CMAC_VERIFY:
            self._update_cmac(key, data)
            return data
        if len(data) < _CMAC_LENGTH + 1:
            self._fail("No room for CMAC")
        # The CMAC covers the payload followed by the status byte.
        message = data[:-(_CMAC_LENGTH + 1)] + data[-1:]
        self._update_cmac(key, message)
        if self.cmac[:_CMAC_LENGTH] != data[-(_CMAC_LENGTH + 1):-1]:
            self._fail("CMAC not verified")
        return message

    def _decipher_response(self, key: DESFireKey, data: bytes) -> bytes:
        body = data[:-1]
        if len(body) % key.block_size:
            self._fail("Enciphered response is not a whole number of blocks")
        plain = bytearray(self.cipher_blocks(body, Direction.RECEIVE, Operation.DECIPHER))
        nbytes = len(plain)
        legacy = self._legacy

        if legacy:
            # The CRC may span the last two blocks.
            crc_pos = max(nbytes - 8 - 1, 0)
        else:
            # The CRC covers the status byte too: slide it in before the CRC.
            crc_pos = max(nbytes - 16 - 3, 0)
            plain.insert(crc_pos, 0x00)
            crc_pos += 1
            nbytes += 1

        while True:
            if legacy:
                end = crc_pos + 2
                crc = iso14443a_crc(plain[:end])
            else:
                end = crc_pos + 4
                crc = desfire_crc32(plain[:end])
            verified = not any(crc) and all(
                byte == 0x00 or (byte == 0x80 and n == end)
                for n, byte in enumerate(plain[end:nbytes - 1], start=end)
            )
            if verified:
                if legacy:
                    return bytes(plain[:crc_pos]) + b"\x00"
                return bytes(plain[:crc_pos])
            if not legacy and crc_pos < len(plain):
                plain[crc_pos - 1], plain[crc_pos] = plain[crc_pos], plain[crc_pos - 1]
            crc_pos += 1
            if end >= nbytes:
                break

        self._fail("CRC not verified in deciphered stream")
        raise AssertionError("unreachable")