"""MIFARE DESFire keys: DES, 2K3DES, 3K3DES and AES-128."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


class KeyType(enum.Enum):
    DES = "DES"
    DES2K3 = "2K3DES"
    DES3K3 = "3K3DES"
    AES128 = "AES128"


_BLOCK_SIZES = {
    KeyType.DES: 8,
    KeyType.DES2K3: 8,
    KeyType.DES3K3: 8,
    KeyType.AES128: 16,
}

_MAC_LENGTH = 4
_CMAC_LENGTH = 8

_MAC_LENGTHS = {
    KeyType.DES: _MAC_LENGTH,
    KeyType.DES2K3: _MAC_LENGTH,
    KeyType.DES3K3: _CMAC_LENGTH,
    KeyType.AES128: _CMAC_LENGTH,
}


def _as_bytes(value: bytes, length: int) -> bytearray:
    data = bytearray(value)
    if len(data) != length:
        raise ValueError(f"key value must be {length} bytes long, got {len(data)}")
    return data


def _check_byte(value: int) -> int:
    if not 0 <= value <= 0xFF:
        raise ValueError(f"key version must fit in one byte, got {value}")
    return value


@dataclass
class DESFireKey:
    """A DESFire key; DES keys hold their 8-byte value twice, as 2K3DES does."""

    type: KeyType
    data: bytearray = field(repr=False)
    aes_version: int = 0
    cmac_sk1: bytes = field(default=b"", repr=False)
    cmac_sk2: bytes = field(default=b"", repr=False)

    @classmethod
    def from_des(cls, value: bytes) -> DESFireKey:
        """DES key with its version (parity) bits cleared."""
        data = _as_bytes(value, 8)
        return cls.from_des_with_version(bytes(b & 0xFE for b in data))

    @classmethod
    def from_des_with_version(cls, value: bytes) -> DESFireKey:
        data = _as_bytes(value, 8)
        return cls(KeyType.DES, data + data)

    @classmethod
    def from_3des(cls, value: bytes) -> DESFireKey:
        """2K3DES key with version bits cleared and second-half parity bits set."""
        data = _as_bytes(value, 16)
        cleared = bytes(b & 0xFE for b in data[:8]) + bytes(b | 0x01 for b in data[8:])
        return cls.from_3des_with_version(cleared)

    @classmethod
    def from_3des_with_version(cls, value: bytes) -> DESFireKey:
        return cls(KeyType.DES2K3, _as_bytes(value, 16))

    @classmethod
    def from_3k3des(cls, value: bytes) -> DESFireKey:
        data = _as_bytes(value, 24)
        return cls.from_3k3des_with_version(bytes(b & 0xFE for b in data[:8]) + bytes(data[8:]))

    @classmethod
    def from_3k3des_with_version(cls, value: bytes) -> DESFireKey:
        return cls(KeyType.DES3K3, _as_bytes(value, 24))

    @classmethod
    def from_aes(cls, value: bytes, version: int = 0) -> DESFireKey:
        return cls(KeyType.AES128, _as_bytes(value, 16), _check_byte(version))

    @property
    def version(self) -> int:
        """Key version: kept apart for AES, held in the parity bits otherwise."""
        if self.type is KeyType.AES128:
            return self.aes_version
        result = 0
        for n, byte in enumerate(self.data[:8]):
            result |= (byte & 1) << (7 - n)
        return result

    @version.setter
    def version(self, version: int) -> None:
        _check_byte(version)
        if self.type is KeyType.AES128:
            self.aes_version = version
            return
        for n in range(8):
            bit = (version >> (7 - n)) & 1
            self.data[n] = (self.data[n] & 0xFE) | bit
            if self.type is KeyType.DES:
                # The card treats a DES key as a 2K3DES key with identical halves.
                self.data[n + 8] = self.data[n]
            elif self.type is KeyType.DES2K3:
                # Keep the halves' parity distinct so the card never sees plain DES.
                self.data[n + 8] = (self.data[n + 8] & 0xFE) | (bit ^ 1)

    @property
    def block_size(self) -> int:
        return _BLOCK_SIZES[self.type]

    @property
    def mac_length(self) -> int:
        """Size of the MAC produced with this key."""
        return _MAC_LENGTHS[self.type]


def session_key_new(rnda: bytes, rndb: bytes, authentication_key: DESFireKey) -> DESFireKey:
    """Build the session key from both random numbers of an authentication."""
    a = bytes(rnda)
    b = bytes(rndb)
    kind = authentication_key.type
    if kind is KeyType.DES:
        return DESFireKey.from_des_with_version(a[:4] + b[:4])
    if kind is KeyType.DES2K3:
        return DESFireKey.from_3des_with_version(a[:4] + b[:4] + a[4:8] + b[4:8])
    if kind is KeyType.DES3K3:
        return DESFireKey.from_3k3des(a[:4] + b[:4] + a[6:10] + b[6:10] + a[12:16] + b[12:16])
    return DESFireKey.from_aes(a[:4] + b[:4] + a[12:16] + b[12:16])