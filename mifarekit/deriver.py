"""AN10922 key diversification from a DESFire master key."""

from __future__ import annotations

from dataclasses import dataclass, field

from mifarekit.cipher import cmac, cmac_an10922, generate_cmac_subkeys
from mifarekit.keys import DESFireKey, KeyType

AN10922_FLAG_DEFAULT = 0x00
# Reproduce the earlier derivation that padded the input like a plain CMAC.
AN10922_FLAG_EMULATE_ISSUE_91 = 0x01

_DIV_AES128 = 0x01
_DIV_2K3DES_1 = 0x21
_DIV_2K3DES_2 = 0x22
_DIV_3K3DES_1 = 0x31
_DIV_3K3DES_2 = 0x32
_DIV_3K3DES_3 = 0x33

_MESSAGE_SIZE = 32

_KEY_DATA_LENGTHS = {
    KeyType.AES128: 16,
    KeyType.DES2K3: 16,
    KeyType.DES: 8,
    KeyType.DES3K3: 24,
}

# Master key block sizes accepted for each output key type.
_ALLOWED_BLOCK_SIZES = {
    KeyType.AES128: (16,),
    KeyType.DES2K3: (8, 16),
    KeyType.DES3K3: (8,),
}

_DIVERSIFIERS = {
    (16, KeyType.AES128): (_DIV_AES128,),
    # Not defined by AN10922, but a direct adaptation useful for Ultralight C keys.
    (16, KeyType.DES2K3): (_DIV_2K3DES_1,),
    (8, KeyType.DES2K3): (_DIV_2K3DES_1, _DIV_2K3DES_2),
    (8, KeyType.DES3K3): (_DIV_3K3DES_1, _DIV_3K3DES_2, _DIV_3K3DES_3),
}


@dataclass
class KeyDeriver:
    """Derives keys from a master key and diversification input, per AN10922."""

    master_key: DESFireKey
    output_key_type: KeyType
    flags: int = AN10922_FLAG_DEFAULT
    _m: bytearray = field(init=False, repr=False, default_factory=bytearray)
    _len: int = field(init=False, repr=False, default=0)

    def __post_init__(self) -> None:
        allowed = _ALLOWED_BLOCK_SIZES.get(self.output_key_type)
        if allowed is None:
            raise ValueError(f"cannot derive {self.output_key_type.value} keys")
        if self.master_key.block_size not in allowed:
            raise ValueError(
                f"a {self.master_key.type.value} master key cannot derive "
                f"{self.output_key_type.value} keys"
            )
        generate_cmac_subkeys(self.master_key)
        self.begin()

    def begin(self) -> None:
        """Start a new derivation, discarding earlier input and errors."""
        # Byte zero is kept for the diversification constant.
        self._m = bytearray(_MESSAGE_SIZE)
        self._len = 1

    def update_data(self, data: bytes) -> None:
        """Add diversification input; too much input fails until begin() is called."""
        if self._len == 0:
            raise OverflowError("diversification input overflowed earlier")
        data = bytes(data)
        if len(data) > self.master_key.block_size * 2 - self._len:
            self._len = 0
            raise OverflowError("diversification input is too long")
        self._m[self._len:self._len + len(data)] = data
        self._len += len(data)

    def update_cstr(self, text: str) -> None:
        self.update_data(text.encode("utf-8"))

    def update_aid(self, aid: bytes) -> None:
        """Add a three-byte DESFire application identifier."""
        aid = bytes(aid)
        if len(aid) != 3:
            raise ValueError(f"an application identifier is 3 bytes long, got {len(aid)}")
        self.update_data(aid)

    def _mac(self, constant: int) -> bytes:
        self._m[0] = constant
        message = bytes(self._m[:self._len])
        ivect = bytes(self.master_key.block_size)
        if self.flags & AN10922_FLAG_EMULATE_ISSUE_91:
            return cmac(self.master_key, ivect, message)
        return cmac_an10922(self.master_key, ivect, message)

    def end_raw(self, max_len: int | None = None) -> bytes:
        """Return the diversified key bytes, at most max_len of them."""
        if self._len == 0:
            raise OverflowError("diversification input overflowed earlier")
        length = _KEY_DATA_LENGTHS[self.output_key_type]
        constants = _DIVERSIFIERS.get((self.master_key.block_size, self.output_key_type))
        if constants is None:
            raise ValueError("AN10922 does not describe this derivation")
        data = b"".join(self._mac(constant) for constant in constants)
        data = (data + bytes(24))[:length]
        if max_len is None:
            return data
        if max_len < 0:
            raise ValueError("max_len must not be negative")
        return data[:max_len]

    def end(self) -> DESFireKey:
        """Return the diversified key, carrying the master key's version."""
        data = self.end_raw()
        kind = self.output_key_type
        if kind is KeyType.AES128:
            key = DESFireKey.from_aes(data, 0)
        elif kind is KeyType.DES:
            key = DESFireKey.from_des(data)
        elif kind is KeyType.DES2K3:
            key = DESFireKey.from_3des(data)
        else:
            key = DESFireKey.from_3k3des(data)
        key.version = self.master_key.version
        return key