"""NTAG213, NTAG215 and NTAG216 tags."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from mifarekit.device import NfcDevice, Target, TransportError, probe, raw_framing
from mifarekit.errors import NTAGStatus, TagError

PAGE_SIZE = 4

_GET_VERSION = 0x60
_READ = 0x30
_FAST_READ = 0x3A
_READ_CNT = 0x39
_READ_SIG = 0x3C
_WRITE = 0xA2
_COMPATIBILITY_WRITE = 0xA0
_PWD_AUTH = 0x1B

_SIGNATURE_SIZE = 32
_COUNTER_SIZE = 3
_VERSION_SIZE = 8
_AUTH_LIMIT_MASK = 0x07


class NTAGSubtype(enum.Enum):
    UNKNOWN = "unknown"
    NTAG_213 = "NTAG213"
    NTAG_215 = "NTAG215"
    NTAG_216 = "NTAG216"


_SUBTYPES_BY_STORAGE = {
    0x0F: NTAGSubtype.NTAG_213,
    0x11: NTAGSubtype.NTAG_215,
    0x13: NTAGSubtype.NTAG_216,
}

_LAST_PAGES = {
    NTAGSubtype.NTAG_213: 0x2C,
    NTAGSubtype.NTAG_215: 0x86,
    NTAGSubtype.NTAG_216: 0xE6,
}


@dataclass(frozen=True)
class NTAG21xKey:
    """A 4-byte password and the 2-byte acknowledge the tag answers with."""

    data: bytes = field(repr=False)
    pack: bytes = field(repr=False)

    def __post_init__(self) -> None:
        data = bytes(self.data)
        pack = bytes(self.pack)
        if len(data) != 4:
            raise ValueError(f"an NTAG21x password is 4 bytes long, got {len(data)}")
        if len(pack) != 2:
            raise ValueError(f"an NTAG21x acknowledge is 2 bytes long, got {len(pack)}")
        object.__setattr__(self, "data", data)
        object.__setattr__(self, "pack", pack)


def ntag21x_is_auth_supported(device: NfcDevice, target: Target) -> bool:
    """Tell whether the tag answers the GET_VERSION command."""
    return probe(device, target, bytes([_GET_VERSION]), _VERSION_SIZE)


def ntag21x_taste(device: NfcDevice, target: Target) -> bool:
    return (
        target.is_iso14443a
        and target.sak == 0x00
        and ntag21x_is_auth_supported(device, target)
    )


def _check_byte(value: int) -> int:
    if not 0 <= value <= 0xFF:
        raise ValueError(f"value must fit in one byte, got {value}")
    return value


@dataclass(eq=False)
class NTAG21xTag:
    """An NTAG21x tag seen through a reader."""

    device: NfcDevice
    target: Target
    subtype: NTAGSubtype = NTAGSubtype.UNKNOWN
    vendor_id: int = 0x00
    product_type: int = 0x00
    product_subtype: int = 0x00
    major_product_version: int = 0x00
    minor_product_version: int = 0x00
    storage_size: int = 0x00
    protocol_type: int = 0x00
    last_error: int = NTAGStatus.OPERATION_OK
    active: bool = field(default=False, init=False)

    @classmethod
    def from_tag(cls, tag: NTAG21xTag) -> NTAG21xTag:
        """A new, inactive tag carrying the reader, target and info of tag."""
        return cls(
            device=tag.device,
            target=tag.target,
            subtype=tag.subtype,
            vendor_id=tag.vendor_id,
            product_type=tag.product_type,
            product_subtype=tag.product_subtype,
            major_product_version=tag.major_product_version,
            minor_product_version=tag.minor_product_version,
            storage_size=tag.storage_size,
            protocol_type=tag.protocol_type,
            last_error=tag.last_error,
        )

    def _require_active(self) -> None:
        if not self.active:
            raise TagError("tag is not connected")

    def _check_page(self, page: int, writing: bool) -> None:
        last = _LAST_PAGES.get(self.subtype)
        if last is None:
            raise ValueError("tag subtype is unknown; call get_info() first")
        low = 3 if writing else 0
        if not low <= page <= last:
            raise ValueError(f"page {page} is out of range ({low}..{last})")

    def _transceive(self, command: bytes, response_size: int) -> bytes:
        response = bytes(self.device.transceive(command, response_size))
        if len(response) < response_size:
            raise TransportError("short answer from the tag")
        return response[:response_size]

    def _transceive_raw(self, command: bytes, response_size: int) -> bytes:
        with raw_framing(self.device):
            return self._transceive(command, response_size)

    def connect(self) -> None:
        """Select the tag on its reader."""
        if self.active:
            raise TagError("tag is already connected")
        self.device.select_passive_target(self.target.uid)
        self.active = True

    def disconnect(self) -> None:
        self._require_active()
        self.device.deselect_target()
        self.active = False

    def get_info(self) -> None:
        """Read the version information and work out the tag subtype."""
        self._require_active()
        res = self._transceive_raw(bytes([_GET_VERSION]), _VERSION_SIZE)
        self.vendor_id = res[1]
        self.product_type = res[2]
        self.product_subtype = res[3]
        self.major_product_version = res[4]
        self.minor_product_version = res[5]
        self.storage_size = res[6]
        self.protocol_type = res[7]
        subtype = _SUBTYPES_BY_STORAGE.get(self.storage_size)
        if subtype is None:
            self.last_error = NTAGStatus.UNKNOWN_TAG_TYPE_ERROR
            raise TagError(
                f"unknown storage size 0x{self.storage_size:02x}",
                NTAGStatus.UNKNOWN_TAG_TYPE_ERROR,
            )
        self.subtype = subtype

    def last_page(self) -> int:
        """Number of the last page of the tag's memory."""
        last = _LAST_PAGES.get(self.subtype)
        if last is None:
            self.last_error = NTAGStatus.TAG_INFO_MISSING_ERROR
            raise TagError(
                "tag information is missing; call get_info() first",
                NTAGStatus.TAG_INFO_MISSING_ERROR,
            )
        return last

    def read_signature(self) -> bytes:
        """Return the 32-byte originality signature."""
        self._require_active()
        return self._transceive_raw(bytes([_READ_SIG, 0x00]), _SIGNATURE_SIZE)

    def set_pwd(self, data: bytes) -> None:
        """Write the 4-byte password, kept on the page before the last."""
        page = self.last_page() - 1
        self.write(page, data)

    def set_pack(self, data: bytes) -> None:
        """Write the 2-byte password acknowledge, kept on the last page."""
        data = bytes(data)
        page = self.last_page()
        if len(data) != 2:
            raise ValueError(f"an acknowledge is 2 bytes long, got {len(data)}")
        self.write(page, data + b"\x00\x00")

    def set_key(self, key: NTAG21xKey) -> None:
        self.set_pwd(key.data)
        self.set_pack(key.pack)

    def _config_page(self, back: int) -> tuple[int, bytearray]:
        page = self.last_page() - back
        return page, bytearray(self.read4(page))

    def set_auth(self, byte: int) -> None:
        """Set AUTH0, the first page protected by the password."""
        _check_byte(byte)
        page, cdata = self._config_page(3)
        cdata[3] = byte
        self.write(page, bytes(cdata))

    def get_auth(self) -> int:
        _, cdata = self._config_page(3)
        return cdata[3]

    def access_enable(self, byte: int) -> None:
        """Set the given bits of the ACCESS byte."""
        _check_byte(byte)
        page, cdata = self._config_page(2)
        cdata[0] |= byte
        self.write(page, bytes(cdata))

    def access_disable(self, byte: int) -> None:
        """Clear the given bits of the ACCESS byte."""
        _check_byte(byte)
        page, cdata = self._config_page(2)
        cdata[0] &= ~byte & 0xFF
        self.write(page, bytes(cdata))

    def get_access(self) -> int:
        _, cdata = self._config_page(2)
        return cdata[0]

    def check_access(self, byte: int) -> bool:
        """Tell whether any of the given bits is set in the ACCESS byte."""
        return (self.get_access() & byte) > 0

    def get_authentication_limit(self) -> int:
        _, cdata = self._config_page(2)
        return cdata[0] & _AUTH_LIMIT_MASK

    def set_authentication_limit(self, byte: int) -> None:
        """Set the number of failed attempts allowed: 0 disables, 1..7 are valid."""
        if not 0 <= byte <= _AUTH_LIMIT_MASK:
            raise ValueError(f"authentication limit must be 0..7, got {byte}")
        page, cdata = self._config_page(2)
        cdata[0] = (cdata[0] & 0xF8) | byte
        self.write(page, bytes(cdata))

    def read(self, page: int) -> bytes:
        """Return 16 bytes: the given page and the three after it."""
        self._require_active()
        self._check_page(page, writing=False)
        return self._transceive(bytes([_READ, page]), 4 * PAGE_SIZE)

    def read4(self, page: int) -> bytes:
        return self.read(page)[:PAGE_SIZE]

    def fast_read(self, start_page: int, end_page: int) -> bytes:
        """Return the pages from start_page to end_page, both included."""
        self._require_active()
        self._check_page(start_page, writing=False)
        self._check_page(end_page, writing=False)
        if end_page < start_page:
            raise ValueError("end page comes before start page")
        size = PAGE_SIZE * (end_page - start_page + 1)
        return self._transceive_raw(bytes([_FAST_READ, start_page, end_page]), size)

    def fast_read4(self, page: int) -> bytes:
        return self.fast_read(page, page)

    def read_cnt(self) -> bytes:
        """Return the 3-byte NFC counter."""
        self._require_active()
        return self._transceive_raw(bytes([_READ_CNT, 0x02]), _COUNTER_SIZE)

    def _checked_page_data(self, page: int, data: bytes) -> bytes:
        self._require_active()
        self._check_page(page, writing=True)
        data = bytes(data)
        if len(data) != PAGE_SIZE:
            raise ValueError(f"a page holds {PAGE_SIZE} bytes, got {len(data)}")
        return data

    def write(self, page: int, data: bytes) -> None:
        """Write four bytes to a page."""
        data = self._checked_page_data(page, data)
        self.device.transceive(bytes([_WRITE, page]) + data, 1)

    def compatibility_write(self, page: int, data: bytes) -> None:
        """Write four bytes with the 16-byte MIFARE Classic style command."""
        data = self._checked_page_data(page, data)
        self.device.transceive(bytes([_COMPATIBILITY_WRITE, page]) + data + bytes(12), 1)

    def authenticate(self, key: NTAG21xKey) -> None:
        """Present the password; the tag must answer with the expected acknowledge."""
        self._require_active()
        response = self._transceive_raw(bytes([_PWD_AUTH]) + key.data, 2)
        if response != key.pack:
            raise TagError("authentication failed")