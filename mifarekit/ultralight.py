"""MIFARE Ultralight and Ultralight C tags."""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field

from mifarekit.cipher import (
    Direction,
    Operation,
    cipher_blocks_chained,
    cipher_single_block,
    rol,
)
from mifarekit.device import NfcDevice, Target, TransportError, probe, raw_framing
from mifarekit.errors import TagError
from mifarekit.keys import DESFireKey, KeyType

PAGE_SIZE = 4
PAGE_COUNT = 0x10
C_PAGE_COUNT = 0x30
C_PAGE_COUNT_READ = 0x2C
MAX_PAGE_COUNT = 0x30

_READ = 0x30
_WRITE = 0xA2
_AUTHENTICATE = 0x1A
_ADDITIONAL_FRAME = 0xAF
_KEY_PAGE = 0x2C


def _taste(target: Target) -> bool:
    return target.is_iso14443a and target.sak == 0x00


def is_ultralightc_on_reader(device: NfcDevice, target: Target) -> bool:
    """Tell whether the tag answers the Ultralight C authentication command."""
    return probe(device, target, bytes([_AUTHENTICATE, 0x00]), 9)


def ultralight_taste(device: NfcDevice, target: Target) -> bool:
    return _taste(target) and not is_ultralightc_on_reader(device, target)


def ultralightc_taste(device: NfcDevice, target: Target) -> bool:
    return _taste(target) and is_ultralightc_on_reader(device, target)


def _empty_cache() -> list[bytes]:
    # Reads return four pages at a time, wrapping past the last page.
    return [bytes(PAGE_SIZE)] * (MAX_PAGE_COUNT + 3)


def _no_cached_pages() -> list[bool]:
    return [False] * MAX_PAGE_COUNT


@dataclass(eq=False)
class UltralightTag:
    """A MIFARE Ultralight or Ultralight C tag seen through a reader."""

    device: NfcDevice
    target: Target
    ultralight_c: bool = False
    active: bool = field(default=False, init=False)
    _cache: list[bytes] = field(init=False, repr=False, default_factory=_empty_cache)
    _cached: list[bool] = field(init=False, repr=False, default_factory=_no_cached_pages)

    @property
    def read_page_count(self) -> int:
        return C_PAGE_COUNT_READ if self.ultralight_c else PAGE_COUNT

    @property
    def write_page_count(self) -> int:
        return C_PAGE_COUNT if self.ultralight_c else PAGE_COUNT

    def _require_active(self) -> None:
        if not self.active:
            raise TagError("tag is not connected")

    @staticmethod
    def _check_page(page: int, limit: int) -> None:
        if not 0 <= page < limit:
            raise ValueError(f"page {page} is out of range (0..{limit - 1})")

    def connect(self) -> None:
        """Select the tag on its reader."""
        if self.active:
            raise TagError("tag is already connected")
        self.device.select_passive_target(self.target.uid)
        self.active = True
        self._cached = _no_cached_pages()

    def disconnect(self) -> None:
        self._require_active()
        self.device.deselect_target()
        self.active = False

    def read(self, page: int) -> bytes:
        """Return the four bytes of a page, reading four pages at once."""
        self._require_active()
        self._check_page(page, self.read_page_count)
        if not self._cached[page]:
            response = self.device.transceive(bytes([_READ, page]), 4 * PAGE_SIZE)
            response = bytes(response[:4 * PAGE_SIZE]).ljust(4 * PAGE_SIZE, b"\x00")
            for n in range(4):
                self._cache[page + n] = response[n * PAGE_SIZE:(n + 1) * PAGE_SIZE]
            count = self.read_page_count
            for i in range(count, page + 4):
                self._cache[i % count] = self._cache[i]
            for i in range(page, page + 4):
                self._cached[i % count] = True
        return self._cache[page]

    def write(self, page: int, data: bytes) -> None:
        """Write four bytes to a page."""
        self._require_active()
        self._check_page(page, self.write_page_count)
        data = bytes(data)
        if len(data) != PAGE_SIZE:
            raise ValueError(f"a page holds {PAGE_SIZE} bytes, got {len(data)}")
        self.device.transceive(bytes([_WRITE, page]) + data, 1)
        self._cached[page] = False

    def _transceive_raw(self, command: bytes, response_size: int) -> bytes:
        with raw_framing(self.device):
            response = bytes(self.device.transceive(command, response_size))
        if len(response) < response_size:
            raise TransportError("short answer from the tag")
        return response

    def authenticate(self, key: DESFireKey) -> None:
        """Run the Ultralight C three-pass authentication with key."""
        self._require_active()
        if key.block_size != 8:
            raise ValueError("Ultralight C authentication needs a DES-family key")

        response = self._transceive_raw(bytes([_AUTHENTICATE, 0x00]), 9)
        rnd_b, ivect = cipher_single_block(
            key, response[1:9], bytes(8), Direction.RECEIVE, Operation.DECIPHER
        )
        rnd_a = secrets.token_bytes(8)
        token, ivect = cipher_blocks_chained(
            key, ivect, rnd_a + rol(rnd_b), Direction.SEND, Operation.ENCIPHER
        )

        response = self._transceive_raw(bytes([_ADDITIONAL_FRAME]) + token, 9)
        rnd_a_rotated, _ = cipher_single_block(
            key, response[1:9], ivect, Direction.RECEIVE, Operation.DECIPHER
        )
        if rnd_a_rotated != rol(rnd_a):
            raise TagError("authentication failed")

    def set_key(self, key: DESFireKey) -> None:
        """Store a 2K3DES key in the key pages of an Ultralight C tag."""
        if key.type is not KeyType.DES2K3:
            raise ValueError("an Ultralight C key must be a 2K3DES key")
        data = bytes(key.data)
        chunks = (data[4:8], data[0:4], data[12:16], data[8:12])
        for offset, chunk in enumerate(chunks):
            self.write(_KEY_PAGE + offset, bytes(reversed(chunk)))