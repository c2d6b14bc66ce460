"""The reader interface the tag drivers talk through, and helpers around it."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager, suppress
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from mifarekit.errors import TagError

ISO14443A = "iso14443a"
FELICA = "felica"

# Default timeout (ms) for tag operations.
DEFAULT_TIMEOUT_MS = 2000


class TransportError(TagError):
    """Communication with the reader or the tag failed."""


@dataclass(frozen=True)
class Target:
    """A tag found in the field of a reader."""

    uid: bytes
    sak: int = 0x00
    modulation: str = ISO14443A

    @property
    def is_iso14443a(self) -> bool:
        return self.modulation == ISO14443A


@runtime_checkable
class NfcDevice(Protocol):
    """What a reader offers to the tag drivers.

    Every method raises TransportError when the reader or the tag fails.
    """

    def select_passive_target(self, uid: bytes) -> Target:
        """Select the ISO14443A target with this UID at 106 kbps."""

    def deselect_target(self) -> None:
        """Release the selected target."""

    def set_easy_framing(self, enabled: bool) -> None:
        """Switch the reader's automatic framing of commands on or off."""

    def transceive(self, command: bytes, max_response: int) -> bytes:
        """Send command and return at most max_response bytes of the answer."""


@contextmanager
def raw_framing(device: NfcDevice) -> Iterator[NfcDevice]:
    """Run the body with easy framing off, switching it back on afterwards."""
    device.set_easy_framing(False)
    try:
        yield device
    except BaseException:
        with suppress(TransportError):
            device.set_easy_framing(True)
        raise
    device.set_easy_framing(True)


def probe(device: NfcDevice, target: Target, command: bytes, response_size: int) -> bool:
    """Select target, send a raw command and tell whether the tag answered."""
    with suppress(TransportError):
        device.select_passive_target(target.uid)
    with suppress(TransportError):
        device.set_easy_framing(False)
    try:
        device.transceive(bytes(command), response_size)
        answered = True
    except TransportError:
        answered = False
    with suppress(TransportError):
        device.set_easy_framing(True)
    with suppress(TransportError):
        device.deselect_target()
    return answered