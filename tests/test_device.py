import pytest

from mifarekit.device import FELICA, Target, TransportError, probe, raw_framing
from mifarekit.errors import TagError


class FakeReader:
    def __init__(self, answer=True, fail_select=False):
        self.answer = answer
        self.fail_select = fail_select
        self.easy_framing = True
        self.selected = None
        self.log = []
        self.deselected = 0

    def select_passive_target(self, uid):
        if self.fail_select:
            raise TransportError("no target")
        self.selected = uid
        return Target(uid)

    def deselect_target(self):
        self.selected = None
        self.deselected += 1

    def set_easy_framing(self, enabled):
        self.easy_framing = enabled

    def transceive(self, command, max_response):
        self.log.append((bytes(command), self.easy_framing, max_response))
        if not self.answer:
            raise TransportError("timeout")
        return bytes(max_response)


UID = bytes([0x04, 0x10, 0x20, 0x30, 0x40, 0x50, 0x60])


def test_target_modulation():
    assert Target(UID).is_iso14443a is True
    assert Target(UID, modulation=FELICA).is_iso14443a is False
    assert Target(UID).sak == 0x00


def test_raw_framing_switches_framing_off_and_back_on():
    reader = FakeReader()
    with raw_framing(reader) as device:
        assert device is reader
        assert reader.easy_framing is False
    assert reader.easy_framing is True


def test_raw_framing_restores_on_error():
    reader = FakeReader(answer=False)
    with pytest.raises(TagError):
        with raw_framing(reader):
            reader.transceive(b"\x60", 8)
    assert reader.easy_framing is True
    assert reader.log == [(b"\x60", False, 8)]


def test_probe_answered():
    reader = FakeReader()
    assert probe(reader, Target(UID), b"\x1a\x00", 9) is True
    assert reader.log == [(b"\x1a\x00", False, 9)]
    assert reader.easy_framing is True
    assert reader.selected is None
    assert reader.deselected == 1


def test_probe_not_answered():
    reader = FakeReader(answer=False)
    assert probe(reader, Target(UID), b"\x60", 8) is False
    assert reader.easy_framing is True
    assert reader.deselected == 1


def test_probe_ignores_select_failure():
    reader = FakeReader(fail_select=True)
    assert probe(reader, Target(UID), b"\x60", 8) is True
    assert len(reader.log) == 1