import pytest

from mifarekit.tlv import (
    tlv_append,
    tlv_decode,
    tlv_encode,
    tlv_record_length,
    tlv_records,
    tlv_sequence_length,
)

SHORT_DATA = b"elephant"
ESHORT_DATA = b"\x03\x08elephant\xfe"

LONG_DATA = (
    "Dans une terre grasse et pleine d'escargots\n"
    "Je veux creuser moi-même une fosse profonde,\n"
    "Où je puisse à loisir étaler mes vieux os\n"
    "Et dormir dans l'oubli comme un requin dans l'onde.\n"
    "Je hais les testaments et je hais les tombeaux;\n"
    "Plutôt que d'implorer une larme du monde,\n"
    "Vivant, j'aimerais mieux inviter les corbeaux\n"
    "À saigner tous les bouts de ma carcasse immonde.\n"
    "Ô vers! noirs compagnons sans oreille et sans yeux,\n"
    "Voyez venir à vous un mort libre et joyeux;\n"
    "Philosophes viveurs, fils de la pourriture,\n"
    "À travers ma ruine allez donc sans remords,\n"
    "Et dites-moi s'il est encor quelque torture\n"
    "Pour ce vieux corps sans âme et mort parmi les morts!\n"
).encode("utf-8")

ELONG_DATA = b"\x07\xff\x02\x94" + LONG_DATA + b"\xfe"


def test_long_data_sizes():
    assert tlv_record_length(ELONG_DATA) == 664
    assert tlv_sequence_length(ELONG_DATA) == 665
    assert len(tlv_decode(ELONG_DATA)[1]) == 660


def test_tlv_encode_short():
    res = tlv_encode(3, SHORT_DATA)
    assert len(res) == len(ESHORT_DATA)
    assert res[0] == 3
    assert res[1] == len(SHORT_DATA)
    assert res == ESHORT_DATA


def test_tlv_encode_long():
    res = tlv_encode(7, LONG_DATA)
    assert len(res) == len(ELONG_DATA)
    assert res[0] == 7
    assert res[1] == 0xFF
    assert res[2] == 0x02
    assert res[3] == 0x94
    assert res == ELONG_DATA


def test_tlv_decode_short():
    tlv_type, value = tlv_decode(ESHORT_DATA)
    assert tlv_type == 3
    assert len(value) == len(SHORT_DATA)
    assert value == SHORT_DATA


def test_tlv_decode_long():
    tlv_type, value = tlv_decode(ELONG_DATA)
    assert tlv_type == 7
    assert len(value) == len(LONG_DATA)
    assert value == LONG_DATA


def test_tlv_rfu():
    with pytest.raises(ValueError):
        tlv_encode(7, bytes(0xFFFF))


def test_tlv_append():
    ndef_ab_ref = bytes([0x03, 0x04, 0xDE, 0xAD, 0xBE, 0xEF, 0x03, 0x01, 0x42, 0xFE])
    ndef_a = tlv_encode(3, bytes([0xDE, 0xAD, 0xBE, 0xEF]))
    ndef_b = tlv_encode(3, bytes([0x42]))
    assert tlv_append(ndef_a, ndef_b) == ndef_ab_ref


def test_records_of_appended_sequence():
    stream = bytes([0x03, 0x04, 0xDE, 0xAD, 0xBE, 0xEF, 0x03, 0x01, 0x42, 0xFE])
    assert list(tlv_records(stream)) == [
        bytes([0x03, 0x04, 0xDE, 0xAD, 0xBE, 0xEF]),
        bytes([0x03, 0x01, 0x42]),
        bytes([0xFE]),
    ]
    assert tlv_sequence_length(stream) == len(stream)


def test_records_stop_at_terminator():
    stream = ESHORT_DATA + b"trailing garbage"
    assert tlv_sequence_length(stream) == len(ESHORT_DATA)


def test_null_and_terminator_records_have_no_length():
    assert tlv_record_length(b"\x00\x03") == 1
    assert tlv_record_length(b"\xfe") == 1
    assert list(tlv_records(b"\x00\x00\xfe")) == [b"\x00", b"\x00", b"\xfe"]


def test_record_length_matches_encoding():
    assert tlv_record_length(ESHORT_DATA) == len(ESHORT_DATA) - 1
    assert tlv_record_length(ELONG_DATA) == len(ELONG_DATA) - 1


@pytest.mark.parametrize("size", [0, 1, 254, 255, 1000])
def test_round_trip(size):
    value = bytes(i % 251 for i in range(size))
    encoded = tlv_encode(0x03, value)
    assert tlv_decode(encoded) == (0x03, value)
    assert tlv_sequence_length(encoded) == len(encoded)


def test_truncated_stream_rejected():
    with pytest.raises(ValueError):
        tlv_decode(b"\x03\x08elep")
    with pytest.raises(ValueError):
        tlv_sequence_length(b"\x03\x01\x42")


def test_invalid_type_rejected():
    with pytest.raises(ValueError):
        tlv_encode(0x100, b"x")