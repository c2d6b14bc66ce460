"""TLV (type, length, value) records as stored on NFC Forum tags."""

from __future__ import annotations

from collections.abc import Iterator

TLV_NULL = 0x00
TLV_TERMINATOR = 0xFE
_RFU_SIZE = 0xFFFF


def _field_sizes(stream: bytes, offset: int = 0) -> tuple[int, int]:
    """Return the sizes of the length and value fields of the record at offset."""
    if offset >= len(stream):
        raise ValueError("truncated TLV stream: missing type field")
    if stream[offset] in (TLV_NULL, TLV_TERMINATOR):
        return 0, 0
    if offset + 1 >= len(stream):
        raise ValueError("truncated TLV stream: missing length field")
    if stream[offset + 1] == 0xFF:
        if offset + 4 > len(stream):
            raise ValueError("truncated TLV stream: incomplete length field")
        return 3, int.from_bytes(stream[offset + 2:offset + 4], "big")
    return 1, stream[offset + 1]


def tlv_encode(tlv_type: int, data: bytes) -> bytes:
    """Encode data as one TLV record followed by a terminator."""
    if not 0 <= tlv_type <= 0xFF:
        raise ValueError(f"TLV type must fit in one byte, got {tlv_type}")
    size = len(data)
    if size >= _RFU_SIZE:
        raise ValueError("TLV value length 0xFFFF is reserved for future use")
    if size > 254:
        length = bytes([0xFF]) + size.to_bytes(2, "big")
    else:
        length = bytes([size])
    return bytes([tlv_type]) + length + bytes(data) + bytes([TLV_TERMINATOR])


def tlv_decode(stream: bytes) -> tuple[int, bytes]:
    """Decode the first record of stream into its type and value."""
    fls, fvs = _field_sizes(stream)
    start = 1 + fls
    if start + fvs > len(stream):
        raise ValueError("truncated TLV stream: value shorter than announced")
    return stream[0], bytes(stream[start:start + fvs])


def tlv_record_length(stream: bytes) -> int:
    """Full length of the first record of stream."""
    fls, fvs = _field_sizes(stream)
    return 1 + fls + fvs


def tlv_records(stream: bytes) -> Iterator[bytes]:
    """Yield each record of a sequence, the terminator included."""
    data = bytes(stream)
    offset = 0
    while True:
        fls, fvs = _field_sizes(data, offset)
        end = offset + 1 + fls + fvs
        if end > len(data):
            raise ValueError("truncated TLV stream: value shorter than announced")
        yield data[offset:end]
        if data[offset] == TLV_TERMINATOR:
            return
        offset = end


def tlv_sequence_length(stream: bytes) -> int:
    """Full length of a TLV sequence up to and including its terminator."""
    return sum(len(record) for record in tlv_records(stream))


def tlv_append(a: bytes, b: bytes) -> bytes:
    """Join two TLV sequences, dropping the terminator of the first."""
    a_size = tlv_sequence_length(a)
    b_size = tlv_sequence_length(b)
    return bytes(a[:a_size - 1]) + bytes(b[:b_size])