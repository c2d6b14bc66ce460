"""Block ciphering, CBC chaining, CMAC and CRCs used by MIFARE DESFire tags."""

from __future__ import annotations

import enum
import zlib

from Crypto.Cipher import AES, DES

from mifarekit.keys import DESFireKey, KeyType

MAX_CRYPTO_BLOCK_SIZE = 16


class Direction(enum.Enum):
    """Which way data travels; decides how the chaining vector is applied."""

    SEND = "send"
    RECEIVE = "receive"


class Operation(enum.Enum):
    ENCIPHER = "encipher"
    DECIPHER = "decipher"


def _xor(a: bytes, b: bytes) -> bytes:
    return bytes(x ^ y for x, y in zip(a, b))


def rol(data: bytes) -> bytes:
    """Rotate data one byte to the left."""
    data = bytes(data)
    return data[1:] + data[:1]


def lsl(data: bytes) -> bytes:
    """Shift data one bit to the left, dropping the top bit."""
    data = bytes(data)
    if not data:
        return data
    value = (int.from_bytes(data, "big") << 1) & ((1 << (8 * len(data))) - 1)
    return value.to_bytes(len(data), "big")


def _des(subkey: bytes, block: bytes, encrypt: bool) -> bytes:
    engine = DES.new(bytes(subkey), DES.MODE_ECB)
    return engine.encrypt(block) if encrypt else engine.decrypt(block)


def _raw_block(key: DESFireKey, block: bytes, operation: Operation) -> bytes:
    encipher = operation is Operation.ENCIPHER
    data = bytes(key.data)
    ks1, ks2, ks3 = data[0:8], data[8:16], data[16:24]
    if key.type is KeyType.DES:
        return _des(ks1, block, encipher)
    if key.type is KeyType.DES2K3:
        if encipher:
            return _des(ks1, _des(ks2, _des(ks1, block, True), False), True)
        return _des(ks1, _des(ks2, _des(ks1, block, False), True), False)
    if key.type is KeyType.DES3K3:
        if encipher:
            return _des(ks3, _des(ks2, _des(ks1, block, True), False), True)
        return _des(ks1, _des(ks2, _des(ks3, block, False), True), False)
    engine = AES.new(data[:16], AES.MODE_ECB)
    return engine.encrypt(block) if encipher else engine.decrypt(block)


def cipher_single_block(
    key: DESFireKey,
    block: bytes,
    ivect: bytes,
    direction: Direction,
    operation: Operation,
) -> tuple[bytes, bytes]:
    """Process one block; return the output block and the updated chaining vector.

    Only the first block-size bytes of ivect take part; the rest is kept as is.
    """
    size = key.block_size
    block = bytes(block)
    ivect = bytes(ivect)
    if len(block) != size:
        raise ValueError(f"block must be {size} bytes long, got {len(block)}")
    if len(ivect) < size:
        raise ValueError(f"chaining vector must be at least {size} bytes long")
    head, tail = ivect[:size], ivect[size:]
    if direction is Direction.SEND:
        output = _raw_block(key, _xor(block, head), operation)
        return output, output + tail
    output = _xor(_raw_block(key, block, operation), head)
    return output, block + tail


def cipher_blocks_chained(
    key: DESFireKey,
    ivect: bytes,
    data: bytes,
    direction: Direction,
    operation: Operation,
) -> tuple[bytes, bytes]:
    """CBC-process data block by block; return the output and the final vector."""
    size = key.block_size
    data = bytes(data)
    if len(data) % size:
        raise ValueError(f"data length {len(data)} is not a multiple of {size}")
    out = bytearray()
    for start in range(0, len(data), size):
        block, ivect = cipher_single_block(
            key, data[start:start + size], ivect, direction, operation
        )
        out += block
    return bytes(out), bytes(ivect)


def generate_cmac_subkeys(key: DESFireKey) -> tuple[bytes, bytes]:
    """Compute the two CMAC subkeys, store them on the key and return them."""
    size = key.block_size
    r = 0x1B if size == 8 else 0x87
    l, _ = cipher_blocks_chained(
        key, bytes(size), bytes(size), Direction.RECEIVE, Operation.ENCIPHER
    )

    def derive(value: bytes) -> bytes:
        shifted = bytearray(lsl(value))
        if value[0] & 0x80:
            shifted[-1] ^= r
        return bytes(shifted)

    sk1 = derive(l)
    sk2 = derive(sk1)
    key.cmac_sk1 = sk1
    key.cmac_sk2 = sk2
    return sk1, sk2


def _subkeys(key: DESFireKey) -> tuple[bytes, bytes]:
    if len(key.cmac_sk1) != key.block_size or len(key.cmac_sk2) != key.block_size:
        return generate_cmac_subkeys(key)
    return bytes(key.cmac_sk1), bytes(key.cmac_sk2)


def _mac_padded(key: DESFireKey, ivect: bytes, data: bytes, target: int) -> bytes:
    size = key.block_size
    sk1, sk2 = _subkeys(key)
    buffer = bytearray(data)
    if len(buffer) == target and target:
        buffer[-size:] = _xor(buffer[-size:], sk1)
    else:
        buffer.append(0x80)
        buffer.extend(bytes(target - len(buffer)))
        buffer[-size:] = _xor(buffer[-size:], sk2)
    _, new_ivect = cipher_blocks_chained(
        key, ivect, bytes(buffer), Direction.SEND, Operation.ENCIPHER
    )
    return new_ivect[:size]


def cmac(key: DESFireKey, ivect: bytes, data: bytes) -> bytes:
    """CMAC of data, chained from ivect.

    The result is one block long and is also the new chaining vector.
    """
    data = bytes(data)
    target = padded_data_length(len(data), key.block_size)
    return _mac_padded(key, ivect, data, target)


def cmac_an10922(key: DESFireKey, ivect: bytes, data: bytes) -> bytes:
    """CMAC as used by AN10922 key diversification: data padded to two blocks."""
    data = bytes(data)
    target = key.block_size * 2
    if len(data) > target:
        raise ValueError(f"AN10922 input must fit in {target} bytes, got {len(data)}")
    return _mac_padded(key, ivect, data, target)


def desfire_crc32(data: bytes) -> bytes:
    """CRC32 as computed by DESFire (no final inversion), little endian."""
    crc = zlib.crc32(bytes(data)) ^ 0xFFFFFFFF
    return crc.to_bytes(4, "little")


def desfire_crc32_append(data: bytes) -> bytes:
    """Return data followed by its DESFire CRC32."""
    data = bytes(data)
    return data + desfire_crc32(data)


def iso14443a_crc(data: bytes) -> bytes:
    """ISO/IEC 14443 type A CRC, little endian."""
    crc = 0x6363
    for byte in bytes(data):
        bt = byte ^ (crc & 0xFF)
        bt = (bt ^ (bt << 4)) & 0xFF
        crc = ((crc >> 8) ^ (bt << 8) ^ (bt << 3) ^ (bt >> 4)) & 0xFFFF
    return crc.to_bytes(2, "little")


def padded_data_length(nbytes: int, block_size: int) -> int:
    """Size of a whole number of blocks holding nbytes; never zero."""
    if nbytes == 0 or nbytes % block_size:
        return (nbytes // block_size + 1) * block_size
    return nbytes


def maced_data_length(key: DESFireKey, nbytes: int) -> int:
    """Buffer size needed to hold nbytes of data and its MAC."""
    return nbytes + key.mac_length