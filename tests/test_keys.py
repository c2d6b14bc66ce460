import pytest

from mifarekit.keys import DESFireKey, KeyType, session_key_new

KEY1_DES = bytes([0x00, 0x11, 0x22, 0x33, 0x44, 0x55, 0x66, 0x77])
KEY2_DES = bytes(8)
KEY1_3DES = bytes([0x00, 0x11, 0x22, 0x33, 0x44, 0x55, 0x66, 0x77,
                   0x89, 0x98, 0xAB, 0xBA, 0xCD, 0xDC, 0xEF, 0xFE])
KEY2_3DES = bytes([0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x01, 0x00,
                   0x00, 0x11, 0x22, 0x33, 0x44, 0x55, 0x66, 0x77])
KEY3_3DES = bytes([0x00, 0x00, 0x00, 0x01, 0x00, 0x00, 0x00, 0x00,
                   0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x77])
KEY1_3K3DES = bytes([0x00, 0x11, 0x22, 0x33, 0x44, 0x55, 0x66, 0x77,
                     0x88, 0x99, 0xAA, 0xBB, 0xCC, 0xDD, 0xEE, 0xFF,
                     0x01, 0x02, 0x03, 0x04, 0x05, 0x06, 0x07, 0x08])
KEY1_AES = bytes([0x00, 0x11, 0x22, 0x33, 0x44, 0x55, 0x66, 0x77,
                  0x88, 0x99, 0xAA, 0xBB, 0xCC, 0xDD, 0xEE, 0xFF])


def test_des_key_without_version():
    key = DESFireKey.from_des(KEY1_DES)
    assert key.version == 0x00
    key.version = 0x55
    assert bytes(key.data[:8]) == KEY1_DES


def test_des_key_with_version():
    key = DESFireKey.from_des_with_version(KEY1_DES)
    assert key.version == 0x55
    key.version = 0xAA
    assert key.version == 0xAA
    key.version = 0x55
    assert bytes(key.data[:8]) == KEY1_DES


def test_null_des_key():
    assert DESFireKey.from_des(KEY2_DES).version == 0x00
    assert DESFireKey.from_des_with_version(KEY2_DES).version == 0x00


def test_3des_key_without_version():
    key = DESFireKey.from_3des(KEY1_3DES)
    assert key.version == 0x00
    key.version = 0x55
    assert bytes(key.data[:16]) == KEY1_3DES


def test_3des_key_with_version():
    key = DESFireKey.from_3des_with_version(KEY1_3DES)
    assert key.version == 0x55
    key.version = 0xAA
    assert key.version == 0xAA
    key.version = 0x55
    assert bytes(key.data[:16]) == KEY1_3DES


def test_3des_key2_versions():
    assert DESFireKey.from_3des(KEY2_3DES).version == 0x00
    assert DESFireKey.from_3des_with_version(KEY2_3DES).version == 0x02


def test_3des_key3_versions():
    assert DESFireKey.from_3des(KEY3_3DES).version == 0x00
    assert DESFireKey.from_3des_with_version(KEY3_3DES).version == 0x10


def test_3k3des_key_without_version():
    key = DESFireKey.from_3k3des(KEY1_3K3DES)
    assert key.version == 0x00
    key.version = 0x55
    assert bytes(key.data[:24]) == KEY1_3K3DES


def test_3k3des_key_with_version():
    key = DESFireKey.from_3k3des_with_version(KEY1_3K3DES)
    assert key.version == 0x55
    key.version = 0xAA
    assert key.version == 0xAA
    key.version = 0x55
    assert bytes(key.data[:24]) == KEY1_3K3DES


def test_aes_key_default_version():
    key = DESFireKey.from_aes(KEY1_AES)
    assert key.version == 0x00
    key.version = 0x55
    assert bytes(key.data[:16]) == KEY1_AES


def test_aes_key_with_version():
    key = DESFireKey.from_aes(KEY1_AES, 0x33)
    assert key.version == 0x33
    key.version = 0xAA
    assert key.version == 0xAA
    key.version = 0x33
    assert bytes(key.data[:16]) == KEY1_AES


def test_des_key_holds_value_twice():
    key = DESFireKey.from_des_with_version(KEY1_DES)
    assert bytes(key.data) == KEY1_DES + KEY1_DES
    key.version = 0x0F
    assert key.data[8:] == key.data[:8]


def test_2k3des_version_inverts_second_half_parity():
    key = DESFireKey.from_3des_with_version(bytes(16))
    key.version = 0xFF
    assert bytes(key.data) == bytes([0x01] * 8 + [0x00] * 8)


def test_3k3des_version_leaves_other_subkeys():
    key = DESFireKey.from_3k3des_with_version(bytes(24))
    key.version = 0xFF
    assert bytes(key.data[8:]) == bytes(16)


@pytest.mark.parametrize(
    "key, block, mac",
    [
        (DESFireKey.from_des(KEY1_DES), 8, 4),
        (DESFireKey.from_3des(KEY1_3DES), 8, 4),
        (DESFireKey.from_3k3des(KEY1_3K3DES), 8, 8),
        (DESFireKey.from_aes(KEY1_AES), 16, 8),
    ],
)
def test_block_and_mac_sizes(key, block, mac):
    assert key.block_size == block
    assert key.mac_length == mac


def test_wrong_length_rejected():
    with pytest.raises(ValueError):
        DESFireKey.from_des(bytes(7))
    with pytest.raises(ValueError):
        DESFireKey.from_3k3des(bytes(16))


def test_version_out_of_range_rejected():
    key = DESFireKey.from_aes(KEY1_AES, 0x21)
    with pytest.raises(ValueError):
        key.version = 0x100
    assert key.version == 0x21
    assert bytes(key.data[:16]) == KEY1_AES


RNDA = bytes(range(0x00, 0x20, 2))
RNDB = bytes(range(0x20, 0x40, 2))


def test_session_key_des():
    key = session_key_new(RNDA, RNDB, DESFireKey.from_des(KEY1_DES))
    assert key.type is KeyType.DES
    assert bytes(key.data[:8]) == bytes([0x00, 0x02, 0x04, 0x06, 0x20, 0x22, 0x24, 0x26])


def test_session_key_2k3des():
    key = session_key_new(RNDA, RNDB, DESFireKey.from_3des(KEY1_3DES))
    assert key.type is KeyType.DES2K3
    assert bytes(key.data) == bytes([0x00, 0x02, 0x04, 0x06, 0x20, 0x22, 0x24, 0x26,
                                     0x08, 0x0A, 0x0C, 0x0E, 0x28, 0x2A, 0x2C, 0x2E])


def test_session_key_3k3des():
    key = session_key_new(RNDA, RNDB, DESFireKey.from_3k3des(KEY1_3K3DES))
    assert key.type is KeyType.DES3K3
    assert bytes(key.data) == bytes([0x00, 0x02, 0x04, 0x06, 0x20, 0x22, 0x24, 0x26,
                                     0x0C, 0x0E, 0x10, 0x12, 0x2C, 0x2E, 0x30, 0x32,
                                     0x18, 0x1A, 0x1C, 0x1E, 0x38, 0x3A, 0x3C, 0x3E])


def test_session_key_aes():
    key = session_key_new(RNDA, RNDB, DESFireKey.from_aes(KEY1_AES, 7))
    assert key.type is KeyType.AES128
    assert key.version == 0
    assert bytes(key.data) == bytes([0x00, 0x02, 0x04, 0x06, 0x20, 0x22, 0x24, 0x26,
                                     0x18, 0x1A, 0x1C, 0x1E, 0x38, 0x3A, 0x3C, 0x3E])