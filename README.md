# mifarekit

A pure-Python toolkit for NXP contactless tags: DESFire keys and secure
messaging, AN10922 key diversification, NFC Forum TLV blocks, and
MIFARE Ultralight / Ultralight C and NTAG213/215/216 operations over a reader
interface you supply.

## Modules

- `mifarekit.keys`: `DESFireKey` and `KeyType` for DES, 2K3DES, 3K3DES and
  AES-128 keys. Build keys with `DESFireKey.from_des`, `from_des_with_version`,
  `from_3des`, `from_3des_with_version`, `from_3k3des`,
  `from_3k3des_with_version` and `from_aes(value, version)`. The `version`
  property reads and writes the key version (held in the parity bits for the
  DES family, kept separately for AES). `session_key_new(rnda, rndb, key)`
  builds a session key from the two authentication random numbers.
- `mifarekit.cipher`: `cipher_single_block` and `cipher_blocks_chained` (CBC
  in the `Direction.SEND` / `Direction.RECEIVE` styles, with
  `Operation.ENCIPHER` / `Operation.DECIPHER`); each returns the output and the
  updated chaining vector. Also `generate_cmac_subkeys`, `cmac`,
  `cmac_an10922`, `desfire_crc32`, `desfire_crc32_append`, `iso14443a_crc`,
  `padded_data_length`, `maced_data_length`, `rol` and `lsl`.
- `mifarekit.messaging`: `SecureSession` holds a session key, an
  `AuthenticationScheme` (`LEGACY` or `NEW`) and the chaining vector.
  `preprocess` secures a command frame and `postprocess` checks and strips a
  response, according to `CommunicationSettings` (plain, MACed or enciphered,
  combined with flags such as `CMAC_COMMAND`, `MAC_VERIFY` or `NO_CRC`).
  A MAC, CMAC or CRC that does not verify raises `CryptoError`.
- `mifarekit.deriver`: `KeyDeriver(master_key, output_key_type, flags)` for
  AN10922 diversification into AES-128, 2K3DES or 3K3DES keys, with
  `begin`, `update_data`, `update_cstr`, `update_aid`, `end_raw` and `end`.
  Too much input raises `OverflowError` until `begin()` is called again.
- `mifarekit.tlv`: `tlv_encode`, `tlv_decode`, `tlv_record_length`,
  `tlv_records`, `tlv_sequence_length` and `tlv_append`.
- `mifarekit.device`: the `NfcDevice` protocol the tag classes talk through,
  `Target`, `TransportError`, and the helpers `raw_framing` and `probe`.
- `mifarekit.ultralight`: `UltralightTag` with `connect`, `disconnect`,
  `read` (cached four-page reads), `write`, `authenticate` (Ultralight C) and
  `set_key`; plus `ultralight_taste`, `ultralightc_taste` and
  `is_ultralightc_on_reader`.
- `mifarekit.ntag21x`: `NTAG21xTag` and `NTAG21xKey` with page reads and
  writes, `fast_read`, `read_cnt`, `read_signature`, `get_info`,
  password and acknowledge setup, AUTH0, ACCESS and authentication-limit
  handling, and `authenticate`; plus `ntag21x_taste` and
  `ntag21x_is_auth_supported`.
- `mifarekit.errors`: `DESFireStatus`, `NTAGStatus`, `TagError`,
  `CryptoError`, `desfire_error_lookup` and `ntag21x_error_lookup`.

## Installation

```
pip install mifarekit
```

To run the test suite:

```
pip install "mifarekit[test]"
pytest
```

## Examples

Compute an AES CMAC:

```python
from mifarekit.cipher import cmac, generate_cmac_subkeys
from mifarekit.keys import DESFireKey

key = DESFireKey.from_aes(bytes(16), 0)
generate_cmac_subkeys(key)
mac = cmac(key, bytes(16), b"hello")  # 16 bytes, also the next chaining vector
```

Encode and decode TLV:

```python
from mifarekit.tlv import tlv_decode, tlv_encode

blob = tlv_encode(3, b"elephant")      # b"\x03\x08elephant\xfe"
tlv_type, value = tlv_decode(blob)     # (3, b"elephant")
```

Diversify a key:

```python
from mifarekit.deriver import KeyDeriver
from mifarekit.keys import DESFireKey, KeyType

master = DESFireKey.from_aes(bytes(16), 0)
deriver = KeyDeriver(master, KeyType.AES128)
deriver.update_data(bytes.fromhex("04010203040506"))
card_key = deriver.end()
```

## What this package does not do

- It has no reader driver. The tag classes need an object implementing
  `NfcDevice` (`select_passive_target`, `deselect_target`,
  `set_easy_framing`, `transceive`) backed by your own reader.
- It does not discover tags on a reader or pick a tag class for you beyond the
  `*_taste` helpers.
- It provides DESFire keys, cryptography and secure messaging, but no DESFire
  card commands (applications, files, values, records); `SecureSession` is
  the building block for them.
- It has no command-line tool.