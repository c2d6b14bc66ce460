"""MIFARE DESFire cryptography, key derivation, TLV and Ultralight/NTAG21x tag support."""

__version__ = "0.1.0"

__all__ = [
    "cipher",
    "deriver",
    "device",
    "errors",
    "keys",
    "messaging",
    "ntag21x",
    "tlv",
    "ultralight",
]