"""CRC checksums stored alongside uploaded files."""

from __future__ import annotations

import binascii
import zlib
from typing import BinaryIO

_CHUNK_SIZE = 1024 * 1024


def _chunks(data: bytes | BinaryIO):
    if isinstance(data, (bytes, bytearray, memoryview)):
        yield bytes(data)
        return
    data.seek(0)
    while True:
        chunk = data.read(_CHUNK_SIZE)
        if not chunk:
            break
        yield chunk
    data.seek(0)


def crc16(data: bytes | BinaryIO) -> int:
    """CRC-16/XMODEM (polynomial 0x1021, initial value 0).

    Args:
        data: Raw bytes or a seekable binary stream

    Returns:
        Checksum in the range 0..0xFFFF

    Examples:
        >>> hex(crc16(b"123456789"))
        '0x31c3'
    """
    value = 0
    for chunk in _chunks(data):
        value = binascii.crc_hqx(chunk, value)
    return value


def crc32(data: bytes | BinaryIO) -> int:
    """Standard CRC-32 as used by zip and PNG.

    Examples:
        >>> hex(crc32(b"123456789"))
        '0xcbf43926'
    """
    value = 0
    for chunk in _chunks(data):
        value = zlib.crc32(chunk, value)
    return value & 0xFFFFFFFF
