# dtsread/io/crc.py
"""
CRC16-CCITT (polynomial x^16 + x^12 + x^5 + 1, initial register 0xFFFF).

The stored .chn header checksum does not match this value on real files, so
the result is only reported alongside decode diagnostics. Nothing in the
reader rejects a file based on it.
"""
from __future__ import annotations

CRC16_POLY = 0x1021
CRC16_INIT = 0xFFFF


def _make_table(poly: int) -> tuple[int, ...]:
    table = []
    for byte in range(256):
        reg = byte << 8
        for _ in range(8):
            reg = ((reg << 1) ^ poly) if reg & 0x8000 else (reg << 1)
        table.append(reg & 0xFFFF)
    return tuple(table)


CRC16_TABLE = _make_table(CRC16_POLY)


def crc16_ccitt(data: bytes | bytearray | memoryview, init: int = CRC16_INIT) -> int:
    """Return the CRC16-CCITT of `data`."""
    reg = init
    for byte in bytes(data):
        reg = CRC16_TABLE[(reg >> 8) ^ byte] ^ ((reg << 8) & 0xFFFF)
    return reg
