# dtsread/io/chn_writer.py
"""Writer for version 4 DTS .chn channel files (inverse of chn_reader)."""
from __future__ import annotations

import struct
from os import PathLike
from pathlib import Path

import numpy as np

from dtsread.core import ChannelRecord, InvalidChannel
from .chn_reader import (
    CHECKSUM_BLOCK_SIZE,
    CHN_MAGIC,
    CHN_VERSION,
    _ACQUISITION,
    _ADJUSTMENT,
    _CALIBRATION,
    _CHECKSUMS,
)
from .crc import crc16_ccitt


def encode_samples(samples: np.ndarray, bits_per_sample: int, signed: bool) -> bytes:
    """Pack integers as little-endian `bits_per_sample` wide values."""
    width = bits_per_sample // 8
    if signed:
        lo, hi = -(1 << (bits_per_sample - 1)), (1 << (bits_per_sample - 1)) - 1
    else:
        lo, hi = 0, (1 << bits_per_sample) - 1

    values = [int(v) for v in np.asarray(samples).ravel()]
    if values and (min(values) < lo or max(values) > hi):
        raise InvalidChannel(
            f"Samples do not fit {bits_per_sample} bit {'signed' if signed else 'unsigned'} storage."
        )

    if width in (1, 2, 4, 8):
        dtype = np.dtype(f"<{'i' if signed else 'u'}{width}")
        return np.asarray(values, dtype=dtype).tobytes()
    return b"".join(v.to_bytes(width, "little", signed=signed) for v in values)


def encode_chn(record: ChannelRecord) -> bytes:
    """
    Serialize a ChannelRecord into .chn bytes.

    The stored header checksum is the CRC16-CCITT of the header block; the
    secondary checksum is always zero.
    """
    eu = record.engineering_units.encode("latin-1")
    iso = record.iso_code.encode("ascii")

    body = b"".join(
        [
            _ACQUISITION.pack(
                record.num_samples,
                record.bits_per_sample,
                record.samples_signed,
                record.sample_rate,
                record.num_triggers,
            ),
            struct.pack(f"<{record.num_triggers}Q", *record.trigger_samples),
            _CALIBRATION.pack(
                record.pretest_zero_level_counts,
                record.removed_adc_level_counts,
                record.pretest_diagnostics_level_counts,
                record.pretest_noise_level_pct_fs,
                record.posttest_zero_level_counts,
                record.posttest_diagnostics_level_counts,
                record.data_zero_level_counts,
                record.scale_factor_mv,
                record.scale_factor_eu,
                len(eu) + 1,
            ),
            eu,
            _ADJUSTMENT.pack(
                record.excitation,
                record.trigger_adjustment_samples,
                record.zero_mv_counts,
                record.window_average_counts,
                record.original_offset_counts,
            ),
            iso,
        ]
    )
    byte_start = 16 + len(body) + CHECKSUM_BLOCK_SIZE
    header = struct.pack("<IIQ", CHN_MAGIC, CHN_VERSION, byte_start) + body

    return b"".join(
        [
            header,
            _CHECKSUMS.pack(crc16_ccitt(header), 0),
            encode_samples(record.samples, record.bits_per_sample, bool(record.samples_signed)),
        ]
    )


def write_chn_file(record: ChannelRecord, path: str | PathLike) -> Path:
    path = Path(path)
    path.write_bytes(encode_chn(record))
    return path
