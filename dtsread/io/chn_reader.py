# dtsread/io/chn_reader.py
"""
Reader for version 4 DTS .chn channel files.

Layout (little endian):

    offset  type       field
    0       u32        magic (0x2C36351F)
    4       u32        file version (4)
    8       u64        byte_start, offset of the sample data
    16      u64        number of samples
    24      u32        bits per sample
    28      u32        samples signed flag (0/1)
    32      f64        sample rate
    40      u16        number of triggers N
    42      u64[N]     trigger sample numbers
    ...     calibration block, EU string, adjustment block, 16 byte ISO code
    ...     u16, u16   header checksum pair
    byte_start         packed samples

The header block is everything before the checksum pair, i.e.
[0, byte_start - 4).
"""
from __future__ import annotations

import io
import logging
import struct
from os import PathLike
from pathlib import Path
from typing import BinaryIO

import numpy as np

from dtsread.core import (
    ChannelRecord,
    CorruptFileError,
    FileReadError,
    FormatError,
    ISO_CODE_LENGTH,
    UnsupportedFormatError,
    UnsupportedVersionError,
    sample_dtype,
)
from .crc import crc16_ccitt


logger = logging.getLogger(__name__)

CHN_MAGIC = 0x2C36351F
CHN_VERSION = 4

# Zero triggers and an empty EU string; the smallest header that can be valid.
MIN_BYTE_START = 132
CHECKSUM_BLOCK_SIZE = 4

_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")
# num_samples, bits_per_sample, samples_signed, sample_rate, num_triggers
_ACQUISITION = struct.Struct("<QIIdH")
# pretest zero, removed ADC, pretest diagnostics, pretest noise (%FS),
# posttest zero, posttest diagnostics, data zero, scale mV, scale EU, EU length
_CALIBRATION = struct.Struct("<iiidiiiddH")
# excitation, trigger adjustment, zero mV, window average, original offset
_ADJUSTMENT = struct.Struct("<diiii")
_CHECKSUMS = struct.Struct("<HH")

_ACQUISITION_OFFSET = 16
_READ_CHUNK = 1 << 20


class _HeaderCursor:
    """Sequential reader over the in-memory header block."""

    def __init__(self, block: bytes, offset: int = 0):
        self.block = block
        self.offset = offset

    def take(self, size: int, what: str) -> bytes:
        end = self.offset + size
        if end > len(self.block):
            raise CorruptFileError(
                f"Header field '{what}' runs past the end of the {len(self.block)} byte header block."
            )
        out = self.block[self.offset:end]
        self.offset = end
        return out

    def unpack(self, st: struct.Struct, what: str) -> tuple:
        return st.unpack(self.take(st.size, what))


def _read_exact(stream: BinaryIO, size: int, what: str) -> bytes:
    # Sizes come from the header, so read in bounded chunks until EOF.
    chunks: list[bytes] = []
    remaining = size
    while remaining > 0:
        try:
            chunk = stream.read(min(remaining, _READ_CHUNK))
        except OSError as e:
            raise FileReadError(f"Read error while reading {what}: {e}") from e
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    if remaining:
        raise FileReadError(
            f"Unexpected end of file while reading {what}: expected {size} bytes, "
            f"got {size - remaining}."
        )
    return b"".join(chunks)


def decode_samples(buffer: bytes, count: int, bits_per_sample: int, signed: bool) -> np.ndarray:
    """
    Decode `count` packed little-endian integers of `bits_per_sample` bits.

    Widths of 1, 2, 4 and 8 bytes map straight onto numpy dtypes; other
    widths up to 64 bits are widened to 64 bit integers, wider ones come
    back as an object array of Python ints.
    """
    if bits_per_sample <= 0 or bits_per_sample % 8:
        raise UnsupportedFormatError(
            f"Unsupported sample bit depth {bits_per_sample}. Sample depths need to be multiples of 8."
        )
    width = bits_per_sample // 8
    if len(buffer) < count * width:
        raise FileReadError(f"Sample data holds {len(buffer)} bytes, {count * width} needed.")

    dtype = sample_dtype(bits_per_sample, signed)
    if dtype is not None:
        if count == 0:
            return np.zeros(0, dtype=dtype.newbyteorder("="))
        return np.frombuffer(buffer, dtype=dtype, count=count).astype(dtype.newbyteorder("="))

    raw = np.frombuffer(buffer, dtype=np.uint8, count=count * width).reshape(count, width)
    if width > 8:
        return np.array(
            [int.from_bytes(row.tobytes(), "little", signed=signed) for row in raw],
            dtype=object,
        )

    padded = np.zeros((count, 8), dtype=np.uint8)
    padded[:, :width] = raw
    values = padded.view("<u8").reshape(count)
    if not signed:
        return values.astype(np.uint64)
    # sign extend from bits_per_sample to 64 bits
    sign_bit = np.int64(1) << np.int64(bits_per_sample - 1)
    return (values.astype(np.int64) ^ sign_bit) - sign_bit


def read_chn(stream: BinaryIO, name: str | None = None) -> ChannelRecord:
    """
    Decode a .chn file from a binary stream positioned at its first byte.

    The stream is read strictly forward; any failure aborts the decode.
    """
    label = name or "<stream>"

    preamble = _read_exact(stream, 4, "magic number")
    (magic,) = _U32.unpack(preamble)
    if magic != CHN_MAGIC:
        raise FormatError(f"'{label}' is not a valid .chn file (magic 0x{magic:08X}).")

    chunk = _read_exact(stream, 4, "file version")
    preamble += chunk
    (version,) = _U32.unpack(chunk)
    if version != CHN_VERSION:
        raise UnsupportedVersionError(
            f"Reader only supports .chn file version {CHN_VERSION}, '{label}' has version {version}."
        )

    chunk = _read_exact(stream, 8, "data offset")
    preamble += chunk
    (byte_start,) = _U64.unpack(chunk)
    if byte_start < MIN_BYTE_START:
        raise CorruptFileError(
            f"Corrupt or unsupported .chn file '{label}': data offset {byte_start} is smaller "
            f"than the minimum header size {MIN_BYTE_START}."
        )

    header_size = byte_start - CHECKSUM_BLOCK_SIZE
    header = preamble + _read_exact(stream, header_size - len(preamble), "header block")
    cursor = _HeaderCursor(header, _ACQUISITION_OFFSET)

    num_samples, bits_per_sample, samples_signed, sample_rate, num_triggers = cursor.unpack(
        _ACQUISITION, "acquisition"
    )
    if samples_signed not in (0, 1):
        raise CorruptFileError(
            f"Corrupt or unsupported .chn file '{label}': unexpected samples signed flag {samples_signed}."
        )
    triggers = struct.unpack(f"<{num_triggers}Q", cursor.take(8 * num_triggers, "trigger samples"))

    (
        pretest_zero,
        removed_adc,
        pretest_diagnostics,
        pretest_noise,
        posttest_zero,
        posttest_diagnostics,
        data_zero,
        scale_factor_mv,
        scale_factor_eu,
        eu_field_length,
    ) = cursor.unpack(_CALIBRATION, "calibration")

    # The length counts a terminator that is not stored.
    eu_raw = cursor.take(max(eu_field_length - 1, 0), "engineering units")
    if any(b >= 0x80 for b in eu_raw):
        logger.warning(
            "In '%s', non-ASCII values in the engineering units field; "
            "the string may be truncated depending on the host encoding.",
            label,
        )

    excitation, trigger_adjustment, zero_mv, window_average, original_offset = cursor.unpack(
        _ADJUSTMENT, "adjustment"
    )

    iso_raw = cursor.take(ISO_CODE_LENGTH, "ISO code")
    if any(b >= 0x80 for b in iso_raw):
        raise CorruptFileError(
            f"Corrupt or unsupported .chn file '{label}': non-ASCII values in ISO code field."
        )

    header_checksum, secondary_checksum = _CHECKSUMS.unpack(
        _read_exact(stream, _CHECKSUMS.size, "header checksum")
    )
    logger.warning(
        "In '%s', header verification skipped due to unknown DTS checksum algorithm "
        "(stored 0x%04X, CRC16-CCITT 0x%04X).",
        label,
        header_checksum,
        crc16_ccitt(header),
    )
    if secondary_checksum != 0:
        raise CorruptFileError(
            f"Corrupt or unsupported .chn file '{label}': unknown secondary header checksum "
            f"0x{secondary_checksum:04X}."
        )

    position = cursor.offset + CHECKSUM_BLOCK_SIZE
    if position != byte_start:
        raise CorruptFileError(
            f".chn file '{label}' is corrupted: data section is expected to start at byte "
            f"{byte_start} but the header ends at byte {position}."
        )

    if bits_per_sample == 0 or bits_per_sample % 8:
        raise UnsupportedFormatError(
            f".chn file '{label}' has unsupported sample bit depth {bits_per_sample}. "
            "Sample depths need to be multiples of 8."
        )
    width = bits_per_sample // 8
    payload = _read_exact(stream, num_samples * width, "sample data")
    samples = decode_samples(payload, num_samples, bits_per_sample, bool(samples_signed))

    logger.debug(
        "Decoded '%s': %d samples, %d bit %s, %g Hz, %d triggers",
        label,
        num_samples,
        bits_per_sample,
        "signed" if samples_signed else "unsigned",
        sample_rate,
        num_triggers,
    )
    return ChannelRecord(
        version=version,
        num_samples=num_samples,
        bits_per_sample=bits_per_sample,
        samples_signed=samples_signed,
        sample_rate=sample_rate,
        trigger_samples=triggers,
        pretest_zero_level_counts=pretest_zero,
        removed_adc_level_counts=removed_adc,
        pretest_diagnostics_level_counts=pretest_diagnostics,
        pretest_noise_level_pct_fs=pretest_noise,
        posttest_zero_level_counts=posttest_zero,
        posttest_diagnostics_level_counts=posttest_diagnostics,
        data_zero_level_counts=data_zero,
        scale_factor_mv=scale_factor_mv,
        scale_factor_eu=scale_factor_eu,
        engineering_units=eu_raw.decode("latin-1"),
        excitation=excitation,
        trigger_adjustment_samples=trigger_adjustment,
        zero_mv_counts=zero_mv,
        window_average_counts=window_average,
        original_offset_counts=original_offset,
        iso_code=iso_raw.decode("ascii"),
        samples=samples,
        header_checksum=header_checksum,
        name=name,
    )


def decode_chn(buffer: bytes, name: str | None = None) -> ChannelRecord:
    """Decode a .chn file held in memory."""
    return read_chn(io.BytesIO(buffer), name=name)


def read_chn_file(path: str | PathLike) -> ChannelRecord:
    """Read and decode a .chn file from disk; the record is named after the file."""
    path = Path(path)
    try:
        fh = open(path, "rb")
    except OSError as e:
        raise FileReadError(f"Unable to open .chn file '{path}': {e}") from e
    with fh:
        return read_chn(fh, name=path.name)
