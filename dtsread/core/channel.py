# dtsread/core/channel.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from .exceptions import InvalidChannel


ISO_CODE_LENGTH = 16

_NATIVE_WIDTHS = (1, 2, 4, 8)


def sample_dtype(bits_per_sample: int, signed: bool) -> np.dtype | None:
    """
    Little-endian numpy dtype for packed samples, or None when the width has
    no native dtype (24, 40, 48, 56 bits, ...).
    """
    width = bits_per_sample // 8
    if bits_per_sample % 8 or width not in _NATIVE_WIDTHS:
        return None
    return np.dtype(f"<{'i' if signed else 'u'}{width}")


@dataclass(frozen=True, slots=True)
class ChannelRecord:
    """
    Decoded contents of one version 4 .chn file.

    Field names follow the DTS header layout; `samples` holds the raw ADC
    counts, not engineering values.
    """
    version: int
    num_samples: int
    bits_per_sample: int
    samples_signed: int
    sample_rate: float
    trigger_samples: Sequence[int]
    pretest_zero_level_counts: int
    removed_adc_level_counts: int
    pretest_diagnostics_level_counts: int
    pretest_noise_level_pct_fs: float
    posttest_zero_level_counts: int
    posttest_diagnostics_level_counts: int
    data_zero_level_counts: int
    scale_factor_mv: float
    scale_factor_eu: float
    engineering_units: str
    excitation: float
    trigger_adjustment_samples: int
    zero_mv_counts: int
    window_average_counts: int
    original_offset_counts: int
    iso_code: str
    samples: np.ndarray = field(repr=False, compare=False)
    header_checksum: int = 0
    name: str | None = None

    def __post_init__(self) -> None:
        if self.samples_signed not in (0, 1):
            raise InvalidChannel(
                f"ChannelRecord.samples_signed must be 0 or 1, got {self.samples_signed}."
            )
        if self.bits_per_sample <= 0 or self.bits_per_sample % 8:
            raise InvalidChannel(
                f"ChannelRecord.bits_per_sample must be a positive multiple of 8, got {self.bits_per_sample}."
            )
        if not isinstance(self.iso_code, str) or len(self.iso_code) != ISO_CODE_LENGTH:
            raise InvalidChannel(f"ChannelRecord.iso_code must be a {ISO_CODE_LENGTH} character string.")
        if not isinstance(self.engineering_units, str):
            raise InvalidChannel("ChannelRecord.engineering_units must be a string.")

        triggers = tuple(int(t) for t in self.trigger_samples)
        object.__setattr__(self, "trigger_samples", triggers)

        s = np.array(self.samples, copy=True)
        if s.size == 0:
            s = s.astype(np.int64)
        if s.ndim != 1:
            raise InvalidChannel(f"ChannelRecord.samples must be 1D, got shape {s.shape}.")
        if s.dtype.kind not in "iuO":
            raise InvalidChannel(f"ChannelRecord.samples must be integers, got dtype {s.dtype}.")
        if s.size != self.num_samples:
            raise InvalidChannel(
                f"ChannelRecord.num_samples is {self.num_samples} but {s.size} samples were given."
            )
        s.flags.writeable = False
        object.__setattr__(self, "samples", s)

    # Convenience accessors
    @property
    def num_triggers(self) -> int:
        return len(self.trigger_samples)

    @property
    def dtype(self) -> np.dtype | None:
        return sample_dtype(self.bits_per_sample, bool(self.samples_signed))

    @property
    def time(self) -> np.ndarray:
        """Sample instants in seconds, relative to the first sample."""
        if self.sample_rate <= 0:
            raise InvalidChannel(f"Cannot build a time base with sample rate {self.sample_rate}.")
        return np.arange(self.num_samples, dtype=np.float64) / self.sample_rate

    @property
    def duration(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return self.num_samples / self.sample_rate
