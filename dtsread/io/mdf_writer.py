# dtsread/io/mdf_writer.py
from __future__ import annotations

from os import PathLike
from pathlib import Path
from typing import Mapping

from asammdf import MDF, Signal  # pivotal dependency for MDF file handling

from dtsread.core import ChannelRecord, DTSFolder, InvalidChannel


def _signal_name(key: str) -> str:
    """Channel name in the MDF file: the .chn file name without its suffix."""
    return Path(key).stem or key


def record_to_signal(record: ChannelRecord, name: str) -> Signal:
    """Wrap the raw counts of a channel into an asammdf Signal."""
    return Signal(
        samples=record.samples.copy(),
        timestamps=record.time,
        name=name,
        unit=record.engineering_units,
        comment="ISO " + record.iso_code.strip("\x00 "),
    )


def export_mdf(
    channels: DTSFolder | Mapping[str, ChannelRecord],
    path: str | PathLike,
    *,
    version: str = "4.10",
) -> Path:
    """
    Write decoded channels to an MDF file, one signal per channel.

    Samples are stored as raw ADC counts on a time base derived from each
    channel's sample rate. Returns the path written by asammdf.
    """
    items = list(channels.items())
    for key, rec in items:
        if not rec.sample_rate > 0:
            raise InvalidChannel(
                f"Channel '{key}' has sample rate {rec.sample_rate}; no time base for MDF export."
            )

    mdf = MDF(version=version)
    try:
        # Channels can have different rates, so each gets its own group.
        for key, rec in items:
            mdf.append([record_to_signal(rec, _signal_name(key))], comment="dtsread export")
        out = mdf.save(Path(path), overwrite=True)
    finally:
        mdf.close()
    return Path(out)
