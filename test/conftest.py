"""
Pytest fixtures for dtsread tests.

Provides synthetic .chn records and bytes, .dts containers and test folders.
"""

import numpy as np
import pytest

from dtsread.core import ChannelRecord
from dtsread.io.chn_writer import encode_chn


TEST_XML = '<?xml version="1.0" encoding="{enc}"?>\n<Test Id="T-001"><Name>Drop test</Name></Test>\n'
TEST_SETUP_XML = (
    '<?xml version="1.0" encoding="{enc}"?>\n'
    '<TestSetup Version="2">'
    '<Channel Serial="A1">accel</Channel>'
    '<Channel Serial="A2">load</Channel>'
    "</TestSetup>\n"
)


def record_fields(**overrides) -> dict:
    fields = dict(
        version=4,
        num_samples=5,
        bits_per_sample=16,
        samples_signed=1,
        sample_rate=10000.0,
        trigger_samples=(2,),
        pretest_zero_level_counts=12,
        removed_adc_level_counts=-3,
        pretest_diagnostics_level_counts=1500,
        pretest_noise_level_pct_fs=0.125,
        posttest_zero_level_counts=11,
        posttest_diagnostics_level_counts=1498,
        data_zero_level_counts=10,
        scale_factor_mv=0.0625,
        scale_factor_eu=0.5,
        engineering_units="g",
        excitation=5.0,
        trigger_adjustment_samples=-1,
        zero_mv_counts=7,
        window_average_counts=9,
        original_offset_counts=-20,
        iso_code="11HEAD0000ACXA  ",
        samples=np.array([0, 100, -100, 32767, -32768]),
    )
    fields.update(overrides)
    if "samples" in overrides and "num_samples" not in overrides:
        fields["num_samples"] = len(overrides["samples"])
    return fields


@pytest.fixture
def make_record():
    """Factory building a ChannelRecord from default fields plus overrides."""
    def _make(**overrides) -> ChannelRecord:
        return ChannelRecord(**record_fields(**overrides))
    return _make


@pytest.fixture
def record(make_record) -> ChannelRecord:
    return make_record()


@pytest.fixture
def chn_bytes(record) -> bytes:
    """A valid version 4 .chn file: one trigger, 'g' units, five int16 samples."""
    return encode_chn(record)


def make_dts(encoding: str = "utf-16-le", documents=(TEST_XML, TEST_SETUP_XML)) -> bytes:
    """Concatenate XML documents into a .dts container, with a BOM for UTF-16."""
    label = "UTF-16" if encoding.startswith("utf-16") else "UTF-8"
    text = "".join(doc.format(enc=label) for doc in documents)
    if encoding == "utf-16-le":
        return b"\xff\xfe" + text.encode("utf-16-le")
    if encoding == "utf-16-be":
        return b"\xfe\xff" + text.encode("utf-16-be")
    return text.encode("utf-8")


@pytest.fixture
def dts_bytes() -> bytes:
    return make_dts()


@pytest.fixture
def dts_folder(tmp_path, make_record, dts_bytes):
    """A test folder with one .dts file and two .chn files."""
    folder = tmp_path / "TEST_0001"
    folder.mkdir()
    (folder / "TEST_0001.dts").write_bytes(dts_bytes)
    (folder / "CH_01.chn").write_bytes(encode_chn(make_record()))
    (folder / "CH_02.chn").write_bytes(
        encode_chn(
            make_record(
                bits_per_sample=8,
                samples_signed=0,
                samples=np.array([0, 1, 2, 255]),
                engineering_units="kN",
                sample_rate=2000.0,
                trigger_samples=(),
            )
        )
    )
    return folder
