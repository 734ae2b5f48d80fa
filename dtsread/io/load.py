# dtsread/io/load.py
from __future__ import annotations

import logging
from concurrent.futures import Executor
from os import PathLike
from pathlib import Path

from dtsread.core import DTSFolder, InvalidFolder
from dtsread.io.chn_reader import read_chn_file
from dtsread.io.dts_reader import read_dts_file


logger = logging.getLogger(__name__)

DTS_SUFFIX = ".dts"
CHN_SUFFIX = ".chn"


def _glob_suffix(folder: Path, suffix: str) -> list[Path]:
    return sorted(p for p in folder.iterdir() if p.is_file() and p.suffix.lower() == suffix)


def load_dts_folder(path: str | PathLike, executor: Executor | None = None) -> DTSFolder:
    """
    Import a top-level DTS test folder.

    The folder holds one .dts metadata file and any number of .chn channel
    files. Every .chn file is decoded and keyed by its file name; the first
    failure aborts the import.

    Parameters
    ----------
    path:
        The test folder.
    executor:
        Optional concurrent.futures executor; its `map` is used to decode the
        channel files.
    """
    folder = Path(path)
    if not folder.is_dir():
        raise InvalidFolder(f"Path '{folder}' is not a top-level DTS data directory.")

    dts_files = _glob_suffix(folder, DTS_SUFFIX)
    if not dts_files:
        raise InvalidFolder(f"No '{DTS_SUFFIX}' file found in DTS data directory '{folder}'.")
    if len(dts_files) > 1:
        raise InvalidFolder(
            f"Unexpected multiple '{DTS_SUFFIX}' files found in DTS data directory '{folder}': "
            f"{[p.name for p in dts_files]}."
        )

    meta = read_dts_file(dts_files[0], validate=True)

    # The metadata does not say which channel files belong to the test, so
    # every .chn file in the folder is read.
    chn_files = _glob_suffix(folder, CHN_SUFFIX)
    if not chn_files:
        raise InvalidFolder(f"No '{CHN_SUFFIX}' files found in DTS data directory '{folder}'.")

    mapper = executor.map if executor is not None else map
    records = list(mapper(read_chn_file, chn_files))
    logger.debug("Loaded %d channel files from %s", len(records), folder)

    return DTSFolder(
        meta=meta,
        channels={p.name: rec for p, rec in zip(chn_files, records)},
        source=str(folder),
    )
