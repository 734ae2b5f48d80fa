# dtsread/core/__init__.py
"""
Core domain objects for dtsread.

This module defines the decoded, file-format-free data model:
- MetaNode: one element of a .dts XML metadata document
- DocumentSet: the ordered documents of one .dts file
- ChannelRecord: calibration header + raw samples of one .chn file
- DTSFolder: a test folder, metadata plus channels keyed by file name

The core layer is independent from the binary and XML decoders.
"""

from .metanode import MetaNode, DocumentSet
from .channel import ChannelRecord, ISO_CODE_LENGTH, sample_dtype
from .folder import DTSFolder
from .exceptions import (
    DTSError,
    FormatError,
    UnsupportedVersionError,
    CorruptFileError,
    UnsupportedFormatError,
    SchemaError,
    ParseError,
    FileReadError,
    InvalidMetaNode,
    InvalidChannel,
    InvalidFolder,
    ChannelNotFound,
)


__all__ = [
    # metadata documents
    "MetaNode",
    "DocumentSet",

    # channels
    "ChannelRecord",
    "ISO_CODE_LENGTH",
    "sample_dtype",
    "DTSFolder",

    # exceptions
    "DTSError",
    "FormatError",
    "UnsupportedVersionError",
    "CorruptFileError",
    "UnsupportedFormatError",
    "SchemaError",
    "ParseError",
    "FileReadError",
    "InvalidMetaNode",
    "InvalidChannel",
    "InvalidFolder",
    "ChannelNotFound",
]
