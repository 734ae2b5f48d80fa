# dtsread/core/exceptions.py
from __future__ import annotations


class DTSError(Exception):
    """Base error for all dtsread exceptions."""


# ---- Decoding errors (abort the single-file decode) ----
class FormatError(DTSError, ValueError):
    """Raised when input is not a DTS file (bad magic, no XML document marker)."""


class UnsupportedVersionError(DTSError, ValueError):
    """Raised when a .chn file declares a file version other than 4."""


class CorruptFileError(DTSError, ValueError):
    """Raised when a .chn header is internally inconsistent."""


class UnsupportedFormatError(DTSError, ValueError):
    """Raised when samples use a bit depth that is not a multiple of 8."""


class SchemaError(DTSError, ValueError):
    """Raised when the .dts documents do not have the expected top-level layout."""


class ParseError(DTSError, ValueError):
    """Raised when an embedded XML document is not well formed."""


class FileReadError(DTSError, OSError):
    """Raised when a file cannot be opened or ends before the expected data."""


# ---- Validation / construction errors ----
class InvalidMetaNode(DTSError):
    """Raised when a MetaNode / DocumentSet is constructed with invalid inputs."""


class InvalidChannel(DTSError):
    """Raised when a ChannelRecord is constructed with invalid inputs."""


class InvalidFolder(DTSError):
    """Raised when a path is not a usable top-level DTS test folder."""


# ---- Lookup errors (also behave like KeyError for dict-like APIs) ----
class ChannelNotFound(DTSError, KeyError):
    """Raised when a requested channel file name is not present."""
