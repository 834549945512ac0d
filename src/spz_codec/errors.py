"""
Exceptions raised by the spz codec.

Data problems derive from ValueError, stream truncation from EOFError, so
callers that only know the builtin types still catch them sensibly.
"""


class SpzError(Exception):
    """Base exception for spz codec errors"""
    pass


class InvalidHeaderError(SpzError, ValueError):
    """Header has a bad magic, version or SH degree"""
    pass


class TruncatedStreamError(SpzError, EOFError):
    """Stream ended before a block was fully read"""

    def __init__(self, what: str, wanted: int, got: int):
        self.what = what
        self.wanted = wanted
        self.got = got
        super().__init__(
            f"Unexpected EOF reading {what}: wanted {wanted} bytes, got only {got} bytes"
        )


class TrailingDataError(SpzError):
    """Decoder did not consume the whole stream, or consumed an unexpected byte count"""
    pass


class MixedShOrderError(SpzError, ValueError):
    """Gaussians in one list carry spherical harmonics of different orders"""
    pass


class InvalidShCountError(SpzError, ValueError):
    """Spherical harmonics vector or scalar count does not match any order"""
    pass
