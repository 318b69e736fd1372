"""
Error types raised by depchunk.

The extraction engine swallows front-end failures (an unparsable file yields
no chunks), so most of these only surface at the service and CLI layers.
"""


class DepchunkError(Exception):
    """Base error for depchunk."""

    pass


class ParseError(DepchunkError):
    """A front-end failed to turn source text into a syntax tree."""

    pass


class ConfigError(DepchunkError, ValueError):
    """Configuration values are invalid."""

    pass
