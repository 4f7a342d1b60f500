"""Exception types raised while converting a plugin.

Everything except SetupError is local to one document: the batch logs the
failure and moves on to the next file.
"""


class ConversionError(Exception):
    """Base class for all converter failures."""


class SetupError(ConversionError):
    """Required external resource (tes3conv, reference database) is unusable."""


class HeaderError(ConversionError):
    """Header record or its masters list is missing or malformed."""


class DependencyOrderError(HeaderError):
    """Parent master files are missing or listed in the wrong order."""


class RegionLookupError(ConversionError):
    """The reference region backend failed to answer a query."""


class CommandParseError(ConversionError):
    """A matched script command has an operand that cannot be parsed."""


class Tes3ConvError(ConversionError):
    """The external tes3conv decoder/encoder failed."""
