"""TES3 Anthology Bloodmoon Converter.

Moves positional data in Morrowind plugins between the Bloodmoon and
Anthology Bloodmoon world-grid layouts.
"""

PROGRAM_NAME = "TES3 Anthology Bloodmoon Converter"
__version__ = "1.3.0"
