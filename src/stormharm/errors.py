"""Error taxonomy for the storm harm pipelines.

Fatal errors abort the Kedro run with a message naming the offending
column or row. ``DataQualityWarning`` is the only non-fatal category:
the affected cell gets a default value and the run continues.

A missing input file is reported with the built-in ``FileNotFoundError``.
"""


class ParseError(ValueError):
    """The delimited input file is malformed (inconsistent field counts)."""


class SchemaError(KeyError):
    """One or more expected columns are absent from a table."""

    def __str__(self) -> str:
        # KeyError repr()s its argument; show the message as written
        return str(self.args[0]) if self.args else ""


class TypeCoercionError(ValueError):
    """A required identifier column holds values that are not integers."""


class DataQualityWarning(UserWarning):
    """Unrecognised damage magnitude code; a scale factor of 1 was used."""
