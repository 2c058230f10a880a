# cic2nf/errors.py

from pathlib import Path
from typing import Optional, Sequence, Union


class ConversionError(Exception):
    """Base class for every error raised while converting a CIC CSV file"""


class MalformedRow(ConversionError):
    def __init__(self, path: Union[str, Path], fields: Sequence[str], expected: int,
                 row_number: Optional[int] = None):
        self.path = Path(path)
        self.row_number = row_number
        self.fields = list(fields)
        self.expected = expected
        location = f"row {row_number}" if row_number is not None else "a row"
        super().__init__(
            f"{self.path}: {location} has {len(self.fields)} columns, expected {expected}: {self.fields}"
        )


class NumericParseFailure(ConversionError):
    def __init__(self, path: Union[str, Path], row_number: int, column: int, value: str, reason: str = ''):
        self.path = Path(path)
        self.row_number = row_number
        self.column = column
        self.value = value
        message = f"{self.path}: row {row_number}, column {column}: cannot parse {value!r} as a number"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class UnrecognizedTimestampFormat(ConversionError):
    def __init__(self, value: str, path: Optional[Union[str, Path]] = None, row_number: Optional[int] = None):
        self.value = value
        self.path = Path(path) if path is not None else None
        self.row_number = row_number
        location = f"{self.path}: row {row_number}: " if self.path is not None else ''
        super().__init__(f"{location}time string is not in the list of known formats: {value!r}")


class InvalidDuration(ConversionError):
    def __init__(self, microseconds: int, record=None):
        self.microseconds = microseconds
        self.record = record
        super().__init__(f"Negative flow duration of {microseconds} us in record {record!r}")


class IoFailure(ConversionError):
    def __init__(self, path: Union[str, Path], action: str):
        self.path = Path(path)
        self.action = action
        super().__init__(f"Unable to {action}: {self.path}")
