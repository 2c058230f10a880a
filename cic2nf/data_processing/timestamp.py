# cic2nf/data_processing/timestamp.py

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from cic2nf.errors import UnrecognizedTimestampFormat

logger = logging.getLogger(__name__)

# Renderings seen across CIC-IDS-2017 exports; order is significant, the
# index of a pattern in this tuple is what ParserState remembers.
TIME_FORMATS = (
    "%d/%m/%Y %I:%M %p",        # 11:09 pm
    "%d/%m/%Y %I:%M:%S %p",     # 11:09:09 pm
    "%d/%m/%Y %I:%M:%S.%f %p",  # 11:09:09.000009 pm
    "%d/%m/%Y %H:%M",           # 23:09
    "%d/%m/%Y %H:%M:%S",        # 23:09:09
    "%d/%m/%Y %H:%M:%S.%f",     # 23:09:09.000009
)


class Meridiem(str, Enum):
    """AM/PM hint for files whose timestamps omit the marker"""
    AM = "am"
    PM = "pm"


@dataclass(frozen=True)
class FlowTimeStamp:
    time: datetime

    def __str__(self) -> str:
        return f"{self.time:%Y-%m-%d %H:%M:%S}.{self.time.microsecond // 1000:03d}"


@dataclass
class ParserState:
    """Sticky format guess for one file's worth of timestamps"""
    last_matched_format: int = 0


def str_to_timestamp(raw: str,
                     meridiem: Optional[Meridiem] = None,
                     guessed_format_index: int = 0) -> Tuple[FlowTimeStamp, int]:
    """
    Parse a CIC timestamp string and report which known format matched.

    The guessed format is tried first; the remaining formats are then tried in
    their fixed order. Feed the returned index back as the next guess when
    parsing records from the same file.

    Args:
        raw: Timestamp field as found in the CSV
        meridiem: Marker to append before parsing, None when unknown
        guessed_format_index: Position in TIME_FORMATS to try first

    Returns:
        Tuple of (timestamp, index of the matching format)

    Raises:
        UnrecognizedTimestampFormat: if no known format matches
    """
    if not 0 <= guessed_format_index < len(TIME_FORMATS):
        raise ValueError(f"Invalid time format index: {guessed_format_index}")

    time_str = raw.strip()
    if meridiem is not None:
        time_str = f"{time_str} {Meridiem(meridiem).value}"

    order = [guessed_format_index] + [
        i for i in range(len(TIME_FORMATS)) if i != guessed_format_index
    ]
    for i in order:
        try:
            time = datetime.strptime(time_str, TIME_FORMATS[i])
        except ValueError:
            continue
        if i != guessed_format_index:
            logger.debug(f"Time format switched from #{guessed_format_index} to #{i} for {time_str!r}")
        return FlowTimeStamp(time), i

    raise UnrecognizedTimestampFormat(time_str)


class TimestampNormalizer:
    """Parses a stream of timestamps from one file, carrying the format guess forward"""

    def __init__(self, meridiem: Optional[Meridiem] = None, state: Optional[ParserState] = None):
        self.meridiem = meridiem
        self.state = state or ParserState()

    def parse(self, raw: str) -> FlowTimeStamp:
        timestamp, index = str_to_timestamp(raw, self.meridiem, self.state.last_matched_format)
        self.state.last_matched_format = index
        return timestamp
