import logging
import math
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd

from cic2nf.data_processing.timestamp import FlowTimeStamp, Meridiem, TimestampNormalizer
from cic2nf.errors import (
    IoFailure,
    MalformedRow,
    NumericParseFailure,
    UnrecognizedTimestampFormat,
)

logger = logging.getLogger(__name__)

# Column positions in a CIC-IDS-2017 row (column 0 is the flow id)
SRC_IP = 1
SRC_PORT = 2
DST_IP = 3
DST_PORT = 4
PROTOCOL = 5
TIMESTAMP = 6
DURATION = 7
FWD_PACKETS = (8, 40)
BWD_PACKETS = (9, 41)
FWD_BYTES = 10
BWD_BYTES = 11
LABEL = 84

CIC_IDS_2017_COLUMNS = 85

U32_MAX = 0xFFFFFFFF
I64_MIN = -(2 ** 63)
I64_MAX = 2 ** 63 - 1
BENIGN_INDEX = 1


@dataclass
class Label:
    name: str
    index: int = 0  # 0 for no index, 1 for benign


@dataclass
class CICRecord:
    """
    A row of a CIC dataset in CSV format.
    For each pair-valued field, [0] is forward and [1] is backward.
    """
    src_ip: str
    src_port: int
    dst_ip: str
    dst_port: int
    protocol: int
    timestamp: FlowTimeStamp
    duration: timedelta
    n_packet: Tuple[int, int]
    n_bytes_packet: Tuple[int, int]
    label: Label = field(default_factory=lambda: Label(''))


class LabelIndexer:
    """Assigns label indices: benign is 1, other names 2, 3, ... in first-seen order"""

    def __init__(self, benign_label_name: str):
        self.benign_label_name = benign_label_name
        self.label_map: Dict[str, int] = {benign_label_name: BENIGN_INDEX}

    def index_of(self, name: str) -> int:
        index = self.label_map.get(name)
        if index is None:
            index = len(self.label_map) + 1
            self.label_map[name] = index
            logger.debug(f"New label {name!r} -> index {index}")
        return index

    def assign(self, records: Sequence[CICRecord]) -> Dict[str, int]:
        for record in records:
            record.label.index = self.index_of(record.label.name)
        return dict(self.label_map)


class CICReader:
    """Loads one CIC-IDS-2017 CSV file into CICRecord's"""

    def __init__(self,
                 benign_label_name: str,
                 meridiem: Optional[Meridiem] = None,
                 expected_columns: int = CIC_IDS_2017_COLUMNS,
                 encoding: str = 'utf-8',
                 skip_malformed_rows: bool = True):
        self.benign_label_name = benign_label_name
        self.meridiem = meridiem
        self.expected_columns = expected_columns
        self.encoding = encoding
        self.skip_malformed_rows = skip_malformed_rows
        self.skipped_rows = 0

    def _validate_file_path(self, path: Union[str, Path]) -> Path:
        """Ensure path exists and is a file"""
        path = Path(path)
        if not path.exists() or not path.is_file():
            raise IoFailure(path, "read CSV file")
        return path

    def _reject_row(self, path: Path, fields: Sequence[str], row_number: Optional[int]) -> None:
        error = MalformedRow(path, fields, self.expected_columns, row_number)
        if not self.skip_malformed_rows:
            raise error
        self.skipped_rows += 1
        logger.warning(f"Skipped CSV record: {error}")

    def _load_rows(self, path: Path) -> pd.DataFrame:
        def on_long_row(bad_line: List[str]) -> None:
            self._reject_row(path, bad_line, None)
            return None

        try:
            # rows shorter than the header are padded with NaN, longer
            # ones go to on_long_row; a callable on_bad_lines needs the
            # python engine
            return pd.read_csv(
                path,
                header=0,
                names=list(range(self.expected_columns)),
                dtype=str,
                keep_default_na=False,
                engine='python',
                on_bad_lines=on_long_row,
                encoding=self.encoding,
            )
        except pd.errors.EmptyDataError:
            return pd.DataFrame(columns=list(range(self.expected_columns)), dtype=str)
        except (OSError, UnicodeDecodeError) as e:
            raise IoFailure(path, "read CSV file") from e

    def read(self, path: Union[str, Path]) -> Tuple[List[CICRecord], Dict[str, int]]:
        """
        Parse every well-formed row of a CSV file, then index the labels.

        Args:
            path: CSV file with a header row

        Returns:
            Tuple of (records, label name -> index mapping)
        """
        path = self._validate_file_path(path)
        self.skipped_rows = 0
        normalizer = TimestampNormalizer(self.meridiem)

        df = self._load_rows(path)
        records = []
        for row_number, row in enumerate(df.itertuples(index=False, name=None), start=1):
            present = [value for value in row if not pd.isna(value)]
            if len(present) != self.expected_columns:
                self._reject_row(path, present, row_number)
                continue
            records.append(self._parse_row(path, row_number, row, normalizer))

        label_map = LabelIndexer(self.benign_label_name).assign(records)

        logger.info(
            f"Loaded {len(records)} records from {path} "
            f"({self.skipped_rows} skipped, {len(label_map)} labels)"
        )
        return records, label_map

    def _parse_row(self, path: Path, row_number: int, row: Sequence[str],
                   normalizer: TimestampNormalizer) -> CICRecord:
        fields = [str(value).strip() for value in row]

        def unsigned(column: int, max_value: Optional[int] = None) -> int:
            value = fields[column]
            try:
                number = int(value)
            except ValueError as e:
                raise NumericParseFailure(path, row_number, column, value) from e
            if number < 0 or (max_value is not None and number > max_value):
                raise NumericParseFailure(path, row_number, column, value, "out of range")
            return number

        def count(column: int) -> int:
            # counts are sometimes rendered as "12.0"
            value = fields[column]
            try:
                number = float(value)
            except ValueError as e:
                raise NumericParseFailure(path, row_number, column, value) from e
            if not math.isfinite(number):
                raise NumericParseFailure(path, row_number, column, value, "not finite")
            return int(number)

        try:
            microseconds = int(fields[DURATION])
        except ValueError as e:
            raise NumericParseFailure(path, row_number, DURATION, fields[DURATION]) from e
        if not I64_MIN <= microseconds <= I64_MAX:
            raise NumericParseFailure(path, row_number, DURATION, fields[DURATION], "out of range")
        try:
            duration = timedelta(microseconds=microseconds)
        except OverflowError as e:
            raise NumericParseFailure(path, row_number, DURATION, fields[DURATION], "out of range") from e

        try:
            timestamp = normalizer.parse(fields[TIMESTAMP])
        except UnrecognizedTimestampFormat as e:
            raise UnrecognizedTimestampFormat(e.value, path, row_number) from e

        return CICRecord(
            src_ip=fields[SRC_IP],
            src_port=unsigned(SRC_PORT, U32_MAX),
            dst_ip=fields[DST_IP],
            dst_port=unsigned(DST_PORT, U32_MAX),
            protocol=unsigned(PROTOCOL, 255),
            timestamp=timestamp,
            duration=duration,
            n_packet=(
                count(FWD_PACKETS[0]) + count(FWD_PACKETS[1]),
                count(BWD_PACKETS[0]) + count(BWD_PACKETS[1]),
            ),
            n_bytes_packet=(count(FWD_BYTES), count(BWD_BYTES)),
            label=Label(fields[LABEL]),
        )


def read_ids_csv(path: Union[str, Path],
                 meridiem: Optional[Meridiem],
                 benign_label_name: str) -> Tuple[List[CICRecord], Dict[str, int]]:
    """Read one CIC-IDS-2017 CSV file with a fresh reader"""
    return CICReader(benign_label_name, meridiem).read(path)
