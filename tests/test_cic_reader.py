import logging
import pytest
from datetime import datetime, timedelta

from cic2nf.data_processing.cic_reader import CICReader, Label, LabelIndexer, read_ids_csv
from cic2nf.data_processing.timestamp import Meridiem
from cic2nf.errors import (
    IoFailure,
    MalformedRow,
    NumericParseFailure,
    UnrecognizedTimestampFormat,
)


@pytest.fixture
def reader():
    return CICReader("BENIGN")


def warnings_in(caplog):
    return [r for r in caplog.records if r.levelno == logging.WARNING]


def test_read_parses_fields(reader, write_cic_csv, cic_row):
    path = write_cic_csv([
        cic_row(fwd_packets="3", fwd_packets_extra="40", bwd_packets="2.0", bwd_packets_extra="20",
                fwd_bytes="120.0", bwd_bytes="80.9", duration="1500000"),
    ])

    records, label_map = reader.read(path)

    assert len(records) == 1
    record = records[0]
    assert record.src_ip == "192.168.10.5"
    assert record.src_port == 443
    assert record.dst_ip == "192.168.10.50"
    assert record.dst_port == 80
    assert record.protocol == 6
    assert record.timestamp.time == datetime(2017, 7, 3, 10, 15)
    assert record.duration == timedelta(microseconds=1500000)
    assert record.n_packet == (43, 22)
    assert record.n_bytes_packet == (120, 80)
    assert record.label == Label("BENIGN", 1)
    assert label_map == {"BENIGN": 1}


def test_fields_are_trimmed(reader, write_cic_csv, cic_row):
    path = write_cic_csv([cic_row(src_ip=" 10.0.0.1", src_port=" 53", timestamp=" 3/7/2017 10:15",
                                  label=" DDoS")])
    records, label_map = reader.read(path)
    assert records[0].src_ip == "10.0.0.1"
    assert records[0].src_port == 53
    assert records[0].label.name == "DDoS"
    assert label_map == {"BENIGN": 1, "DDoS": 2}


def test_labels_indexed_in_first_seen_order(reader, write_cic_csv, cic_row):
    path = write_cic_csv([
        cic_row(label="PortScan"),
        cic_row(label="BENIGN"),
        cic_row(label="DDoS"),
        cic_row(label="PortScan"),
    ])
    records, label_map = reader.read(path)

    assert label_map == {"BENIGN": 1, "PortScan": 2, "DDoS": 3}
    assert [r.label.index for r in records] == [2, 1, 3, 2]

    # same file, same order, same indices
    _, again = CICReader("BENIGN").read(path)
    assert again == label_map


def test_label_indexer_keeps_benign_at_one():
    indexer = LabelIndexer("benign")
    assert indexer.index_of("Bot") == 2
    assert indexer.index_of("benign") == 1
    assert indexer.index_of("Bot") == 2
    assert indexer.index_of("Infiltration") == 3
    assert indexer.label_map == {"benign": 1, "Bot": 2, "Infiltration": 3}


def test_short_row_is_skipped_with_one_warning(reader, write_cic_csv, cic_row, caplog):
    path = write_cic_csv([
        cic_row(label="BENIGN"),
        cic_row(n_columns=84),
        cic_row(label="PortScan"),
    ])
    with caplog.at_level(logging.WARNING):
        records, label_map = reader.read(path)

    assert len(records) == 2
    assert len(warnings_in(caplog)) == 1
    assert reader.skipped_rows == 1
    assert label_map == {"BENIGN": 1, "PortScan": 2}


def test_long_row_is_skipped(reader, write_cic_csv, cic_row, caplog):
    path = write_cic_csv([cic_row(), cic_row(n_columns=86), cic_row()])
    with caplog.at_level(logging.WARNING):
        records, _ = reader.read(path)

    assert len(records) == 2
    assert len(warnings_in(caplog)) == 1


def test_malformed_row_raises_when_not_skipping(write_cic_csv, cic_row):
    path = write_cic_csv([cic_row(), cic_row(n_columns=84)])
    with pytest.raises(MalformedRow) as exc_info:
        CICReader("BENIGN", skip_malformed_rows=False).read(path)
    assert exc_info.value.row_number == 2
    assert len(exc_info.value.fields) == 84


@pytest.mark.parametrize("overrides, column", [
    ({"src_port": "https"}, 2),
    ({"dst_port": "-80"}, 4),
    ({"protocol": "256"}, 5),
    ({"duration": "1.5"}, 7),
    ({"duration": "99999999999999999999"}, 7),
    ({"duration": "-9223372036854775809"}, 7),
    ({"src_port": "99999999999"}, 2),
    ({"fwd_packets": "three"}, 8),
    ({"bwd_bytes": "inf"}, 11),
])
def test_bad_numbers_are_fatal(reader, write_cic_csv, cic_row, overrides, column):
    path = write_cic_csv([cic_row(), cic_row(**overrides)])
    with pytest.raises(NumericParseFailure) as exc_info:
        reader.read(path)
    assert exc_info.value.row_number == 2
    assert exc_info.value.column == column


def test_unknown_timestamp_is_fatal(reader, write_cic_csv, cic_row):
    path = write_cic_csv([cic_row(), cic_row(timestamp="2017-07-03 10:15")])
    with pytest.raises(UnrecognizedTimestampFormat) as exc_info:
        reader.read(path)
    assert exc_info.value.row_number == 2
    assert exc_info.value.path == path


def test_mixed_timestamp_formats(write_cic_csv, cic_row):
    path = write_cic_csv([
        cic_row(timestamp="3/7/2017 10:15"),
        cic_row(timestamp="3/7/2017 10:15:30"),
        cic_row(timestamp="3/7/2017 10:15:30.250000"),
    ])
    records, _ = CICReader("BENIGN", Meridiem.PM).read(path)
    assert [r.timestamp.time for r in records] == [
        datetime(2017, 7, 3, 22, 15),
        datetime(2017, 7, 3, 22, 15, 30),
        datetime(2017, 7, 3, 22, 15, 30, 250000),
    ]


def test_header_only_file(reader, write_cic_csv):
    records, label_map = reader.read(write_cic_csv([]))
    assert records == []
    assert label_map == {"BENIGN": 1}


def test_missing_file(reader, tmp_path):
    with pytest.raises(IoFailure):
        reader.read(tmp_path / "missing.csv")


def test_read_ids_csv(write_cic_csv, cic_row):
    path = write_cic_csv([cic_row(label="Bot"), cic_row(label="benign")])
    records, label_map = read_ids_csv(path, None, "benign")
    assert label_map == {"benign": 1, "Bot": 2}
    assert [r.label.index for r in records] == [2, 1]


def test_out_of_range_duration_is_reported_as_numeric_failure(reader, write_cic_csv, cic_row):
    path = write_cic_csv([cic_row(duration="99999999999999999999")])
    with pytest.raises(NumericParseFailure) as exc_info:
        reader.read(path)
    assert "out of range" in str(exc_info.value)


def test_largest_port_is_accepted(reader, write_cic_csv, cic_row):
    records, _ = reader.read(write_cic_csv([cic_row(dst_port="4294967295")]))
    assert records[0].dst_port == 4294967295
