# cic2nf/data_processing/netflow.py

import logging
from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import Dict, List, Sequence, Tuple

from cic2nf.data_processing.cic_reader import CICRecord, Label
from cic2nf.data_processing.timestamp import FlowTimeStamp
from cic2nf.errors import InvalidDuration

logger = logging.getLogger(__name__)

DURATION_ZERO = timedelta(0)
DURATION_MINUS_ONE_US = timedelta(microseconds=-1)


@dataclass(frozen=True)
class Flags:
    cwr: bool = False
    ece: bool = False
    urg: bool = False
    ack: bool = False
    psh: bool = False
    rst: bool = False
    syn: bool = False
    fin: bool = False

    def __str__(self) -> str:
        bits = (self.cwr, self.ece, self.urg, self.ack, self.psh, self.rst, self.syn, self.fin)
        return ''.join(c if bit else '.' for c, bit in zip('CEUAPRSF', bits))


@dataclass
class NetFlow:
    """One directional flow, printable as a NetFlow v5 style text line"""
    timestamp: FlowTimeStamp
    duration: timedelta
    protocol: int
    src_ip: str
    src_port: int
    dst_ip: str
    dst_port: int
    n_packet: int
    n_bytes_packet: int
    label: Label
    flags: Flags = field(default_factory=Flags)
    qos: float = 0.0
    n_flow: int = 1
    duration_str_width: int = 0

    @property
    def duration_ms(self) -> int:
        return self.duration // timedelta(milliseconds=1)

    def format_duration(self) -> str:
        seconds, ms = divmod(self.duration_ms, 1000)
        return f"{seconds}.{ms}".rjust(self.duration_str_width)

    def __str__(self) -> str:
        return (
            f"{self.timestamp} {self.format_duration()} {self.protocol:>3} "
            f"{self.src_ip:>15}:{self.src_port:<5} ->   {self.dst_ip:>15}:{self.dst_port:<5} "
            f"{self.qos:>3g} {str(self.flags):<8} {self.n_packet:>8} {self.n_bytes_packet:>8} {self.n_flow:>5}"
        )


def get_n_digit_in_decimal(x: int) -> int:
    return len(str(abs(x)))


def duration_str_width(max_duration_ms: int) -> int:
    """Width that fits "<s>.<ms>" for every duration up to max_duration_ms"""
    width = get_n_digit_in_decimal(max_duration_ms) + 1
    if max_duration_ms < 1000:
        width += 1
    return width


class FlowTransformer:
    """Expands CICRecord's into forward and reverse NetFlow's"""

    def __init__(self, clamp_negative_durations: bool = True):
        self.clamp_negative_durations = clamp_negative_durations

    def normalize_duration(self, record: CICRecord) -> timedelta:
        duration = record.duration
        if duration >= DURATION_ZERO:
            return duration

        microseconds = duration // timedelta(microseconds=1)
        if not self.clamp_negative_durations:
            raise InvalidDuration(microseconds, record)

        if duration == DURATION_MINUS_ONE_US:
            logger.warning("Duration of -1 us; convert it to 0.")
        else:
            logger.warning(
                f"Duration less than -1 us; convert it to 0. Duration: {microseconds} us, record: {record!r}"
            )
        return DURATION_ZERO

    def to_netflows(self, record: CICRecord) -> Tuple[NetFlow, NetFlow]:
        duration = self.normalize_duration(record)
        forward = NetFlow(
            timestamp=record.timestamp,
            duration=duration,
            protocol=record.protocol,
            src_ip=record.src_ip,
            src_port=record.src_port,
            dst_ip=record.dst_ip,
            dst_port=record.dst_port,
            n_packet=record.n_packet[0],
            n_bytes_packet=record.n_bytes_packet[0],
            label=replace(record.label),
        )
        backward = replace(
            forward,
            src_ip=record.dst_ip,
            src_port=record.dst_port,
            dst_ip=record.src_ip,
            dst_port=record.src_port,
            n_packet=record.n_packet[1],
            n_bytes_packet=record.n_bytes_packet[1],
            label=replace(record.label),
        )
        return forward, backward

    def transform(self, records: Sequence[CICRecord]) -> List[NetFlow]:
        """
        Convert a whole file's records; every output shares one duration width.

        Args:
            records: Parsed and label-indexed records of one file

        Returns:
            List of NetFlow's, forward then backward for each record
        """
        netflows = []
        max_duration_ms = 0
        for record in records:
            for nf in self.to_netflows(record):
                max_duration_ms = max(max_duration_ms, nf.duration_ms)
                netflows.append(nf)

        width = duration_str_width(max_duration_ms)
        for nf in netflows:
            nf.duration_str_width = width

        logger.info(f"Converted {len(records)} records to {len(netflows)} flows (duration width {width})")
        return netflows


def cic_to_nf_batch(records: Sequence[CICRecord]) -> List[NetFlow]:
    return FlowTransformer().transform(records)


def categorize_nf(nf_records: Sequence[NetFlow], label_map: Dict[str, int]) -> List[List[NetFlow]]:
    """Group flows by label index; group i holds index i + 1, so group 0 is benign"""
    categorized = [[] for _ in range(len(label_map))]
    for nf in nf_records:
        index = nf.label.index
        if not 1 <= index <= len(categorized):
            raise ValueError(
                f"Label {nf.label.name!r} has index {index}, outside 1..{len(categorized)}"
            )
        categorized[index - 1].append(nf)
    return categorized
