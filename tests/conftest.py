import pytest

N_COLUMNS = 85
HEADER = ["Flow ID", " Source IP", " Source Port", " Destination IP", " Destination Port",
          " Protocol", " Timestamp", " Flow Duration", " Total Fwd Packets", " Total Backward Packets",
          "Total Length of Fwd Packets", " Total Length of Bwd Packets"]


def make_cic_row(src_ip="192.168.10.5", src_port="443", dst_ip="192.168.10.50", dst_port="80",
                 protocol="6", timestamp="3/7/2017 10:15", duration="1500000",
                 fwd_packets="3", bwd_packets="2", fwd_packets_extra="0", bwd_packets_extra="0",
                 fwd_bytes="120", bwd_bytes="80", label="BENIGN", n_columns=N_COLUMNS):
    row = ["0"] * N_COLUMNS
    row[0] = f"{dst_ip}-{src_ip}-{dst_port}-{src_port}-{protocol}"
    row[1], row[2], row[3], row[4], row[5] = src_ip, src_port, dst_ip, dst_port, protocol
    row[6], row[7] = timestamp, duration
    row[8], row[9], row[10], row[11] = fwd_packets, bwd_packets, fwd_bytes, bwd_bytes
    row[40], row[41] = fwd_packets_extra, bwd_packets_extra
    row[84] = label
    if n_columns < N_COLUMNS:
        return row[:n_columns]
    return row + ["0"] * (n_columns - N_COLUMNS)


@pytest.fixture
def write_cic_csv(tmp_path):
    """Write rows (lists of fields) under a CIC-style header and return the path"""
    def _write(rows, name="flows.csv"):
        header = HEADER + [f" Column {i}" for i in range(len(HEADER), N_COLUMNS - 1)] + [" Label"]
        lines = [",".join(header)] + [",".join(row) for row in rows]
        path = tmp_path / name
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path
    return _write


@pytest.fixture
def cic_row():
    return make_cic_row
