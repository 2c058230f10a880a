import logging
from pathlib import Path
from typing import Sequence, Union

from cic2nf.data_processing.netflow import NetFlow
from cic2nf.errors import IoFailure

logger = logging.getLogger(__name__)


def nf_path(out_dir: Union[str, Path], label_name: str, extension: str = '.nf') -> Path:
    return Path(out_dir) / f"{label_name}{extension}"


def write_nf_file(nf_records: Sequence[NetFlow], path: Union[str, Path]) -> Path:
    """Write one flow per line, overwriting any existing file"""
    path = Path(path)
    if path.exists():
        logger.debug(f"Overwriting {path}")

    try:
        with path.open('w', encoding='utf-8') as f:
            for nf in nf_records:
                f.write(f"{nf}\n")
    except OSError as e:
        raise IoFailure(path, "write NetFlow file") from e

    logger.info(f"Wrote {len(nf_records)} flows to {path}")
    return path
