import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from cic2nf.config import Config
from cic2nf.data_processing.timestamp import Meridiem
from cic2nf.errors import ConversionError
from cic2nf.pipeline import ConversionPipeline, ConversionRequest
from cic2nf.utils.logger import setup_logging

logger = logging.getLogger(__name__)

MERIDIEM_CHOICES = {'y': Meridiem.AM, 'n': Meridiem.PM}

EPILOG = """\
Example (load single csv file):
  cic2nf CIC-IDS-2017 BENIGN nf-dir input/data.csv y

Example (load csv files recursively):
  cic2nf -R CIC-IDS-2017 BENIGN out/nf-dir csv-dir
"""


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="cic2nf",
        description="Convert CIC datasets in CSV files to categorized NetFlow v5 files.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    ap.add_argument("-R", dest="recursive", action="store_true",
                    help="Treat in_path as a directory and look for CSV files recursively")
    ap.add_argument("dataset", help="Dataset type, e.g. CIC-IDS-2017")
    ap.add_argument("benign_label_name", help="Label name of benign traffic, e.g. BENIGN")
    ap.add_argument("out_dir", type=Path, help="Directory receiving one <label>.nf file per label")
    ap.add_argument("in_path", type=Path, help="CSV file (or directory with -R)")
    ap.add_argument("is_am", nargs="?", choices=sorted(MERIDIEM_CHOICES),
                    help="y: times are AM, n: times are PM; omit when the timestamps say so")
    return ap


def find_csv_files(in_dir: Path) -> List[Path]:
    return sorted(p for p in Path(in_dir).glob("**/*.csv") if p.is_file())


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    parser = build_parser()
    if not argv:
        parser.print_help()
        return 0

    args = parser.parse_args(argv)
    config = Config()
    setup_logging(
        config.LOG_LEVEL,
        config.LOG_DIR / "cic2nf.log" if config.LOG_TO_FILE else None,
    )

    if args.dataset not in config.SUPPORTED_DATASETS:
        logger.error(
            f"Unsupported dataset {args.dataset!r}; supported: {', '.join(config.SUPPORTED_DATASETS)}"
        )
        return 1

    if args.recursive:
        csv_files = find_csv_files(args.in_path)
        logger.info(f"Found {len(csv_files)} CSV file(s) under {args.in_path}:")
        for path in csv_files:
            logger.info(f"  {path}")
        logger.error("Recursive conversion (-R) is not implemented yet")
        return 2

    try:
        request = ConversionRequest(
            in_path=args.in_path,
            out_dir=args.out_dir,
            benign_label_name=args.benign_label_name,
            meridiem=MERIDIEM_CHOICES.get(args.is_am),
        )
        pipeline = ConversionPipeline(config)
        pipeline.convert_file(request)
        pipeline.performance_monitor.log_summary()
    except ValidationError as e:
        logger.error(f"Invalid arguments: {e}")
        return 1
    except ConversionError as e:
        logger.error(f"Conversion failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
