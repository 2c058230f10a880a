import logging
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, field_validator

from cic2nf.config import Config
from cic2nf.data_processing.cic_reader import CICReader
from cic2nf.data_processing.netflow import FlowTransformer, categorize_nf
from cic2nf.data_processing.nf_writer import nf_path, write_nf_file
from cic2nf.data_processing.timestamp import Meridiem
from cic2nf.errors import IoFailure
from cic2nf.utils.performance_monitor import PerformanceMonitor

logger = logging.getLogger(__name__)


class ConversionRequest(BaseModel):
    """One CSV file to convert, and where its .nf files go"""
    in_path: Path
    out_dir: Path
    benign_label_name: str
    meridiem: Optional[Meridiem] = None

    @field_validator('benign_label_name')
    @classmethod
    def _strip_label(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("benign label name must not be empty")
        return value


class ConversionPipeline:
    """Reader -> transformer -> categorizer -> writer, for one file at a time"""

    def __init__(self, config: Optional[Config] = None,
                 performance_monitor: Optional[PerformanceMonitor] = None):
        self.config = config or Config()
        self.performance_monitor = performance_monitor or PerformanceMonitor()

    def convert_file(self, request: ConversionRequest) -> Dict[str, Path]:
        """
        Convert one CIC CSV file into per-label NetFlow text files.

        Args:
            request: Input path, output directory, benign label and AM/PM hint

        Returns:
            Written file paths keyed by label name
        """
        settings = self.config.conversion_settings
        logger.info(f"Converting {request.in_path} -> {request.out_dir}")

        # Reader state (format guess, label map) lives for this file only
        reader = CICReader(
            request.benign_label_name,
            request.meridiem,
            expected_columns=settings['expected_columns'],
            encoding=settings['encoding'],
            skip_malformed_rows=settings['skip_malformed_rows'],
        )
        with self.performance_monitor.track("read"):
            cic_records, label_map = reader.read(request.in_path)

        transformer = FlowTransformer(settings['clamp_negative_durations'])
        with self.performance_monitor.track("transform"):
            nf_records = transformer.transform(cic_records)

        try:
            request.out_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IoFailure(request.out_dir, "create output directory") from e

        written = {}
        with self.performance_monitor.track("write"):
            for nf_one_category in categorize_nf(nf_records, label_map):
                if not nf_one_category:
                    continue
                label_name = nf_one_category[0].label.name
                out_path = nf_path(request.out_dir, label_name, settings['nf_extension'])
                written[label_name] = write_nf_file(nf_one_category, out_path)

        logger.info(f"Wrote {len(written)} label file(s) for {request.in_path}")
        return written


def convert_cic_file_to_nf_files(in_path, out_dir, meridiem: Optional[Meridiem],
                                 benign_label_name: str) -> Dict[str, Path]:
    request = ConversionRequest(
        in_path=in_path,
        out_dir=out_dir,
        benign_label_name=benign_label_name,
        meridiem=meridiem,
    )
    return ConversionPipeline().convert_file(request)
