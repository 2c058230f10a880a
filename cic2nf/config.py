import os
from pathlib import Path
from dotenv import load_dotenv
from typing import Dict, Any

# Load environment variables from .env file
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'y')


class Config:
    """Centralized configuration for the CIC-to-NetFlow converter"""

    def __init__(self):
        # =====================
        # Dataset
        # =====================
        self.SUPPORTED_DATASETS = ('CIC-IDS-2017',)
        self.EXPECTED_COLUMNS = 85
        self.CSV_ENCODING = os.getenv('CIC2NF_CSV_ENCODING', 'utf-8')

        # =====================
        # Output
        # =====================
        self.NF_EXTENSION = '.nf'

        # =====================
        # Error policy
        # =====================
        self.SKIP_MALFORMED_ROWS = _env_flag('CIC2NF_SKIP_MALFORMED_ROWS', 'true')
        self.CLAMP_NEGATIVE_DURATIONS = _env_flag('CIC2NF_CLAMP_NEGATIVE_DURATIONS', 'true')

        # =====================
        # Logging
        # =====================
        self.LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
        self.LOG_DIR = Path(os.getenv('CIC2NF_LOG_DIR', 'logs'))
        self.LOG_TO_FILE = _env_flag('CIC2NF_LOG_TO_FILE', 'false')

    @property
    def conversion_settings(self) -> Dict[str, Any]:
        """Get the settings consumed by the conversion pipeline"""
        return {
            'expected_columns': self.EXPECTED_COLUMNS,
            'encoding': self.CSV_ENCODING,
            'nf_extension': self.NF_EXTENSION,
            'skip_malformed_rows': self.SKIP_MALFORMED_ROWS,
            'clamp_negative_durations': self.CLAMP_NEGATIVE_DURATIONS,
        }
