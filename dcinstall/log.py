"""Console and per-run log file setup.

Usage:
  from dcinstall.log import configure_logging
  log_file = configure_logging(settings.log_path)
  logger = logging.getLogger(__name__)
  logger.info("Checking the terraform state.")

Every run writes to a new ``terraform-dc-install_<timestamp>.log`` file so the
output of consecutive runs never mixes.
"""

import logging
import sys
import time
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_PREFIX = "terraform-dc-install"

_log_file: Optional[Path] = None


def run_log_file(log_dir: Path) -> Path:
    timestamp = time.strftime("%Y-%m-%d_%H-%M-%S")
    return log_dir / f"{LOG_FILE_PREFIX}_{timestamp}.log"


def configure_logging(log_dir: Path, level: str = "INFO") -> Path:
    """Send log records to stderr and to a timestamped file under ``log_dir``.

    Idempotent: later calls return the file chosen by the first call.
    """
    global _log_file
    if _log_file is not None:
        return _log_file

    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = run_log_file(log_dir)
    log_file.touch()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(formatter)

    package_logger = logging.getLogger("dcinstall")
    package_logger.addHandler(console)
    package_logger.addHandler(file_handler)
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    _log_file = log_file
    return log_file
