"""Setup shared by the nugetmgr actions: logging and configuration."""

from __future__ import annotations

import logging
import os
import sys
from typing import Any, List

from constants import Constants, ExitCodes, _load_yaml_config
from common.logging_utils import configure_logging

logger = logging.getLogger(__name__)


def setup_logging(args: Any) -> None:
    """Configure logging based on CLI arguments.

    Args:
        args: Parsed CLI arguments.
    """
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.ENV_LOG_LEVEL] = str(args.LOG_LEVEL).upper()

    configure_logging()

    if getattr(args, "QUIET", False):
        root = logging.getLogger()
        for handler in list(root.handlers):
            if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
                root.removeHandler(handler)
        root.addHandler(logging.NullHandler())

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def load_config(args: Any) -> None:
    """Apply the YAML configuration (explicit -c path, env var or default location)."""
    applied = _load_yaml_config(getattr(args, "CONFIG", None))
    if applied:
        logger.debug("Applied %d configuration override(s)", applied)


def load_lines_file(file_name: str) -> List[str]:
    """Load non-empty, non-comment lines from a file.

    Raises:
        SystemExit: When the file cannot be read.
    """
    try:
        with open(file_name, encoding="utf-8") as file:
            return [line.strip() for line in file if line.strip() and not line.strip().startswith("#")]
    except FileNotFoundError as e:
        logging.error("File not found: %s, aborting", e)
        sys.exit(ExitCodes.FILE_ERROR.value)
    except IOError as e:
        logging.error("IO error: %s, aborting", e)
        sys.exit(ExitCodes.FILE_ERROR.value)
