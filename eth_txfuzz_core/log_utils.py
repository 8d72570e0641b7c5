"""
Logging setup driven by the values in config.py.
"""
import logging
from typing import List, Optional

from . import config as core_config


def configure_logging(level: Optional[str] = None,
                      to_file: Optional[bool] = None,
                      file_path: Optional[str] = None) -> None:
    """
    Configures the root logger for a fuzzing run.

    :param level: Log level name, defaults to core_config.LOG_LEVEL.
    :param to_file: Whether to also write to a file, defaults to core_config.LOG_TO_FILE.
    :param file_path: Log file path, defaults to core_config.LOG_FILE_PATH.
    """
    level = level or core_config.LOG_LEVEL
    to_file = core_config.LOG_TO_FILE if to_file is None else to_file
    file_path = file_path or core_config.LOG_FILE_PATH

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if to_file:
        handlers.append(logging.FileHandler(file_path))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=core_config.LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
