"""Logging setup for CLI"""

import logging
import os

import settings


def setup_logging(debug: bool = False) -> None:
    """
    Configure the root logger

    Args:
        debug: Append DEBUG output to the debug log file and the console
    """
    root_logger = logging.getLogger()

    # Clear existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if not debug:
        level = getattr(logging, str(settings.LOG_LEVEL).upper(), logging.WARNING)
        root_logger.setLevel(level)
        console_handler.setLevel(level)
        return

    root_logger.setLevel(logging.DEBUG)
    console_handler.setLevel(logging.DEBUG)

    log_file = os.path.abspath(settings.DEBUG_LOG_FILE)
    file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')  # 'a' to append
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    logging.getLogger(__name__).info(f"Debug logging enabled - appending to {log_file}")
