"""
Logging configuration for the verifier.

Console output follows the configured level. A log file, when given,
always records DEBUG, which keeps every executed docker command.
"""

import logging
import os
import sys

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Chatty at DEBUG; a verification run only needs their warnings
NOISY_LOGGERS = ('urllib3', 'bs4')


def setup_logging(
    level: str = 'INFO',
    format_str: str = None,
    log_file: str = None
) -> logging.Logger:
    """
    Install console and optional file handlers on the root logger.

    Handlers from an earlier call are replaced, so calling this twice does
    not duplicate output.

    Args:
        level: Console log level name (DEBUG, INFO, WARNING, ERROR)
        format_str: Log message format
        log_file: Optional file that receives every record at DEBUG

    Returns:
        The root logger
    """
    console_level = getattr(logging, str(level).upper(), logging.INFO)
    formatter = logging.Formatter(format_str or DEFAULT_FORMAT)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    root_level = console_level
    if log_file:
        os.makedirs(os.path.dirname(log_file) or '.', exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        root_level = logging.DEBUG

    root_logger.setLevel(root_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(console_level, logging.WARNING))

    return root_logger
