"""
Logger setup for peer-dependency-checker.
"""

import logging
import sys


def setup_logger(verbose=False):
    """
    Configure logging for command-line use.

    Diagnostics go to stderr so that reports printed on stdout, JSON in
    particular, stay clean.

    Args:
        verbose (bool, optional): Log debug details. Defaults to False.

    Returns:
        logging.Logger: The package logger.
    """
    logger = logging.getLogger("peer_dependency_checker")
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        logger.addHandler(handler)

    return logger
