"""
Logging configuration for solloc.

All solloc modules log through children of the ``solloc`` logger. The host
application decides where records go by calling :func:`setup_logging`; a
library user who never calls it gets the stdlib defaults.
"""

import logging
import sys
from typing import Optional

from .colors import Colors

# Per-lookup detail (cache hits), noisier than DEBUG
TRACE = 5
logging.addLevelName(TRACE, 'TRACE')


class ColoredFormatter(logging.Formatter):
    """Formatter that prefixes the level name with an ANSI color."""

    LEVEL_COLORS = {
        TRACE: Colors.DIM,
        logging.DEBUG: Colors.DIM,
        logging.INFO: Colors.BRIGHT_CYAN,
        logging.WARNING: Colors.BRIGHT_YELLOW,
        logging.ERROR: Colors.BRIGHT_RED,
        logging.CRITICAL: Colors.BOLD + Colors.BRIGHT_RED,
    }

    def __init__(self, fmt: str = None, datefmt: str = None, use_colors: bool = True):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return super().format(record)
        color = self.LEVEL_COLORS.get(record.levelno, '')
        original = record.levelname
        record.levelname = f"{color}{original}{Colors.RESET if color else ''}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


class SolLocLogger(logging.Logger):
    """Logger with a ``trace`` method for the TRACE level."""

    def trace(self, msg, *args, **kwargs):
        if self.isEnabledFor(TRACE):
            self._log(TRACE, msg, args, **kwargs)


logging.setLoggerClass(SolLocLogger)


def setup_logging(
    level: int = logging.WARNING,
    quiet: bool = False,
    debug: bool = False,
    verbose: bool = False,
    log_file: Optional[str] = None,
    use_colors: bool = True
) -> logging.Logger:
    """
    Configure the ``solloc`` logger.

    Args:
        level: Base logging level
        quiet: If True, no console handler is installed
        debug: If True, set level to DEBUG
        verbose: If True, set level to TRACE (every cache hit is logged)
        log_file: Optional path of a file receiving every record
        use_colors: Whether to color the console level names

    Returns:
        The configured ``solloc`` logger
    """
    if verbose:
        effective_level = TRACE
    elif debug:
        effective_level = logging.DEBUG
    else:
        effective_level = level

    logger = logging.getLogger('solloc')
    logger.setLevel(TRACE if log_file else effective_level)
    logger.handlers.clear()
    logger.propagate = False

    if not quiet:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(effective_level)
        supports_color = (
            use_colors
            and hasattr(sys.stderr, 'isatty')
            and sys.stderr.isatty()
        )
        console_handler.setFormatter(ColoredFormatter(
            fmt='%(levelname)s: %(message)s',
            use_colors=supports_color
        ))
        logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(TRACE)
        file_handler.setFormatter(logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = None) -> logging.Logger:
    """
    Return the ``solloc`` logger, or its child ``solloc.<name>``.
    """
    if name:
        return logging.getLogger(f'solloc.{name}')
    return logging.getLogger('solloc')


logger = get_logger()
