"""
Logging setup built on loguru.

Modules obtain a bound logger with ``get_logger(__name__)``; the CLI calls
``configure_logging`` once with the requested level. All log records go to
stderr so they never interleave with the forwarding lines on stdout.
"""

import sys
import traceback

from loguru import logger

from ctrfwd.models.enums import LogLevel

LOG_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> - <level>{message}</level>"
)


def _stderr_sink(message) -> None:
    # Resolve sys.stderr per record so redirected streams are honored
    sys.stderr.write(message)


def _add_sink(level: str) -> int:
    return logger.add(
        _stderr_sink,
        level=level,
        format=LOG_FORMAT,
        colorize=sys.stderr.isatty(),
    )


# Until configure_logging() runs only warnings and above are emitted
logger.remove()
_handler_id: int | None = _add_sink("WARNING")


def configure_logging(level: LogLevel | str = LogLevel.WARNING) -> None:
    """
    (Re)configure the stderr sink.

    Args:
        level: Minimum level to emit.
    """
    global _handler_id
    if isinstance(level, LogLevel):
        level = level.value
    if _handler_id is not None:
        logger.remove(_handler_id)
    _handler_id = _add_sink(level.upper())


def get_logger(name: str):
    """Get a logger bound to a module name."""
    return logger.bind(name=name)


def format_traceback(e: BaseException) -> str:
    """Format an exception with its traceback for debug logging."""
    return "".join(traceback.format_exception(type(e), e, e.__traceback__))
