"""Temporary log level control.

Used to silence chatty loggers for the duration of one operation while still
letting warnings and errors through, for example the ``CONFIG`` logger while
the CLI loads ``config.yml``, or paramiko's transport logger while a status
check runs.

Examples:
    Quiet a single logger::

        >>> with quiet_logger('CONFIG'):
        ...     get_config_builder(path)  # No INFO messages shown

    Show only errors from several loggers::

        >>> with suppress_logger_level(['CONFIG', 'paramiko'], logging.ERROR):
        ...     do_something()
"""

import logging
from contextlib import contextmanager


@contextmanager
def suppress_logger_level(logger_name: str | list[str], level: int):
    """Context manager to temporarily raise logger level to suppress messages.

    Args:
        logger_name: Name of logger(s) to modify. Can be a single string
            or list of strings for multiple loggers.
        level: The temporary log level to set. Messages below this level
            will be suppressed.

    Yields:
        Dictionary mapping logger names to their original levels

    .. note::
       Original levels are restored even when the block raises.
    """
    logger_names = [logger_name] if isinstance(logger_name, str) else logger_name

    loggers = [logging.getLogger(name) for name in logger_names]
    original_levels = {name: logger.level for name, logger in zip(logger_names, loggers)}

    for logger in loggers:
        logger.setLevel(level)

    try:
        yield original_levels
    finally:
        for name, logger in zip(logger_names, loggers):
            logger.setLevel(original_levels[name])


@contextmanager
def quiet_logger(logger_name: str | list[str]):
    """Context manager to temporarily suppress INFO-level messages from logger(s).

    Equivalent to ``suppress_logger_level(logger_name, logging.WARNING)``.

    Yields:
        Dictionary mapping logger names to their original levels
    """
    with suppress_logger_level(logger_name, logging.WARNING) as levels:
        yield levels


__all__ = [
    "suppress_logger_level",
    "quiet_logger",
]
