"""Configuration and Logging Utilities.

Modules:
    config: YAML configuration builder and dot-path access functions
    logger: Rich component loggers
    log_filter: Temporary log level control
"""

from . import config, log_filter, logger

__all__ = ["config", "logger", "log_filter"]
