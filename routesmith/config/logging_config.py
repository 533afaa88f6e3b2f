"""
Logging setup for RouteSmith.

Every module logs through a child of the ``routesmith`` logger, so a single
call to :func:`setup_logging` at process start controls the whole package.
"""

import functools
import logging
import sys
import time
from datetime import datetime
from pathlib import Path


ROOT_LOGGER_NAME = "routesmith"

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def _daily_file_handler(log_dir: str, formatter: logging.Formatter) -> logging.FileHandler:
    """Open (or append to) today's log file under ``log_dir``."""
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"routesmith_{datetime.now():%Y%m%d}.log"

    handler = logging.FileHandler(path, mode='a', encoding='utf-8')
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    return handler


def setup_logging(log_level: str = "INFO", log_to_file: bool = True, log_dir: str = "logs") -> logging.Logger:
    """
    Configure the package logger.

    Console output is capped at INFO; the optional file handler records
    everything down to DEBUG. Calling this again replaces earlier handlers.

    Args:
        log_level: Level name for the package logger
        log_to_file: Write a dated log file next to console output
        log_dir: Directory for the dated log file

    Returns:
        The ``routesmith`` logger
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.setLevel(level)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    stream = logging.StreamHandler(sys.stdout)
    stream.setLevel(logging.INFO)
    stream.setFormatter(formatter)
    package_logger.addHandler(stream)

    if log_to_file:
        try:
            file_handler = _daily_file_handler(log_dir, formatter)
        except OSError as e:
            package_logger.warning(f"File logging disabled, {log_dir} not writable: {e}")
        else:
            package_logger.addHandler(file_handler)
            package_logger.debug(f"Writing log file {file_handler.baseFilename}")

    package_logger.info(f"RouteSmith logging ready at level {logging.getLevelName(level)}")
    return package_logger


def get_logger(name: str = None) -> logging.Logger:
    """Return the package logger, or a child of it for ``name``.

    Names already inside the package (``routesmith.routing.engine``) are used
    as-is; bare names like ``engine`` become ``routesmith.engine``.
    """
    if not name or name == ROOT_LOGGER_NAME:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def log_function_entry(logger: logging.Logger, func_name: str, **kwargs):
    """Debug-log a call and its keyword arguments."""
    args = ", ".join(f"{key}={value!r}" for key, value in kwargs.items())
    logger.debug(f"-> {func_name}({args})")


def log_function_exit(logger: logging.Logger, func_name: str, result=None):
    """Debug-log a return, naming the result type when there is one."""
    suffix = "" if result is None else f": {type(result).__name__}"
    logger.debug(f"<- {func_name}{suffix}")


def log_error(logger: logging.Logger, error: Exception, context: str = None):
    """Log ``error`` with its traceback, prefixed by ``context`` if given."""
    message = f"{type(error).__name__}: {error}"
    logger.error(f"{context}: {message}" if context else message, exc_info=True)


def log_performance(logger: logging.Logger, operation: str, duration: float, details: str = None):
    """Log the wall time of ``operation`` in milliseconds."""
    message = f"{operation} finished in {duration * 1000:.1f} ms"
    logger.info(f"{message} [{details}]" if details else message)


def log_execution_time(logger: logging.Logger = None):
    """
    Decorator timing each call of the wrapped function.

    Failures are logged and re-raised unchanged.

    Args:
        logger: Target logger; defaults to the wrapped function's module logger
    """
    def decorator(func):
        target = logger or get_logger(func.__module__)

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                log_performance(target, func.__qualname__, time.perf_counter() - started, "failed")
                log_error(target, e, f"{func.__qualname__} raised")
                raise
            log_performance(target, func.__qualname__, time.perf_counter() - started)
            return result

        return wrapper
    return decorator
