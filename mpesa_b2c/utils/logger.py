"""
Logging Configuration
Centralized logging setup for the B2C client
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
import os

PACKAGE_LOGGER = 'mpesa_b2c'
LOG_DIR = 'logs'
LOG_FILE = 'mpesa-b2c.log'
ERROR_LOG_FILE = 'error.log'


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the package logger

    Module loggers carry no handlers of their own; records propagate to
    the package logger, which gets a console handler the first time.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)

    # Only configure if not already configured
    if not package_logger.handlers:
        package_logger.setLevel(logging.INFO)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(logging.Formatter(
            '%(levelname)s - %(name)s - %(message)s'
        ))
        package_logger.addHandler(console_handler)

    return logging.getLogger(name)


def _rotating_handler(path, level, fmt):
    handler = RotatingFileHandler(
        path,
        maxBytes=10485760,  # 10MB
        backupCount=10
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt='%Y-%m-%d %H:%M:%S'))
    return handler


def configure_app_logging(app):
    """
    Attach the rotating log files to the package logger and route B2C client
    errors to the Flask application's error log

    Each file gets one handler per process, however many apps are initialised.

    Args:
        app: Flask application instance
    """
    log_dir = os.path.abspath(app.config.get('LOG_DIR', LOG_DIR))
    if not os.path.exists(log_dir):
        try:
            os.makedirs(log_dir)
        except OSError:
            return

    package_logger = get_logger(PACKAGE_LOGGER)
    attached = {
        h.baseFilename: h for h in package_logger.handlers
        if isinstance(h, RotatingFileHandler)
    }

    log_path = os.path.join(log_dir, LOG_FILE)
    if log_path not in attached:
        package_logger.addHandler(_rotating_handler(
            log_path, logging.INFO,
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))

    error_path = os.path.join(log_dir, ERROR_LOG_FILE)
    error_handler = attached.get(error_path)
    if error_handler is None:
        error_handler = _rotating_handler(
            error_path, logging.ERROR,
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s\n%(pathname)s:%(lineno)d'
        )
        package_logger.addHandler(error_handler)

    if error_handler not in app.logger.handlers:
        app.logger.addHandler(error_handler)
