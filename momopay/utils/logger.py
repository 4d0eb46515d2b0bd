"""
Logging Configuration
Centralized logging setup for the subscription payment service
"""

import logging
import sys
import time
from logging.handlers import RotatingFileHandler
import os

LOG_DIR = os.getenv('LOG_DIR', 'logs')
LOG_LEVEL = getattr(logging, os.getenv('LOG_LEVEL', 'INFO').upper(), logging.INFO)

MAX_LOG_BYTES = 10485760  # 10MB
LOG_BACKUP_COUNT = 10

# Probes hit these every few seconds
_QUIET_PATHS = ('/api/v1/health/live', '/api/v1/health/ready')


def _ensure_log_dir() -> bool:
    if not os.path.exists(LOG_DIR):
        try:
            os.makedirs(LOG_DIR)
        except OSError:
            return False
    return True


def _rotating_handler(filename: str, level: int, fmt: str) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        os.path.join(LOG_DIR, filename),
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUP_COUNT
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt='%Y-%m-%d %H:%M:%S'))
    return handler


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance

    Console output always; a rotating momopay.log when LOG_DIR is writable.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    logger.setLevel(LOG_LEVEL)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(LOG_LEVEL)
    console_handler.setFormatter(logging.Formatter('%(levelname)s - %(name)s - %(message)s'))
    logger.addHandler(console_handler)

    if _ensure_log_dir():
        logger.addHandler(_rotating_handler(
            'momopay.log',
            LOG_LEVEL,
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))

    return logger


def configure_app_logging(app):
    """
    Configure logging for the Flask application

    Errors go to logs/error.log with their source location. Nothing is
    written to disk while testing.

    Args:
        app: Flask application instance
    """
    app.logger.setLevel(LOG_LEVEL)

    if app.testing or not _ensure_log_dir():
        return

    app.logger.addHandler(_rotating_handler(
        'error.log',
        logging.ERROR,
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s\n%(pathname)s:%(lineno)d'
    ))


class RequestLogger:
    """Middleware logging one line per request with its status and duration"""

    def __init__(self, app=None):
        self.app = app
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        """Initialize request logging"""
        logger = get_logger('request')

        @app.before_request
        def start_timer():
            from flask import g
            g.request_started_at = time.perf_counter()

        @app.after_request
        def log_response(response):
            from flask import g, request

            if request.path in _QUIET_PATHS:
                return response

            started = g.get('request_started_at')
            elapsed_ms = (time.perf_counter() - started) * 1000 if started else 0.0

            logger.info(
                f'{request.method} {request.path} - '
                f'Status: {response.status_code} - '
                f'{elapsed_ms:.1f}ms - '
                f'IP: {request.remote_addr} - '
                f'User-Agent: {request.headers.get("User-Agent", "Unknown")}'
            )
            return response
