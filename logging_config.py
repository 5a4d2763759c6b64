#!/usr/bin/env python3
"""
Logging configuration for the seat reservation service.
Console output plus rotating files for general, error and reservation activity.
"""

import os
import logging
import logging.handlers
from datetime import datetime
from typing import Optional

from infrastructure.constants import RESERVATION_LOGGERS

DEFAULT_LOG_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'logs')


def setup_logging(log_dir: Optional[str] = None, production_mode: bool = False) -> None:
    """
    Set up logging with console and rotating file handlers.

    Args:
        log_dir: Directory for log files, created when missing
        production_mode: Raise thresholds so only essential records are kept
    """
    log_dir = log_dir or DEFAULT_LOG_DIR
    os.makedirs(log_dir, exist_ok=True)

    main_log_file = os.path.join(log_dir, 'service.log')
    error_log_file = os.path.join(log_dir, 'errors.log')
    reservations_log_file = os.path.join(log_dir, 'reservations.log')

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.WARNING if production_mode else logging.DEBUG)
    root_logger.handlers = []

    detailed_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d in %(funcName)s()] - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING if production_mode else logging.INFO)
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    main_file_handler = logging.handlers.RotatingFileHandler(
        main_log_file,
        maxBytes=10*1024*1024,  # 10MB
        backupCount=5,
        encoding='utf-8'
    )
    main_file_handler.setLevel(logging.WARNING if production_mode else logging.INFO)
    main_file_handler.setFormatter(detailed_formatter)
    root_logger.addHandler(main_file_handler)

    error_file_handler = logging.handlers.RotatingFileHandler(
        error_log_file,
        maxBytes=5*1024*1024,  # 5MB
        backupCount=5,
        encoding='utf-8'
    )
    error_file_handler.setLevel(logging.ERROR)
    error_file_handler.setFormatter(detailed_formatter)
    root_logger.addHandler(error_file_handler)

    # Dedicated file for booking, break and sweep activity
    reservations_handler = logging.handlers.RotatingFileHandler(
        reservations_log_file,
        maxBytes=20*1024*1024,  # 20MB
        backupCount=5,
        encoding='utf-8'
    )
    reservations_handler.setLevel(logging.INFO if production_mode else logging.DEBUG)
    reservations_handler.setFormatter(detailed_formatter)

    for name in RESERVATION_LOGGERS:
        component_logger = logging.getLogger(name)
        for handler in list(component_logger.handlers):
            if isinstance(handler, logging.handlers.RotatingFileHandler):
                component_logger.removeHandler(handler)
                handler.close()
        component_logger.addHandler(reservations_handler)
        component_logger.setLevel(logging.INFO if production_mode else logging.DEBUG)

    root_logger.info("="*80)
    root_logger.info(f"Reservation service logging initialized - {datetime.now()}")
    root_logger.info(f"Production Mode: {'ON' if production_mode else 'OFF'}")
    root_logger.info(f"Main log: {main_log_file}")
    root_logger.info(f"Error log: {error_log_file}")
    root_logger.info(f"Reservations log: {reservations_log_file}")
    root_logger.info("="*80)

