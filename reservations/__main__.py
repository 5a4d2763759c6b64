#!/usr/bin/env python3
"""
Run the reservation core as a long-lived process: load settings, sweep
stored bookings once and keep sweeping on the configured interval.
"""

import asyncio
import logging

from infrastructure.settings import get_settings
from logging_config import setup_logging
from reservations.services.reservation_service import ReservationService


def main() -> None:
    """Entry point used by ``python -m reservations``."""
    settings = get_settings()
    setup_logging(settings.log_directory, production_mode=settings.production_mode)

    logger = logging.getLogger('Main')
    logger.info("=" * 50)
    logger.info("Seat Reservation Service")
    logger.info("=" * 50)
    logger.info(
        "Timezone=%s | bookings=%s | seats=%s | sweep every %ss",
        settings.timezone,
        settings.bookings_file,
        settings.seats_file,
        settings.sweep_interval_seconds,
    )

    service = ReservationService(settings)
    logger.info("Booking status counts: %s", service.get_booking_statistics())

    try:
        logger.info("🚀 Starting expiration sweeper...")
        asyncio.run(service.sweeper.run_async())
    except KeyboardInterrupt:
        logger.info("✅ Stopped by user (Ctrl+C)")
    finally:
        service.sweeper.running = False
        logger.info("%s", service.sweeper.stats.format_report())


if __name__ == '__main__':
    main()
