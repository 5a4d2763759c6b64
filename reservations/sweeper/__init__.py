"""Background expiration sweeper."""

from .expiration_sweeper import ExpirationSweeper
from .metrics import SweepReport, SweepStats

__all__ = ["ExpirationSweeper", "SweepReport", "SweepStats"]
