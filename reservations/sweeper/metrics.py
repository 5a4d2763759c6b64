"""Statistics helpers for the expiration sweeper."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class SweepReport:
    """Outcome of a single sweep pass."""

    checked: int = 0
    completed: List[str] = field(default_factory=list)
    cancelled: List[str] = field(default_factory=list)
    breaks_ended: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def changed(self) -> int:
        return len(self.completed) + len(self.cancelled) + len(self.breaks_ended)

    def summary(self) -> str:
        return (
            f"checked={self.checked} completed={len(self.completed)} "
            f"cancelled={len(self.cancelled)} breaks_ended={len(self.breaks_ended)} "
            f"skipped={len(self.skipped)} failed={len(self.failed)}"
        )


@dataclass
class SweepStats:
    """Mutable counters accumulated across sweep passes."""

    sweeps: int = 0
    bookings_checked: int = 0
    completed: int = 0
    cancelled: int = 0
    breaks_ended: int = 0
    stale_skips: int = 0
    failures: int = 0
    total_sweep_time: float = 0.0

    def record(self, report: SweepReport, duration: Optional[float] = None) -> None:
        self.sweeps += 1
        self.bookings_checked += report.checked
        self.completed += len(report.completed)
        self.cancelled += len(report.cancelled)
        self.breaks_ended += len(report.breaks_ended)
        self.stale_skips += len(report.skipped)
        self.failures += len(report.failed)
        if duration is not None and duration >= 0:
            self.total_sweep_time += duration

    @property
    def avg_sweep_time(self) -> float:
        if self.sweeps == 0:
            return 0.0
        return self.total_sweep_time / self.sweeps

    def format_report(self) -> str:
        lines = [
            "📊 Expiration Sweeper Report",
            f"🔁 Sweeps: {self.sweeps}",
            f"🔎 Bookings Checked: {self.bookings_checked}",
            f"✅ Completed: {self.completed}",
            f"❌ Cancelled (no attendance): {self.cancelled}",
            f"☕ Breaks Ended: {self.breaks_ended}",
            f"⏱️ Avg Sweep Time: {self.avg_sweep_time:.3f}s",
        ]
        if self.stale_skips:
            lines.append(f"♻️ Stale Skips: {self.stale_skips}")
        if self.failures:
            lines.append(f"🛠️ Failures: {self.failures}")
        return "\n".join(lines)
