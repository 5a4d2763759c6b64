from reservations.sweeper import SweepReport, SweepStats


def test_sweep_stats_accumulate_reports():
    stats = SweepStats()

    stats.record(SweepReport(checked=3, completed=["a"], cancelled=["b"]), duration=0.2)
    stats.record(SweepReport(checked=2, breaks_ended=["c"], failed=["d"]), duration=0.4)

    assert stats.sweeps == 2
    assert stats.bookings_checked == 5
    assert (stats.completed, stats.cancelled, stats.breaks_ended) == (1, 1, 1)
    assert stats.failures == 1
    assert round(stats.avg_sweep_time, 3) == 0.3


def test_sweep_report_counts_changes_only():
    report = SweepReport(checked=4, completed=["a"], skipped=["b"], failed=["c"])

    assert report.changed == 1
    assert "skipped=1" in report.summary()


def test_format_report_lists_optional_lines_only_when_set():
    stats = SweepStats()
    stats.record(SweepReport(checked=1, completed=["a"]))

    quiet = stats.format_report()
    stats.record(SweepReport(checked=1, skipped=["b"], failed=["c"]))
    noisy = stats.format_report()

    assert "✅ Completed: 1" in quiet
    assert "Failures" not in quiet
    assert "♻️ Stale Skips: 1" in noisy
    assert "🛠️ Failures: 1" in noisy
