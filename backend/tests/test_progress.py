"""
Tests for encoder progress parsing and interpretation.
"""

import pytest

from dubqueue.execution import ProgressParser, ProgressReport, format_duration, interpret_progress
from dubqueue.execution.progress import parse_timestamp


def feed(parser, text):
    reports = []
    for line in text.strip().splitlines():
        report = parser.feed_line(line + "\n")
        if report is not None:
            reports.append(report)
    return reports


class TestInterpretProgress:

    def test_percent_wins(self):
        report = ProgressReport(percent=40, fraction=0.9, processed_time=1)
        assert interpret_progress(report, 10) == pytest.approx(0.4)

    def test_fraction_used_when_no_percent(self):
        assert interpret_progress(ProgressReport(fraction=0.25), 10) == pytest.approx(0.25)

    def test_fraction_above_one_is_a_percentage(self):
        assert interpret_progress(ProgressReport(fraction=75), 0) == pytest.approx(0.75)

    def test_processed_time_over_duration(self):
        assert interpret_progress(ProgressReport(processed_time=15), 60) == pytest.approx(0.25)

    def test_unknown_duration_gives_zero(self):
        assert interpret_progress(ProgressReport(processed_time=15), 0) == 0.0

    def test_empty_report_gives_zero(self):
        assert interpret_progress(ProgressReport(), 60) == 0.0

    @pytest.mark.parametrize("report", [
        ProgressReport(percent=250),
        ProgressReport(percent=-5),
        ProgressReport(processed_time=90),
    ])
    def test_result_is_clamped(self, report):
        assert 0.0 <= interpret_progress(report, 60) <= 1.0


class TestProgressParser:

    def test_block_produces_report(self):
        reports = feed(ProgressParser(), """
frame=240
fps=48.00
bitrate=1520.3kbits/s
out_time_us=8000000
out_time=00:00:08.000000
speed=1.6x
progress=continue
""")

        assert len(reports) == 1
        report = reports[0]
        assert report.frame == 240
        assert report.fps == 48.0
        assert report.bitrate_kbps == pytest.approx(1520.3)
        assert report.processed_time == pytest.approx(8.0)
        assert report.speed == pytest.approx(1.6)
        assert report.finished is False

    def test_out_time_ms_is_microseconds(self):
        (report,) = feed(ProgressParser(), "out_time_ms=2500000\nprogress=continue")
        assert report.processed_time == pytest.approx(2.5)

    def test_out_time_used_when_no_counters(self):
        (report,) = feed(ProgressParser(), "out_time=01:00:01.500000\nprogress=continue")
        assert report.processed_time == pytest.approx(3601.5)

    def test_unavailable_values_are_none(self):
        (report,) = feed(ProgressParser(), "bitrate=N/A\nspeed=N/A\nout_time_us=N/A\nprogress=continue")
        assert report.bitrate_kbps is None
        assert report.speed is None
        assert report.processed_time is None

    def test_end_marks_finished_and_resets_fields(self):
        parser = ProgressParser()
        first, last = feed(parser, """
frame=10
progress=continue
progress=end
""")
        assert first.frame == 10
        assert last.finished is True
        assert last.frame is None

    def test_noise_lines_ignored(self):
        assert ProgressParser().feed_line("not a key value line\n") is None


class TestFormatting:

    def test_parse_timestamp(self):
        assert parse_timestamp("00:01:02.5") == pytest.approx(62.5)
        assert parse_timestamp("garbage") is None

    @pytest.mark.parametrize("seconds,expected", [
        (0, "00:00"),
        (75, "01:15"),
        (3599.9, "59:59"),
        (3725, "01:02:05"),
        (-3, "00:00"),
    ])
    def test_format_duration(self, seconds, expected):
        assert format_duration(seconds) == expected
