"""Tests for rendering commands and stats."""

from ran_history.formatting import format_command, format_stats, format_timestamp
from ran_history.models import HistoryStats

from factories import make_command


class TestFormatTimestamp:
    def test_missing(self):
        assert format_timestamp(None) == "unknown time"
        assert format_timestamp("") == "unknown time"

    def test_naive_timestamp(self):
        assert format_timestamp("2024-01-01T10:00:00") == "2024-01-01 10:00:00"

    def test_unparsable_passes_through(self):
        assert format_timestamp("yesterday") == "yesterday"

    def test_utc_timestamp_has_seconds_precision(self):
        rendered = format_timestamp("2024-01-01T10:00:00.123Z")
        assert len(rendered) == len("2024-01-01 10:00:00")


class TestFormatCommand:
    def test_full_command(self):
        command = make_command(
            "t1",
            "npm test",
            description="Run tests",
            cwd="/projects/myapp",
            timestamp="2024-01-01T10:00:00",
            stdout="ok\n",
        )

        assert format_command(command) == (
            "[2024-01-01 10:00:00]\n"
            "$ npm test\n"
            "  # Run tests\n"
            "  cwd: /projects/myapp\n"
            "  | ok\n"
        )

    def test_minimal_command(self):
        assert format_command(make_command("t1", "ls")) == "[unknown time]\n$ ls\n"

    def test_failed_command_shows_stderr(self):
        command = make_command("t1", "false", stdout="partial", stderr="boom", is_error=1)

        rendered = format_command(command)

        assert rendered.splitlines()[0].endswith("[error]")
        assert "  | boom" in rendered
        assert "partial" not in rendered

    def test_long_output_is_truncated(self):
        command = make_command("t1", "seq 10", stdout="\n".join(str(i) for i in range(1, 11)))

        lines = format_command(command, max_output_lines=3).splitlines()

        assert lines[-4:] == ["  | 1", "  | 2", "  | 3", "  | ... (7 more lines)"]

    def test_output_can_be_hidden(self):
        command = make_command("t1", "echo hi", stdout="hi")
        assert format_command(command, max_output_lines=0) == "[unknown time]\n$ echo hi\n"


class TestFormatStats:
    def test_stats(self):
        rendered = format_stats(HistoryStats(total_commands=2, indexed_files=1), "/tmp/h.db")
        assert "Commands:      2" in rendered
        assert "Indexed files: 1" in rendered
        assert rendered.endswith("Database:      /tmp/h.db\n")
