"""
Tests for transcript parsing.

Covers extraction of Bash tool uses paired with their results,
tolerance of malformed lines, and how much of a byte range is consumed.
"""

import json

from ran_history.indexing import ParsedLine, SkippedLine, TranscriptParser

from factories import command_entries, jsonl, tool_result_entry, tool_use_entry


class TestCommandExtraction:
    """Tests for mapping transcript entries onto command records."""

    def test_extracts_command_with_result(self):
        """Tool use and result produce one complete record."""
        data = jsonl(
            tool_use_entry(
                "toolu_1",
                "ls -la",
                description="List files",
                cwd="/home/user",
                timestamp="2024-01-01T10:00:00Z",
                session_id="abc",
            ),
            tool_result_entry("toolu_1", stdout="file1\nfile2", stderr=""),
        )

        result = TranscriptParser().parse(data)

        assert len(result.records) == 1
        record = result.records[0]
        assert record.tool_use_id == "toolu_1"
        assert record.command == "ls -la"
        assert record.description == "List files"
        assert record.cwd == "/home/user"
        assert record.stdout == "file1\nfile2"
        assert record.stderr is None
        assert record.is_error == 0
        assert record.timestamp == "2024-01-01T10:00:00Z"
        assert record.session_id == "abc"
        assert record.id is None
        assert result.consumed == len(data)

    def test_error_result_sets_flag(self):
        """is_error on the tool_result marks the command as failed."""
        data = jsonl(
            tool_use_entry("toolu_1", "false"),
            tool_result_entry("toolu_1", stderr="exit code 1", is_error=True),
        )

        record = TranscriptParser().parse(data).records[0]
        assert record.is_error == 1
        assert record.stderr == "exit code 1"

    def test_result_without_structured_output_uses_content(self):
        """Without toolUseResult, the tool_result text becomes the output."""
        ok = jsonl(
            tool_use_entry("toolu_1", "echo hi"),
            tool_result_entry("toolu_1", stdout="hi", structured=False),
        )
        failed = jsonl(
            tool_use_entry("toolu_2", "cat nope"),
            tool_result_entry("toolu_2", stderr="No such file", is_error=True, structured=False),
        )

        ok_record = TranscriptParser().parse(ok).records[0]
        assert ok_record.stdout == "hi"
        assert ok_record.stderr is None

        failed_record = TranscriptParser().parse(failed).records[0]
        assert failed_record.stdout is None
        assert failed_record.stderr == "No such file"

    def test_result_content_as_text_blocks(self):
        """List-shaped tool_result content is joined."""
        result_entry = tool_result_entry("toolu_1", structured=False)
        result_entry["message"]["content"][0]["content"] = [
            {"type": "text", "text": "line one"},
            {"type": "image", "source": {}},
            {"type": "text", "text": "line two"},
        ]
        data = jsonl(tool_use_entry("toolu_1", "pytest"), result_entry)

        record = TranscriptParser().parse(data).records[0]
        assert record.stdout == "line one\nline two"

    def test_ignores_other_tools(self):
        """Only Bash tool uses are commands."""
        data = jsonl(
            tool_use_entry("toolu_1", "irrelevant", name="Read"),
            tool_result_entry("toolu_1", stdout="contents"),
        )

        result = TranscriptParser().parse(data)
        assert result.records == []
        assert result.consumed == len(data)
        assert all(isinstance(o, SkippedLine) for o in result.outcomes)

    def test_multiple_tool_uses_in_one_entry(self):
        """Parallel tool calls in one message each become a record."""
        entry = tool_use_entry("toolu_1", "git status")
        entry["message"]["content"].append(
            {"type": "tool_use", "id": "toolu_2", "name": "Bash", "input": {"command": "git log"}}
        )
        data = jsonl(
            entry,
            tool_result_entry("toolu_2", stdout="log"),
            tool_result_entry("toolu_1", stdout="clean"),
        )

        records = TranscriptParser().parse(data).records
        assert {r.tool_use_id: r.stdout for r in records} == {"toolu_1": "clean", "toolu_2": "log"}

    def test_parsed_line_points_at_tool_use(self):
        """The outcome's line number is the line of the tool use."""
        data = jsonl(
            {"type": "summary", "summary": "chat"},
            tool_use_entry("toolu_1", "make"),
            tool_result_entry("toolu_1"),
        )

        parsed = [o for o in TranscriptParser().parse(data).outcomes if isinstance(o, ParsedLine)]
        assert [p.line_number for p in parsed] == [2]

    def test_non_string_metadata_is_dropped(self):
        """Unexpected metadata types become None instead of failing."""
        data = jsonl(
            tool_use_entry("toolu_1", "make", cwd=None, timestamp=None, session_id=None),
            tool_result_entry("toolu_1"),
        )
        data = data.replace(b'"cwd": null', b'"cwd": 42', 1)

        record = TranscriptParser().parse(data).records[0]
        assert record.cwd is None
        assert record.timestamp is None
        assert record.session_id is None


class TestMalformedInput:
    """Tests for robustness against unexpected shapes."""

    def test_skips_invalid_lines_without_aborting(self):
        """Bad lines are skipped and later lines still parse."""
        data = (
            b"{not json\n"
            + b"[1, 2, 3]\n"
            + b'"just a string"\n'
            + b"\n"
            + jsonl(*command_entries("toolu_1", "npm test"))
        )

        result = TranscriptParser().parse(data)

        assert [r.command for r in result.records] == ["npm test"]
        reasons = [(s.line_number, s.reason) for s in result.skipped]
        assert (1, "invalid json") in reasons
        assert (2, "not an object") in reasons
        assert (3, "not an object") in reasons
        assert result.consumed == len(data)

    def test_skips_malformed_tool_use(self):
        """Tool uses without id, input or command are skipped."""
        entries = [
            {"message": {"content": [{"type": "tool_use", "name": "Bash", "input": {"command": "x"}}]}},
            {"message": {"content": [{"type": "tool_use", "id": "a", "name": "Bash", "input": "ls"}]}},
            {"message": {"content": [{"type": "tool_use", "id": "b", "name": "Bash", "input": {}}]}},
            {"message": {"content": [{"type": "tool_use", "id": "c", "name": "Bash", "input": {"command": "  "}}]}},
            {"message": "plain text"},
            {"message": {"content": "plain text"}},
            {"message": {"content": [None, 3, "text"]}},
        ]

        result = TranscriptParser().parse(jsonl(*entries))

        assert result.records == []
        assert result.pending == 0
        assert len(result.skipped) == len(entries)

    def test_invalid_utf8_is_tolerated(self):
        """Undecodable bytes don't break the line or the batch."""
        line = json.dumps(tool_use_entry("toolu_1", "echo CAFE")).encode("utf-8")
        line = line.replace(b"CAFE", b"caf\xe9")
        data = line + b"\n" + jsonl(tool_result_entry("toolu_1", stdout="ok"))

        record = TranscriptParser().parse(data).records[0]
        assert record.command.startswith("echo caf")
        assert record.stdout == "ok"

    def test_orphan_result_is_skipped(self):
        """A result whose tool use isn't in the range yields nothing."""
        data = jsonl(tool_result_entry("toolu_old", stdout="x"))

        result = TranscriptParser().parse(data)
        assert result.records == []
        assert result.consumed == len(data)


class TestConsumedOffset:
    """Tests for how far the offset may advance."""

    def test_empty_input(self):
        result = TranscriptParser().parse(b"")
        assert result.consumed == 0
        assert result.outcomes == []

    def test_incomplete_trailing_line_not_consumed(self):
        """Bytes after the last newline are left for the next pass."""
        complete = jsonl(*command_entries("toolu_1", "ls"))
        partial = json.dumps(tool_use_entry("toolu_2", "pwd")).encode("utf-8")[:30]

        result = TranscriptParser().parse(complete + partial)

        assert [r.command for r in result.records] == ["ls"]
        assert result.consumed == len(complete)

    def test_only_partial_line(self):
        """A range with no newline consumes nothing."""
        result = TranscriptParser().parse(b'{"type": "assistant", "mess')
        assert result.consumed == 0
        assert result.records == []

    def test_pending_tool_use_holds_offset(self):
        """A tool use without its result stops the offset at its line."""
        first = jsonl(*command_entries("toolu_1", "ls"))
        pending = jsonl(tool_use_entry("toolu_2", "sleep 60"))
        chatter = jsonl({"type": "progress", "data": {}})

        result = TranscriptParser().parse(first + pending + chatter)

        assert [r.command for r in result.records] == ["ls"]
        assert result.pending == 1
        assert result.consumed == len(first)

    def test_pending_tool_use_beyond_window_is_emitted(self):
        """A tool use with no result after the window is recorded without output."""
        data = jsonl(tool_use_entry("toolu_1", "vim")) + jsonl(
            *[{"type": "progress", "n": i} for i in range(3)]
        )

        result = TranscriptParser(pending_result_window=2).parse(data)

        assert result.pending == 0
        assert result.consumed == len(data)
        record = result.records[0]
        assert record.command == "vim"
        assert record.stdout is None
        assert record.is_error == 0

    def test_pending_within_window_is_held(self):
        """At exactly the window size the tool use is still held back."""
        data = jsonl(tool_use_entry("toolu_1", "vim")) + jsonl(
            *[{"type": "progress", "n": i} for i in range(2)]
        )

        result = TranscriptParser(pending_result_window=2).parse(data)

        assert result.records == []
        assert result.pending == 1
        assert result.consumed == 0


class TestUnexpectedShapes:
    """Tests for field types and JSON the parser must survive."""

    def test_unhashable_tool_name_is_skipped(self):
        """A list or object where the tool name belongs is not a command."""
        data = jsonl(
            {"message": {"content": [{"type": "tool_use", "name": {}}]}},
            {"message": {"content": [{"type": "tool_use", "id": "x", "name": ["Bash"]}]}},
            *command_entries("toolu_1", "ls"),
        )

        result = TranscriptParser().parse(data)

        assert [r.command for r in result.records] == ["ls"]
        assert [s.reason for s in result.skipped] == ["no shell command", "no shell command"]
        assert result.consumed == len(data)

    def test_non_string_fields(self):
        """Wrongly typed ids and commands are skipped; wrongly typed metadata is dropped."""
        bad_id = tool_use_entry("toolu_1", "ls")
        bad_id["message"]["content"][0]["id"] = 7
        bad_command = tool_use_entry("toolu_2", "ls")
        bad_command["message"]["content"][0]["input"]["command"] = ["ls", "-la"]
        odd_metadata = tool_use_entry("toolu_3", "make", cwd=None)
        odd_metadata["cwd"] = ["/a"]
        odd_metadata["message"]["content"][0]["input"]["description"] = {"text": "x"}
        odd_result = tool_result_entry("toolu_3")
        odd_result["toolUseResult"] = {"stdout": 12, "stderr": None}

        result = TranscriptParser().parse(jsonl(bad_id, bad_command, odd_metadata, odd_result))

        assert [s.reason for s in result.skipped] == ["malformed tool use", "empty command"]
        record = result.records[0]
        assert record.command == "make"
        assert record.cwd is None
        assert record.description is None
        assert record.stdout is None
        assert record.stderr is None

    def test_deeply_nested_json_is_skipped(self):
        data = b"[" * 100_000 + b"\n" + jsonl(*command_entries("toolu_1", "ls"))

        result = TranscriptParser().parse(data)

        assert result.skipped[0].reason == "invalid json"
        assert [r.command for r in result.records] == ["ls"]
        assert result.consumed == len(data)

    def test_oversized_integer_is_skipped(self):
        data = b'{"n": ' + b"9" * 5000 + b"}\n" + jsonl(*command_entries("toolu_1", "ls"))

        result = TranscriptParser().parse(data)

        assert result.skipped[0].reason == "invalid json"
        assert [r.command for r in result.records] == ["ls"]


class TestFlush:
    """Tests for emitting tool uses that never got a result."""

    def test_flush_emits_pending_without_output(self):
        first = jsonl(*command_entries("toolu_1", "ls", stdout="a"))
        data = first + jsonl(tool_use_entry("toolu_2", "rm -rf build"), {"type": "summary"})

        held = TranscriptParser().parse(data)
        flushed = TranscriptParser().parse(data, flush=True)

        assert held.consumed == len(first)
        assert flushed.pending == 0
        assert flushed.consumed == len(data)
        record = next(r for r in flushed.records if r.tool_use_id == "toolu_2")
        assert record.command == "rm -rf build"
        assert record.stdout is None

    def test_flush_still_leaves_partial_line(self):
        complete = jsonl(tool_use_entry("toolu_1", "sleep 5"))
        data = complete + b'{"type": "us'

        result = TranscriptParser().parse(data, flush=True)

        assert [r.command for r in result.records] == ["sleep 5"]
        assert result.consumed == len(complete)
