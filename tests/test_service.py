"""Tests for the CommandHistory entry point."""

import pytest

from ran_history import CommandHistory, HistoryConfig

from factories import command_entries, jsonl, write_transcript

T0 = 1_700_000_000 * 1_000_000_000


@pytest.fixture
def config(temp_dir):
    projects = temp_dir / "projects"
    write_transcript(
        projects / "-projects-myapp" / "session-1.jsonl",
        jsonl(
            *command_entries(
                "toolu_1", "docker build -t myapp .", timestamp="2024-01-01T00:00:00Z"
            ),
            *command_entries("toolu_2", "npm test", timestamp="2024-01-02T00:00:00Z"),
        ),
        T0,
    )
    return HistoryConfig(db_path=temp_dir / "history.db", projects_dir=projects)


class TestCommandHistory:
    """Tests for CommandHistory."""

    @pytest.mark.asyncio
    async def test_index_and_stats(self, config):
        async with await CommandHistory.open(config) as history:
            report = await history.index_and_sync()
            stats = await history.stats()

        assert report.records_inserted == 2
        assert stats.total_commands == 2
        assert stats.indexed_files == 1
        assert stats.to_dict() == {"totalCommands": 2, "indexedFiles": 1}

    @pytest.mark.asyncio
    async def test_list_and_search(self, config):
        async with await CommandHistory.open(config) as history:
            await history.index_and_sync()

            recent = await history.list(limit=1)
            result = await history.search("DOCKER")

        assert [c.command for c in recent] == ["npm test"]
        assert [c.command for c in result] == ["docker build -t myapp ."]

    @pytest.mark.asyncio
    async def test_history_survives_reopen(self, config):
        async with await CommandHistory.open(config) as history:
            await history.index_and_sync()

        async with await CommandHistory.open(config) as history:
            assert (await history.stats()).total_commands == 2
            report = await history.index_and_sync()

        assert report.files_skipped == 1

    @pytest.mark.asyncio
    async def test_in_memory_history(self, config):
        config.db_path = ":memory:"

        async with await CommandHistory.open(config) as history:
            await history.index_and_sync()
            assert (await history.stats()).total_commands == 2

        async with await CommandHistory.open(config) as history:
            assert (await history.stats()).total_commands == 0
