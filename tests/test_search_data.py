"""Tests for assembling and loading the searchable corpus."""
import pytest
from unittest.mock import AsyncMock, MagicMock

from omnisearch.config import Config, SearchOptions
from omnisearch.entries import bookmark_entry, history_entry, tab_entry
from omnisearch.search_data import SearchData, assemble_search_data, load_search_data


class TestAssembleSearchData:
    def test_history_is_merged_into_bookmarks_and_tabs(self):
        bookmark = bookmark_entry("1", "Docs", "https://docs.python.org/")
        tab = tab_entry({"id": 2, "title": "News", "url": "https://news.ycombinator.com"})
        history = [
            history_entry("10", "Docs", "https://docs.python.org", visit_count=7, last_visit_seconds_ago=30),
            history_entry("11", "News", "https://news.ycombinator.com/", visit_count=3, last_visit_seconds_ago=5),
            history_entry("12", "Other", "https://other.org", visit_count=1, last_visit_seconds_ago=500),
        ]

        data = assemble_search_data([bookmark], [tab], history)

        assert data.bookmarks[0].visit_count == 7
        assert data.bookmarks[0].last_visit_seconds_ago == 30
        assert data.tabs[0].visit_count == 3
        assert [h.id for h in data.history] == ["12"]

    def test_source_entries_are_not_modified(self):
        bookmark = bookmark_entry("1", "Docs", "https://docs.python.org")
        history = [history_entry("10", "Docs", "https://docs.python.org", visit_count=7)]
        data = assemble_search_data([bookmark], [], history)
        assert data.bookmarks[0] is not bookmark
        assert bookmark.visit_count is None

    def test_bookmarks_of_open_tabs_are_flagged(self):
        bookmarks = [
            bookmark_entry("1", "Docs", "https://docs.python.org/"),
            bookmark_entry("2", "Rust", "https://rust-lang.org"),
        ]
        tabs = [tab_entry({"id": 3, "title": "Docs", "url": "http://www.docs.python.org"})]
        data = assemble_search_data(bookmarks, tabs, [])
        assert [b.tab for b in data.bookmarks] == [True, False]

    def test_counts(self, search_data):
        assert search_data.counts() == {"bookmarks": 5, "tabs": 4, "history": 2}


class TestLoadSearchData:
    @pytest.mark.asyncio
    async def test_loads_bookmarks_and_tabs(self, sample_bookmarks_path, tmp_path):
        config = Config(bookmarks_path=sample_bookmarks_path, history_path=tmp_path / "History")
        bridge = MagicMock(is_connected=True)
        bridge.get_tabs = AsyncMock(return_value=[
            tab_entry({"id": 1, "title": "Docs", "url": "https://docs.python.org/"}),
        ])

        data = await load_search_data(config, bridge)

        assert len(data.bookmarks) == 5
        assert len(data.tabs) == 1
        assert data.history == []
        assert data.bookmarks[0].tab
        bridge.get_tabs.assert_awaited_once_with(only_current_window=False)

    @pytest.mark.asyncio
    async def test_missing_sources_give_empty_datasets(self, tmp_path, capsys):
        config = Config(bookmarks_path=tmp_path / "Bookmarks", history_path=tmp_path / "History")
        data = await load_search_data(config, bridge=None)
        assert data.counts() == {"bookmarks": 0, "tabs": 0, "history": 0}
        assert "Could not find bookmarks file" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_tab_errors_are_reported(self, tmp_path, capsys):
        config = Config(bookmarks_path=tmp_path / "Bookmarks", history_path=tmp_path / "History")
        bridge = MagicMock(is_connected=True)
        bridge.get_tabs = AsyncMock(side_effect=TimeoutError("no answer"))
        data = await load_search_data(config, bridge)
        assert data.tabs == []
        assert "Error loading tabs: no answer" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_disabled_datasets_are_skipped(self, sample_bookmarks_path, tmp_path):
        config = Config(
            bookmarks_path=sample_bookmarks_path,
            history_path=tmp_path / "History",
            options=SearchOptions(enable_bookmarks=False, enable_tabs=False),
        )
        bridge = MagicMock(is_connected=True)
        bridge.get_tabs = AsyncMock()
        data = await load_search_data(config, bridge)
        assert data == SearchData()
        bridge.get_tabs.assert_not_awaited()
