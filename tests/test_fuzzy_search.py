"""Tests for fuzzy search."""
import pytest
from unittest.mock import MagicMock, patch

from omnisearch.entries import bookmark_entry
from omnisearch.fuzzy_search import FuzzySearch, MatchEngine, contains_non_ascii
from omnisearch.search_data import SearchData


@pytest.fixture
def data():
    return SearchData(bookmarks=[
        bookmark_entry("1", "Python Docs", "https://docs.python.org"),
        bookmark_entry("2", "Rust Book", "https://doc.rust-lang.org/book"),
        bookmark_entry("3", "Café Crème", "https://cafe.example.com"),
    ])


def titles(results):
    return [r.title for r in results]


class TestMatchEngine:
    def test_insertions_between_letters(self):
        engine = MatchEngine(fuzz=MagicMock(), insertions=2)
        assert engine.filter(["python", "rust"], "pthn") == [0]

    def test_no_insertions_is_substring(self):
        engine = MatchEngine(fuzz=MagicMock(), insertions=0)
        assert engine.filter(["python", "pthn"], "pthn") == [1]

    def test_filter_respects_index_subset(self):
        engine = MatchEngine(fuzz=MagicMock(), insertions=0)
        assert engine.filter(["abc", "abc", "abc"], "b", idxs=[0, 2]) == [0, 2]

    def test_special_characters_are_literal(self):
        engine = MatchEngine(fuzz=MagicMock(), insertions=1)
        assert engine.filter(["c++ guide", "cpp guide"], "c++") == [0]


class TestFuzzySearch:
    @pytest.mark.asyncio
    async def test_insertion_tolerance_from_fuzziness(self, data):
        fuzzy = FuzzySearch()
        assert titles(await fuzzy.search("bookmarks", "pthn", data, fuzziness=0.6)) == ["Python Docs"]
        fuzzy.reset()
        assert await fuzzy.search("bookmarks", "pthn", data, fuzziness=0) == []

    @pytest.mark.asyncio
    async def test_single_error_only_at_high_fuzziness(self, data):
        fuzzy = FuzzySearch()
        assert await fuzzy.search("bookmarks", "pyrhon", data, fuzziness=0.6) == []
        assert titles(await fuzzy.search("bookmarks", "pyrhon", data, fuzziness=0.8)) == ["Python Docs"]

    @pytest.mark.asyncio
    async def test_transposition_at_high_fuzziness(self, data):
        results = await FuzzySearch().search("bookmarks", "pyhton", data, fuzziness=0.9)
        assert titles(results) == ["Python Docs"]

    @pytest.mark.asyncio
    async def test_and_semantics_across_tokens(self, data):
        results = await FuzzySearch().search("bookmarks", "doc rust", data, fuzziness=0.6)
        assert titles(results) == ["Rust Book"]

    @pytest.mark.asyncio
    async def test_results_have_fixed_search_score(self, data):
        results = await FuzzySearch().search("bookmarks", "python", data, fuzziness=0.6)
        assert results[0].search_score == 1
        assert results[0].search_approach == "fuzzy"

    @pytest.mark.asyncio
    async def test_non_ascii_term_recreates_engine(self, data):
        fuzzy = FuzzySearch()
        await fuzzy.search("bookmarks", "cafe", data, fuzziness=0.6)
        assert fuzzy._state["bookmarks"].engine.non_ascii is False

        results = await fuzzy.search("bookmarks", "crème", data, fuzziness=0.6)
        assert titles(results) == ["Café Crème"]
        assert fuzzy._state["bookmarks"].engine.non_ascii is True

    @pytest.mark.asyncio
    async def test_fuzziness_change_recreates_engine(self, data):
        fuzzy = FuzzySearch()
        await fuzzy.search("bookmarks", "py", data, fuzziness=0.6)
        first = fuzzy._state["bookmarks"].engine
        await fuzzy.search("bookmarks", "py", data, fuzziness=0.6)
        assert fuzzy._state["bookmarks"].engine is first
        await fuzzy.search("bookmarks", "py", data, fuzziness=0.9)
        assert fuzzy._state["bookmarks"].engine is not first

    @pytest.mark.asyncio
    async def test_progressive_cache_matches_cold_search(self, data):
        warm = FuzzySearch()
        for term in ["r", "ru", "rus", "rust", "rust b"]:
            warm_results = await warm.search("bookmarks", term, data, fuzziness=0.6)
        cold_results = await FuzzySearch().search("bookmarks", "rust b", data, fuzziness=0.6)
        assert warm_results == cold_results

    @pytest.mark.asyncio
    async def test_engine_load_failure_is_reported(self, data):
        report = MagicMock()
        fuzzy = FuzzySearch(report_error=report)
        with patch("omnisearch.fuzzy_search.importlib.import_module", side_effect=ImportError("no rapidfuzz")):
            results = await fuzzy.search("bookmarks", "python", data, fuzziness=0.6)
        assert results == []
        assert report.called
        assert not fuzzy.is_loaded
        assert fuzzy.degraded

    @pytest.mark.asyncio
    async def test_rejected_term_marks_pass_degraded(self, data):
        report = MagicMock()
        fuzzy = FuzzySearch(report_error=report)
        with patch.object(MatchEngine, "filter", side_effect=ValueError("bad pattern")):
            assert await fuzzy.search("bookmarks", "python", data, fuzziness=0.6) == []
        assert fuzzy.degraded
        assert report.called

        assert titles(await fuzzy.search("bookmarks", "python", data, fuzziness=0.6)) == ["Python Docs"]
        assert not fuzzy.degraded

    @pytest.mark.asyncio
    async def test_engine_is_loaded_lazily(self, data):
        fuzzy = FuzzySearch()
        assert not fuzzy.is_loaded
        await fuzzy.search("bookmarks", "python", data, fuzziness=0.6)
        assert fuzzy.is_loaded


class TestContainsNonAscii:
    def test_detection(self):
        assert contains_non_ascii("crème")
        assert not contains_non_ascii("creme")
