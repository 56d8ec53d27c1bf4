"""Tests for precise search and its progressive cache."""
import random

import pytest

from omnisearch.entries import Entry, bookmark_entry
from omnisearch.precise_search import PreciseSearch
from omnisearch.search_data import SearchData


@pytest.fixture
def learn_data():
    return SearchData(bookmarks=[
        bookmark_entry("1", "learn javascript fundamentals", "https://js.example.com"),
        bookmark_entry("2", "learn python basics", "https://py.example.com"),
    ])


def titles(results):
    return [r.title for r in results]


class TestPreciseSearch:
    def test_progressive_narrowing(self, learn_data):
        precise = PreciseSearch()
        assert titles(precise.search("bookmarks", "learn", learn_data)) == [
            "learn javascript fundamentals",
            "learn python basics",
        ]
        assert titles(precise.search("bookmarks", "learn javascript", learn_data)) == [
            "learn javascript fundamentals",
        ]

    def test_warm_and_cold_results_are_identical(self, search_data):
        warm = PreciseSearch()
        for term in ["p", "py", "pyt", "pyth", "python", "python d"]:
            warm_results = warm.search("all", term, search_data)
        cold_results = PreciseSearch().search("all", "python d", search_data)
        assert warm_results == cold_results

    def test_non_extension_rescans(self, learn_data):
        precise = PreciseSearch()
        precise.search("bookmarks", "learn javascript", learn_data)
        assert titles(precise.search("bookmarks", "python", learn_data)) == ["learn python basics"]

    def test_and_semantics(self, search_data):
        results = PreciseSearch().search("bookmarks", "docs python", search_data)
        assert titles(results) == ["Python Docs"]

    def test_case_insensitive_and_empty_tokens_ignored(self, search_data):
        results = PreciseSearch().search("bookmarks", "JIRA   board", search_data)
        assert titles(results) == ["Jira Board"]

    def test_matches_tags_and_folders(self, search_data):
        assert titles(PreciseSearch().search("bookmarks", "#finance", search_data)) == ["Budget Sheet"]
        assert titles(PreciseSearch().search("bookmarks", "~tutorials", search_data)) == ["Learn JavaScript"]

    def test_history_mode_searches_tabs_and_history(self, search_data):
        results = PreciseSearch().search("history", "python", search_data)
        assert {r.type for r in results} == {"tab", "history"}

    def test_search_mode_returns_nothing(self, search_data):
        assert PreciseSearch().search("search", "python", search_data) == []

    def test_results_are_new_objects(self, search_data):
        results = PreciseSearch().search("bookmarks", "python", search_data)
        assert results[0].search_score == 1
        assert results[0].search_approach == "precise"
        assert all(r is not e for r in results for e in search_data.bookmarks)
        assert not hasattr(search_data.bookmarks[0], "search_approach")

    def test_reset_single_dataset(self, search_data):
        precise = PreciseSearch()
        precise.search("all", "python", search_data)
        precise.reset("bookmarks")
        assert "bookmarks" not in precise._state
        assert "tabs" in precise._state
        precise.reset()
        assert precise._state == {}

    def test_new_corpus_is_picked_up(self, learn_data):
        precise = PreciseSearch()
        precise.search("bookmarks", "learn", learn_data)
        other = SearchData(bookmarks=[bookmark_entry("9", "learn go", "https://go.dev")])
        assert titles(precise.search("bookmarks", "learn", other)) == ["learn go"]

    def test_missing_search_string_raises(self):
        data = SearchData(bookmarks=[Entry(type="bookmark", title="broken")])
        with pytest.raises(AttributeError):
            PreciseSearch().search("bookmarks", "broken", data)


CORPUS_TITLES = [
    "Learn JavaScript #javascript #tutorial",
    "Python Docs #python #docs",
    "Jira Board",
    "Budget Sheet #finance",
    "Rust Book #rust",
    "Stack Overflow",
    "Java Tutorial #java",
]


@pytest.fixture
def corpus():
    return SearchData(bookmarks=[
        bookmark_entry(str(i), title, f"https://site{i}.example.com/{title.split()[0].lower()}", ["Work"] if i % 2 else [])
        for i, title in enumerate(CORPUS_TITLES)
    ])


def random_tokens(rng, entries):
    """A few tokens, mostly cut out of real search strings, some made up."""
    tokens = []
    for _ in range(rng.randint(1, 3)):
        if rng.random() < 0.8:
            source = rng.choice(entries).search_string_lower.replace(" ", "")
            start = rng.randrange(len(source))
            tokens.append(source[start:start + rng.randint(1, 5)])
        else:
            tokens.append("".join(rng.choice("abcjoprstuvxyz") for _ in range(rng.randint(1, 3))))
    return tokens


class TestAndSemantics:
    @pytest.mark.parametrize("seed", range(25))
    def test_matches_every_token_as_substring(self, corpus, seed):
        rng = random.Random(seed)
        tokens = random_tokens(rng, corpus.bookmarks)
        expected = [
            e.id for e in corpus.bookmarks
            if all(t in e.search_string.lower() for t in tokens)
        ]
        results = PreciseSearch().search("bookmarks", " ".join(tokens), corpus)
        assert [r.id for r in results] == expected

    @pytest.mark.parametrize("seed", range(10))
    def test_extended_terms_match_cold_search(self, corpus, seed):
        rng = random.Random(seed)
        tokens = random_tokens(rng, corpus.bookmarks)
        warm = PreciseSearch()
        term = ""
        for token in tokens:
            term = f"{term} {token}".strip()
            warm_ids = [r.id for r in warm.search("bookmarks", term, corpus)]
            cold_ids = [r.id for r in PreciseSearch().search("bookmarks", term, corpus)]
            assert warm_ids == cold_ids
