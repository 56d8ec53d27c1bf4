"""Shared fixtures for tests."""
import json
import pytest

from omnisearch.config import SearchOptions
from omnisearch.entries import bookmark_entry, history_entry, tab_entry
from omnisearch.search_data import SearchData


SAMPLE_BOOKMARKS = {
    "checksum": "test",
    "roots": {
        "bookmark_bar": {
            "children": [
                {
                    "id": "1",
                    "name": "Python Docs #python #docs",
                    "type": "url",
                    "url": "https://docs.python.org/",
                    "date_added": "13300000000000000"
                },
                {
                    "id": "2",
                    "name": "Work",
                    "type": "folder",
                    "children": [
                        {
                            "id": "3",
                            "name": "Jira Board +20",
                            "type": "url",
                            "url": "https://jira.example.com/board"
                        },
                        {
                            "id": "4",
                            "name": "Budget Sheet #finance",
                            "type": "url",
                            "url": "https://sheets.example.com/budget"
                        }
                    ]
                },
                {
                    "id": "5",
                    "name": "Tutorials",
                    "type": "folder",
                    "children": [
                        {
                            "id": "6",
                            "name": "Learn JavaScript #javascript #tutorial",
                            "type": "url",
                            "url": "https://javascript.info"
                        }
                    ]
                }
            ],
            "id": "0",
            "name": "Bookmarks Bar",
            "type": "folder"
        },
        "other": {
            "children": [
                {
                    "id": "7",
                    "name": "Stack Overflow",
                    "type": "url",
                    "url": "https://stackoverflow.com"
                }
            ],
            "id": "100",
            "name": "Other Bookmarks",
            "type": "folder"
        },
        "synced": {
            "children": [],
            "id": "200",
            "name": "Mobile Bookmarks",
            "type": "folder"
        }
    },
    "version": 1
}


def zeroed_options(**overrides) -> SearchOptions:
    """Options with every bonus switched off, so single bonuses can be checked."""
    values = {}
    for name in SearchOptions.model_fields:
        if name.startswith("score_") and name.endswith(("_bonus", "_maximum", "_bonus_score")):
            values[name] = 0
    values["score_custom_bonus_score"] = False
    values["score_min_score"] = 0
    values.update(overrides)
    return SearchOptions(**values)


@pytest.fixture
def sample_bookmarks_path(tmp_path):
    """Create a temporary bookmarks file with sample data."""
    bookmarks_file = tmp_path / "Bookmarks"
    bookmarks_file.write_text(json.dumps(SAMPLE_BOOKMARKS, indent=3))
    return bookmarks_file


@pytest.fixture
def bookmarks():
    return [
        bookmark_entry("1", "Python Docs #python #docs", "https://docs.python.org/"),
        bookmark_entry("3", "Jira Board +20", "https://jira.example.com/board", ["Work"]),
        bookmark_entry("4", "Budget Sheet #finance", "https://sheets.example.com/budget", ["Work"]),
        bookmark_entry("6", "Learn JavaScript #javascript #tutorial", "https://javascript.info", ["Tutorials"]),
        bookmark_entry("7", "Stack Overflow", "https://stackoverflow.com"),
    ]


@pytest.fixture
def tabs():
    now_ms = 1_700_000_000_000
    return [
        tab_entry({"id": 11, "title": "Python Tutorial", "url": "https://docs.python.org/3/tutorial/",
                   "windowId": 1, "lastAccessed": now_ms - 60_000, "group": "Research"}, now_ms=now_ms),
        tab_entry({"id": 12, "title": "Inbox", "url": "https://mail.example.com/", "windowId": 1,
                   "active": True, "lastAccessed": now_ms}, now_ms=now_ms),
        tab_entry({"id": 13, "title": "Extensions", "url": "chrome://extensions", "windowId": 1,
                   "lastAccessed": now_ms - 1_000}, now_ms=now_ms),
        tab_entry({"id": 14, "title": "Rust Book", "url": "https://doc.rust-lang.org/book/",
                   "windowId": 2, "lastAccessed": now_ms - 3_600_000, "group": "Research"}, now_ms=now_ms),
    ]


@pytest.fixture
def history():
    return [
        history_entry("21", "Hacker News", "https://news.ycombinator.com/", visit_count=40,
                      last_visit_seconds_ago=120),
        history_entry("22", "Python Release Notes", "https://www.python.org/downloads/", visit_count=2,
                      last_visit_seconds_ago=86_400),
    ]


@pytest.fixture
def search_data(bookmarks, tabs, history):
    return SearchData(bookmarks=bookmarks, tabs=tabs, history=history)
