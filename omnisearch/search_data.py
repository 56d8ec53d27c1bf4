"""The searchable corpus and how it is loaded from Chrome."""
import dataclasses
import json
import sys
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

import aiosqlite

from omnisearch.bookmarks_reader import get_chrome_bookmarks_path, read_chrome_bookmarks
from omnisearch.chrome_bridge import ChromeBridge
from omnisearch.config import Config
from omnisearch.entries import Entry
from omnisearch.history_reader import HistoryReader, get_chrome_history_path


DATASETS = ("bookmarks", "tabs", "history")


@dataclass
class SearchData:
    """Bookmarks, tabs and history entries searched by the engine."""
    bookmarks: List[Entry] = field(default_factory=list)
    tabs: List[Entry] = field(default_factory=list)
    history: List[Entry] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        return {name: len(getattr(self, name)) for name in DATASETS}


def merge_history(
    items: List[Entry],
    history_by_url: Dict[str, Entry],
    merged_urls: Set[str],
) -> List[Entry]:
    """Copy visit count and recency from history onto bookmarks or tabs.

    Items without a history match are kept as they are; matched items are
    replaced by updated copies. Matched URLs are added to ``merged_urls``.
    """
    merged = []
    for item in items:
        history_item = history_by_url.get(item.original_url)
        if history_item is None:
            merged.append(item)
            continue
        merged_urls.add(item.original_url)
        merged.append(dataclasses.replace(
            item,
            visit_count=history_item.visit_count if history_item.visit_count is not None else item.visit_count,
            last_visit_seconds_ago=(
                history_item.last_visit_seconds_ago
                if history_item.last_visit_seconds_ago is not None
                else item.last_visit_seconds_ago
            ),
        ))
    return merged


def flag_bookmarks_with_open_tabs(bookmarks: List[Entry], tabs: List[Entry]) -> None:
    tab_urls = {tab.url for tab in tabs if tab.url}
    for bookmark in bookmarks:
        if bookmark.url in tab_urls:
            bookmark.tab = True


def assemble_search_data(
    bookmarks: List[Entry],
    tabs: List[Entry],
    history: List[Entry],
) -> SearchData:
    """Merge history into bookmarks and tabs.

    History items that were merged are removed from the history dataset, so
    each page shows up once. Bookmarks of open tabs are flagged.
    """
    history_by_url = {item.original_url: item for item in history}
    merged_urls: Set[str] = set()

    bookmarks = merge_history(bookmarks, history_by_url, merged_urls)
    tabs = merge_history(tabs, history_by_url, merged_urls)
    flag_bookmarks_with_open_tabs(bookmarks, tabs)
    history = [item for item in history if item.original_url not in merged_urls]

    return SearchData(bookmarks=bookmarks, tabs=tabs, history=history)


async def load_search_data(config: Config, bridge: Optional[ChromeBridge] = None) -> SearchData:
    """Load all enabled datasets.

    A dataset that can't be loaded is reported on stderr and left empty.

    Args:
        config: Server configuration with the effective search options
        bridge: Bridge to the Chrome extension, used for tabs

    Returns:
        The assembled corpus
    """
    start = time.monotonic()
    options = config.options
    bookmarks: List[Entry] = []
    tabs: List[Entry] = []
    history: List[Entry] = []

    if options.enable_bookmarks:
        try:
            bookmarks = read_chrome_bookmarks(
                config.bookmarks_path or get_chrome_bookmarks_path(config.chrome_profile),
                ignore_folders=options.bookmarks_ignore_folder_list,
            )
        except FileNotFoundError as e:
            print(f"Warning: Could not find bookmarks file: {e}", file=sys.stderr)
        except (OSError, json.JSONDecodeError) as e:
            print(f"Error loading bookmarks: {e}", file=sys.stderr)

    if options.enable_tabs and bridge is not None and bridge.is_connected:
        try:
            tabs = await bridge.get_tabs(only_current_window=options.tabs_only_current_window)
        except (ConnectionError, TimeoutError, RuntimeError) as e:
            print(f"Error loading tabs: {e}", file=sys.stderr)

    if options.enable_history:
        reader = HistoryReader(config.history_path or get_chrome_history_path(config.chrome_profile))
        try:
            history = await reader.read(
                days_ago=options.history_days_ago,
                max_items=options.history_max_items,
                ignore_list=options.history_ignore_list,
            )
        except FileNotFoundError as e:
            print(f"Warning: Could not find history database: {e}", file=sys.stderr)
        except (OSError, aiosqlite.Error) as e:
            print(f"Error loading history: {e}", file=sys.stderr)

    data = assemble_search_data(bookmarks, tabs, history)
    counts = data.counts()
    print(
        f"[SearchData] Loaded {counts['tabs']} tabs, {counts['bookmarks']} bookmarks and "
        f"{counts['history']} history items in {(time.monotonic() - start) * 1000:.0f}ms",
        file=sys.stderr,
    )
    return data
