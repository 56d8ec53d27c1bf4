"""Results shown when there is no search term."""
import re
from typing import Awaitable, Callable, List, Optional

from omnisearch.config import SearchOptions
from omnisearch.entries import Entry, SearchResult
from omnisearch.errors import ErrorReporter, print_error


# Returns the tab that is currently active in the browser, if any
ActiveTabLookup = Callable[[], Awaitable[Optional[Entry]]]

INTERNAL_URL_PREFIXES = (
    "chrome://",
    "chrome-extension://",
    "about:",
    "edge://",
    "brave://",
    "moz-extension://",
)

_PROTOCOL_RE = re.compile(r"^[a-z][a-z\d+.-]*://", re.IGNORECASE)


def normalize_page_url(url: str) -> str:
    """Strip protocol, fragment and trailing slash to compare page URLs."""
    url = _PROTOCOL_RE.sub("", url or "", count=1)
    url = url.split("#", 1)[0]
    return url.rstrip("/")


def _results(entries: List[Entry]) -> List[SearchResult]:
    return [SearchResult.from_entry(entry, search_score=1) for entry in entries]


def _recency_key(result: SearchResult) -> float:
    if result.last_visit_seconds_ago is None:
        return float("inf")
    return result.last_visit_seconds_ago


async def default_results(
    mode: str,
    data,
    options: SearchOptions,
    get_active_tab: Optional[ActiveTabLookup] = None,
    report_error: ErrorReporter = print_error,
) -> List[SearchResult]:
    """Default entries for a mode.

    History, tabs and bookmarks modes list their whole dataset (tabs most
    recent first). Otherwise bookmarks of the page in the active tab come
    first, followed by the most recently used tabs.

    Args:
        mode: Search mode
        data: Object with bookmarks, tabs and history lists
        options: Effective search options
        get_active_tab: Async lookup of the active browser tab
        report_error: Receives a failed active tab lookup

    Returns:
        New SearchResult objects with search score 1
    """
    if mode == "history":
        return _results(data.history)
    if mode == "tabs":
        return sorted(_results(data.tabs), key=_recency_key)
    if mode == "bookmarks":
        return _results(data.bookmarks)

    results: List[SearchResult] = []
    active_tab = None

    if get_active_tab is not None:
        try:
            active_tab = await get_active_tab()
        except (ConnectionError, TimeoutError, RuntimeError) as e:
            report_error(e, "Could not get current tab for default entries.")

    if active_tab is not None and active_tab.original_url:
        current_url = normalize_page_url(active_tab.original_url)
        results.extend(_results([
            bookmark for bookmark in data.bookmarks
            if bookmark.original_url and normalize_page_url(bookmark.original_url) == current_url
        ]))

    if options.max_recent_tabs_to_show > 0:
        recent_tabs = [
            tab for tab in data.tabs
            if tab.original_url
            and not tab.original_url.startswith(INTERNAL_URL_PREFIXES)
            and not _is_same_tab(tab, active_tab)
        ]
        recent = sorted(_results(recent_tabs), key=_recency_key)
        results.extend(recent[:options.max_recent_tabs_to_show])

    return results


def _is_same_tab(tab: Entry, active_tab: Optional[Entry]) -> bool:
    if active_tab is None:
        return False
    if tab.id and active_tab.id:
        return tab.id == active_tab.id
    return tab.original_url == active_tab.original_url
