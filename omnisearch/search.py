"""Search orchestration: from typed input to ranked, highlighted results.

One SearchOrchestrator owns every cache of a search session (precise and
fuzzy matcher state, taxonomy indexes and final results), so independent
sessions never share state.
"""
import asyncio
import html
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol, Tuple

from omnisearch.config import SearchOptions
from omnisearch.default_results import ActiveTabLookup, default_results
from omnisearch.entries import SearchResult
from omnisearch.errors import ErrorReporter, SearchError, UnknownSortMode, print_error
from omnisearch.fuzzy_search import FuzzySearch
from omnisearch.precise_search import PreciseSearch
from omnisearch.query_parser import TAXONOMY_FIELDS, TAXONOMY_MODES, resolve_search_mode
from omnisearch.scoring import calculate_final_score
from omnisearch.search_data import SearchData
from omnisearch.search_engines import (
    add_search_engines,
    collect_custom_search_alias_results,
    direct_url_result,
)
from omnisearch.taxonomy_search import TaxonomyIndex, search_taxonomy


# Keys that move the selection or are modifiers; they never change the term
SKIPPED_KEYS = frozenset({
    "ArrowUp", "ArrowDown", "Enter", "Escape",
    "Control", "Alt", "Shift", "Meta",
})

UNTRUNCATED_MODES = ("tags", "folders", "tabs", "groups")

RenderSink = Callable[[List[SearchResult]], None]
CacheKey = Tuple[str, str, str]


class Matcher(Protocol):
    """A matcher with per-dataset state that can be dropped."""

    def reset(self, dataset: Optional[str] = None) -> None:
        ...


@dataclass
class SearchContext:
    """Everything a search needs from its surroundings.

    Attributes:
        options: Effective search options
        data: The corpus; searches are skipped until it is set
        get_active_tab: Async lookup of the active browser tab
        render: Receives the results of every completed search
        report_error: Receives errors that end or degrade a search
    """
    options: SearchOptions
    data: Optional[SearchData] = None
    get_active_tab: Optional[ActiveTabLookup] = None
    render: Optional[RenderSink] = None
    report_error: ErrorReporter = print_error


def sort_results(results: List[SearchResult], sort_mode: Optional[str]) -> List[SearchResult]:
    """Sort results by ``score`` (highest first) or ``last_visited`` (most recent first).

    Raises:
        UnknownSortMode: For any other sort mode than None.
    """
    if sort_mode is None:
        return results
    if sort_mode == "score":
        return sorted(results, key=lambda r: r.score or 0, reverse=True)
    if sort_mode == "last_visited":
        return sorted(
            results,
            key=lambda r: float("inf") if r.last_visit_seconds_ago is None else r.last_visit_seconds_ago,
        )
    raise UnknownSortMode(sort_mode)


def _highlight_pattern(term: str) -> Optional["re.Pattern[str]"]:
    tokens = [token for token in term.split(" ") if token]
    if not tokens:
        return None
    escaped = sorted((re.escape(token) for token in tokens), key=len, reverse=True)
    return re.compile("|".join(escaped), re.IGNORECASE)


def _mark(pattern: "re.Pattern[str]", text: str) -> str:
    """Wrap matches in the raw text in <mark> and HTML escape the rest."""
    parts = []
    position = 0
    for match in pattern.finditer(text):
        parts.append(html.escape(text[position:match.start()]))
        parts.append(f"<mark>{html.escape(match.group())}</mark>")
        position = match.end()
    parts.append(html.escape(text[position:]))
    return "".join(parts)


def highlight_results(results: List[SearchResult], term: str) -> List[SearchResult]:
    """Highlighted copies of the results.

    Title and url are HTML escaped and every token of the term is wrapped in
    ``<mark>``. Tags, folders and group are highlighted together with their
    markers (``#tag``, ``~folder``, ``@group``) so a marker in the term
    matches too.
    """
    pattern = _highlight_pattern(term)
    highlighted = []
    for result in results:
        copy = result.copy()
        if pattern is not None:
            copy.highlighted_title = _mark(pattern, copy.title or "")
            copy.highlighted_url = _mark(pattern, copy.url or "")
            copy.highlighted_tags_array = [_mark(pattern, "#" + tag) for tag in copy.tags_array]
            copy.highlighted_folder_array = [_mark(pattern, "~" + folder) for folder in copy.folder_array]
            copy.highlighted_group = _mark(pattern, "@" + copy.group) if copy.group else None
        highlighted.append(copy)
    return highlighted


class SearchOrchestrator:
    """Runs searches for typed input and caches their results."""

    def __init__(self, context: SearchContext):
        self.context = context
        self.precise = PreciseSearch()
        self.fuzzy = FuzzySearch(report_error=context.report_error)
        self.taxonomy = TaxonomyIndex(context.data)
        self.results: List[SearchResult] = []
        self.pending: Optional[asyncio.Task] = None
        self._result_cache: Dict[CacheKey, List[SearchResult]] = {}

    @property
    def initialized(self) -> bool:
        return self.context.data is not None

    @property
    def options(self) -> SearchOptions:
        return self.context.options

    # ------------------------------------------------------------------
    # Cache lifecycle
    # ------------------------------------------------------------------

    def _matchers(self) -> List[Matcher]:
        return [self.precise, self.fuzzy]

    def set_data(self, data: SearchData) -> None:
        """Replace the corpus and drop every cache built from the old one."""
        self.context.data = data
        self.taxonomy.data = data
        for matcher in self._matchers():
            matcher.reset()
        self.taxonomy.reset_folders()
        self.reset_result_cache()

    def set_options(self, options: SearchOptions) -> None:
        self.context.options = options
        self.reset_result_cache()

    def reset_precise_cache(self, dataset: Optional[str] = None) -> None:
        self.precise.reset(dataset)

    def reset_fuzzy_cache(self, dataset: Optional[str] = None) -> None:
        self.fuzzy.reset(dataset)

    def reset_taxonomy_folder_cache(self) -> None:
        self.taxonomy.reset_folders()

    def reset_result_cache(self) -> None:
        self._result_cache.clear()

    def invalidate_bookmark_caches(self) -> None:
        """Call after bookmarks were added, edited or deleted."""
        for matcher in self._matchers():
            matcher.reset("bookmarks")
        self.taxonomy.reset_folders()
        self.reset_result_cache()

    # ------------------------------------------------------------------
    # Taxonomy overview
    # ------------------------------------------------------------------

    def unique_tags(self) -> Dict[str, List[str]]:
        return self.taxonomy.unique_tags()

    def unique_folders(self) -> Dict[str, List[str]]:
        return self.taxonomy.unique_folders()

    def unique_groups(self) -> Dict[str, List[str]]:
        return self.taxonomy.unique_groups()

    # ------------------------------------------------------------------
    # Searching
    # ------------------------------------------------------------------

    def trigger(self, raw_input: str, key: Optional[str] = None) -> "asyncio.Task":
        """Start a search without waiting for it.

        The task is kept as ``pending`` so a following action can await the
        search it depends on with wait_for_pending().
        """
        self.pending = asyncio.ensure_future(self.search(raw_input, key))
        return self.pending

    async def wait_for_pending(self) -> Optional[List[SearchResult]]:
        if self.pending is None:
            return None
        return await self.pending

    async def search(self, raw_input: str, key: Optional[str] = None) -> Optional[List[SearchResult]]:
        """Search for the typed input.

        Args:
            raw_input: Content of the search box
            key: Key that triggered the search, if any

        Returns:
            The results, or None if the search was skipped because of the
            key or because no corpus is loaded yet. A search that failed
            with a SearchError returns an empty list.
        """
        if key in SKIPPED_KEYS:
            return None
        if not self.initialized:
            self.context.report_error(
                RuntimeError("Search data not loaded"), "Skipping search."
            )
            return None

        term = (raw_input or "").lstrip().lower()
        try:
            results = await self._search(term)
        except SearchError as e:
            self.context.report_error(e, f'Search for "{term}" failed.')
            results = []

        self.results = results
        if self.context.render is not None:
            self.context.render(results)
        return results

    async def _search(self, term: str) -> List[SearchResult]:
        options = self.options
        data = self.context.data
        strategy = options.search_strategy
        mode, search_term = resolve_search_mode(term)
        cache_key = (term, strategy, mode)

        if term and cache_key in self._result_cache:
            return [result.copy() for result in self._result_cache[cache_key]]

        search_term = search_term.strip()
        cacheable = True

        if not search_term:
            results = await default_results(
                mode,
                data,
                options,
                get_active_tab=self.context.get_active_tab,
                report_error=self.context.report_error,
            )
        else:
            results, cacheable = await self._match(mode, search_term)

            if options.enable_direct_url and mode not in TAXONOMY_MODES:
                direct = direct_url_result(search_term)
                if direct is not None:
                    results.append(direct)

            if mode in ("all", "search"):
                if mode == "all":
                    results.extend(collect_custom_search_alias_results(search_term, options))
                results.extend(add_search_engines(search_term, options))

        calculate_final_score(results, search_term, options)

        if search_term:
            sort_mode = "score"
        elif mode in ("history", "tabs"):
            sort_mode = "last_visited"
        else:
            sort_mode = None
        results = sort_results(results, sort_mode)

        results = [r for r in results if r.score is not None and r.score >= options.score_min_score]

        if mode not in UNTRUNCATED_MODES:
            results = results[:options.search_max_results]

        if search_term:
            results = highlight_results(results, term if mode in TAXONOMY_MODES else search_term)

        if term and cacheable:
            self._result_cache[cache_key] = [result.copy() for result in results]
        return results

    async def _match(self, mode: str, search_term: str) -> Tuple[List[SearchResult], bool]:
        """Run the matcher for the mode.

        Returns:
            The matches and whether they may be cached. A fuzzy pass that
            reported an error instead of matching must not be cached.
        """
        data = self.context.data
        if mode in TAXONOMY_MODES:
            dataset = data.tabs if mode == "groups" else data.bookmarks
            return search_taxonomy(search_term, TAXONOMY_FIELDS[mode], dataset), True
        if self.options.search_strategy == "fuzzy":
            results = await self.fuzzy.search(mode, search_term, data, self.options.search_fuzzyness)
            return results, not self.fuzzy.degraded
        return self.precise.search(mode, search_term, data), True
