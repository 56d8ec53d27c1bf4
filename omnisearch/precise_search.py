"""Precise (substring, AND) search with a progressive per-dataset cache."""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from omnisearch.entries import Entry, SearchResult
from omnisearch.query_parser import resolve_search_targets


@dataclass
class _DatasetState:
    data: Sequence[Entry]
    haystack: List[str]
    idxs: Optional[List[int]] = None
    term: str = ""


class PreciseSearch:
    """Case-insensitive substring search where every token must match.

    Each dataset keeps the indexes that survived the last term. When the next
    term extends the last one, only those indexes are scanned again.
    """

    def __init__(self):
        self._state: Dict[str, _DatasetState] = {}

    def reset(self, dataset: Optional[str] = None) -> None:
        """Drop the cached state of one dataset, or of all of them."""
        if dataset:
            self._state.pop(dataset, None)
        else:
            self._state.clear()

    def search(self, mode: str, term: str, data) -> List[SearchResult]:
        """Search the datasets the mode targets.

        Args:
            mode: Search mode (see query_parser.resolve_search_targets)
            term: Search term without mode prefix
            data: Object with bookmarks, tabs and history lists

        Returns:
            New SearchResult objects in dataset order

        Raises:
            AttributeError: If an entry has no search string.
        """
        results: List[SearchResult] = []
        for target in resolve_search_targets(mode):
            results.extend(self._search_dataset(target, term, getattr(data, target)))
        return results

    def _prepare(self, dataset: str, entries: Sequence[Entry]) -> _DatasetState:
        state = self._state.get(dataset)
        if state is None or state.data is not entries:
            state = _DatasetState(
                data=entries,
                haystack=[entry.search_string_lower for entry in entries],
            )
            self._state[dataset] = state
        return state

    def _search_dataset(self, dataset: str, term: str, entries: Sequence[Entry]) -> List[SearchResult]:
        if not entries:
            return []

        state = self._prepare(dataset, entries)

        if state.term and not term.startswith(state.term):
            state.idxs = None

        idxs = state.idxs
        if idxs is None:
            idxs = list(range(len(state.haystack)))

        if idxs:
            haystack = state.haystack
            for token in term.lower().split(" "):
                if not token:
                    continue
                idxs = [i for i in idxs if token in haystack[i]]
                if not idxs:
                    break

        state.idxs = idxs
        state.term = term

        return [
            SearchResult.from_entry(state.data[i], search_score=1, search_approach="precise")
            for i in idxs
        ]
