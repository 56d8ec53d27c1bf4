"""Fuzzy search with typo tolerance.

Each token of the term is matched as a character sequence that may have a
few extra characters between its letters ("insertion tolerance"). At high
fuzziness a token may also contain one wrong, swapped or missing character;
that check is delegated to rapidfuzz, which is only imported on first use.
"""
import asyncio
import importlib
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from omnisearch.entries import Entry, SearchResult
from omnisearch.errors import ErrorReporter, FuzzyEngineError, print_error
from omnisearch.query_parser import resolve_search_targets


NON_ASCII_RE = re.compile(r"[\u0080-\uFFFF]")

INSERTION_TOLERANCE_FACTOR = 4.2
SINGLE_ERROR_FUZZINESS = 0.8
SINGLE_ERROR_MIN_TOKEN_LENGTH = 3
# rapidfuzz scores are floats; keep exactly one edit above the cutoff
SCORE_CUTOFF_EPSILON = 0.01


def contains_non_ascii(term: str) -> bool:
    return NON_ASCII_RE.search(term) is not None


class MatchEngine:
    """Filters a haystack of lowercase strings by one token at a time.

    Args:
        fuzz: The rapidfuzz ``fuzz`` module
        insertions: Characters allowed between two letters of a token
        non_ascii: Allow any unicode word character as filler instead of
            only ASCII letters and digits
        single_error: Also accept tokens with one substituted, swapped or
            dropped character
    """

    def __init__(self, fuzz: Any, insertions: int, non_ascii: bool = False, single_error: bool = False):
        self.fuzz = fuzz
        self.insertions = insertions
        self.non_ascii = non_ascii
        self.single_error = single_error

    @property
    def params(self) -> Tuple[int, bool, bool]:
        return (self.insertions, self.non_ascii, self.single_error)

    def _pattern(self, token: str) -> "re.Pattern[str]":
        filler = r"[^\W_]" if self.non_ascii else r"[a-z\d']"
        gap = f"{filler}{{0,{self.insertions}}}" if self.insertions else ""
        return re.compile(gap.join(re.escape(char) for char in token))

    def filter(self, haystack: Sequence[str], token: str, idxs: Optional[List[int]] = None) -> List[int]:
        """Indexes of haystack entries the token matches.

        Raises:
            re.error: If the token cannot be turned into a pattern.
        """
        if idxs is None:
            idxs = range(len(haystack))
        pattern = self._pattern(token)

        cutoff = None
        if self.single_error and len(token) >= SINGLE_ERROR_MIN_TOKEN_LENGTH:
            cutoff = 100 * (1 - 1 / len(token)) - SCORE_CUTOFF_EPSILON

        matches = []
        for i in idxs:
            hay = haystack[i]
            if pattern.search(hay):
                matches.append(i)
            elif cutoff is not None and self.fuzz.partial_ratio(token, hay, score_cutoff=cutoff):
                matches.append(i)
        return matches


@dataclass
class _DatasetState:
    data: Sequence[Entry]
    haystack: List[str]
    engine: MatchEngine
    idxs: Optional[List[int]] = None
    term: str = ""


class FuzzySearch:
    """Fuzzy matcher keeping one engine and haystack per dataset."""

    def __init__(self, report_error: ErrorReporter = print_error):
        self.report_error = report_error
        self._fuzz: Optional[Any] = None
        self._state: Dict[str, _DatasetState] = {}
        # Set when the last search reported an error instead of matching
        self.degraded = False

    def reset(self, dataset: Optional[str] = None) -> None:
        """Drop the cached state of one dataset, or of all of them."""
        if dataset:
            self._state.pop(dataset, None)
        else:
            self._state.clear()

    @property
    def is_loaded(self) -> bool:
        return self._fuzz is not None

    async def load_engine(self) -> bool:
        """Import rapidfuzz on first use.

        Returns:
            True if the engine is available
        """
        if self._fuzz is None:
            try:
                self._fuzz = await asyncio.to_thread(importlib.import_module, "rapidfuzz.fuzz")
            except ImportError as e:
                self.report_error(FuzzyEngineError(str(e)), "Could not load fuzzy search engine.")
                return False
        return True

    async def search(self, mode: str, term: str, data, fuzziness: float) -> List[SearchResult]:
        """Fuzzy search the datasets the mode targets.

        Args:
            mode: Search mode
            term: Search term without mode prefix
            data: Object with bookmarks, tabs and history lists
            fuzziness: 0 to 1, higher tolerates more typos

        Returns:
            New SearchResult objects; empty and ``degraded`` set if the
            engine is unavailable or rejected the term
        """
        self.degraded = False
        if not await self.load_engine():
            self.degraded = True
            return []

        results: List[SearchResult] = []
        for target in resolve_search_targets(mode):
            results.extend(self._search_dataset(target, term, getattr(data, target), fuzziness))
        return results

    def _engine_params(self, term: str, fuzziness: float) -> Tuple[int, bool, bool]:
        return (
            round(fuzziness * INSERTION_TOLERANCE_FACTOR),
            contains_non_ascii(term),
            fuzziness >= SINGLE_ERROR_FUZZINESS,
        )

    def _prepare(self, dataset: str, entries: Sequence[Entry], term: str, fuzziness: float) -> _DatasetState:
        params = self._engine_params(term, fuzziness)
        state = self._state.get(dataset)

        if state is not None and state.data is entries and state.engine.params == params:
            return state

        if state is not None and state.data is entries:
            haystack = state.haystack
        else:
            haystack = [entry.search_string_lower for entry in entries]

        state = _DatasetState(
            data=entries,
            haystack=haystack,
            engine=MatchEngine(self._fuzz, *params),
        )
        self._state[dataset] = state
        return state

    def _search_dataset(self, dataset: str, term: str, entries: Sequence[Entry], fuzziness: float) -> List[SearchResult]:
        if not entries:
            return []

        state = self._prepare(dataset, entries, term, fuzziness)

        if state.term and not term.startswith(state.term):
            state.idxs = None

        idxs = state.idxs
        try:
            for token in term.lower().split(" "):
                if not token:
                    continue
                idxs = state.engine.filter(state.haystack, token, idxs)
                if not idxs:
                    break
        except (re.error, ValueError) as e:
            self.report_error(
                FuzzyEngineError(str(e)),
                "Fuzzy search could not handle search term. Please try precise search instead.",
            )
            self.degraded = True
            return []

        if idxs is None:
            idxs = list(range(len(state.haystack)))

        state.idxs = idxs
        state.term = term

        return [
            SearchResult.from_entry(state.data[i], search_score=1, search_approach="fuzzy")
            for i in idxs
        ]
