"""Tag, folder and tab group search, plus the taxonomy overview indexes."""
from typing import Dict, List, Optional, Sequence

from omnisearch.entries import Entry, SearchResult


TAXONOMY_MARKER_BY_FIELD = {
    "tags": "#",
    "folder": "~",
    "group": "@",
}

# Separates the taxonomy filter from a free text filter on title and url
HYBRID_SEPARATOR = "  "


def _field_value(entry: Entry, field: str) -> str:
    if field == "group":
        return f"@{entry.group}".lower() if entry.group else ""
    return (getattr(entry, field) or "").lower()


def search_taxonomy(term: str, field: str, data: Sequence[Entry]) -> List[SearchResult]:
    """Find entries whose tags, folder or group contain every sub-term.

    ``term`` is split on the field's marker; each non-empty sub-term must
    appear as ``marker + subterm`` in the lowercased field. Text after a
    double space must additionally be found in the title or url, e.g.
    ``"work  budget"`` on folders means folder contains ~work and title or
    url contains budget.

    Args:
        term: Search term without the leading marker
        field: One of "tags", "folder" or "group"
        data: Entries to search

    Returns:
        New SearchResult objects for all matches
    """
    marker = TAXONOMY_MARKER_BY_FIELD[field]

    taxonomy_part, _, free_text = term.lower().partition(HYBRID_SEPARATOR)
    subterms = [s.strip() for s in taxonomy_part.split(marker) if s.strip()]
    text_tokens = free_text.split()

    results = []
    for entry in data:
        value = _field_value(entry, field)
        if not all(marker + subterm in value for subterm in subterms):
            continue
        if text_tokens:
            title = (entry.title or "").lower()
            url = (entry.url or "").lower()
            if not all(token in title or token in url for token in text_tokens):
                continue
        results.append(SearchResult.from_entry(entry, search_score=1, search_approach="taxonomy"))
    return results


def _collect(entries: Sequence[Entry], raw_values) -> Dict[str, List[str]]:
    index: Dict[str, List[str]] = {}
    for entry, raw in zip(entries, raw_values):
        for name in raw:
            name = name.strip()
            if name:
                index.setdefault(name, []).append(entry.id)
    return index


class TaxonomyIndex:
    """Aggregates tags, folders and groups to the ids of their entries.

    The tag index is rebuilt on every call. The folder index is memoized
    until reset_folders() is called after bookmarks change.
    """

    def __init__(self, data=None):
        self.data = data
        self._folders: Optional[Dict[str, List[str]]] = None

    def unique_tags(self) -> Dict[str, List[str]]:
        bookmarks = self.data.bookmarks if self.data else []
        return _collect(bookmarks, ((entry.tags or "").split("#") for entry in bookmarks))

    def unique_folders(self) -> Dict[str, List[str]]:
        if self._folders is None:
            bookmarks = self.data.bookmarks if self.data else []
            self._folders = _collect(bookmarks, ((entry.folder or "").split("~") for entry in bookmarks))
        return self._folders

    def unique_groups(self) -> Dict[str, List[str]]:
        tabs = self.data.tabs if self.data else []
        return _collect(tabs, ([entry.group] if entry.group else [] for entry in tabs))

    def reset_folders(self) -> None:
        self._folders = None
