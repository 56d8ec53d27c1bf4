"""Classify a search term into a search mode."""
from typing import List, NamedTuple


# Checked in order, first match wins
MODE_PREFIXES = (
    ("h ", "history"),
    ("b ", "bookmarks"),
    ("t ", "tabs"),
    ("s ", "search"),
)

TAXONOMY_MARKERS = {
    "#": "tags",
    "~": "folders",
    "@": "groups",
}

TAXONOMY_MODES = ("tags", "folders", "groups")

# Which taxonomy field each taxonomy mode searches
TAXONOMY_FIELDS = {
    "tags": "tags",
    "folders": "folder",
    "groups": "group",
}


class ParsedQuery(NamedTuple):
    mode: str
    term: str


def resolve_search_mode(term: str) -> ParsedQuery:
    """Work out the search mode from a prefix or taxonomy marker.

    A mode prefix ("h ", "b ", "t ", "s ") wins over a taxonomy marker that
    follows it. The prefix or marker is removed from the returned term.

    Args:
        term: Normalized search term

    Returns:
        ParsedQuery with the mode and the remaining term
    """
    for prefix, mode in MODE_PREFIXES:
        if term.startswith(prefix):
            return ParsedQuery(mode, term[len(prefix):])

    if term[:1] in TAXONOMY_MARKERS:
        return ParsedQuery(TAXONOMY_MARKERS[term[0]], term[1:])

    return ParsedQuery("all", term)


def resolve_search_targets(mode: str) -> List[str]:
    """Datasets a free-text search in this mode runs against.

    History mode includes tabs so an open tab on a visited page still shows up.
    """
    if mode == "history":
        return ["tabs", "history"]
    if mode == "bookmarks":
        return ["bookmarks"]
    if mode == "tabs":
        return ["tabs"]
    if mode == "search":
        return []
    return ["bookmarks", "tabs", "history"]
