"""Search entries (bookmarks, tabs, history) and the results derived from them.

Every entry carries a ``search_string``: title, cleaned url, tags and folder
joined by ``SEARCH_STRING_SEPARATOR``. Matchers scan its lowercase form.
"""
import dataclasses
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


SEARCH_STRING_SEPARATOR = "¦"

_URL_PREFIX_RE = re.compile(r"^(?:https?://)?(?:www\.)?", re.IGNORECASE)
_CUSTOM_BONUS_RE = re.compile(r"[ ][+]([0-9]+)")

# Fields that feed the search string
_SEARCHABLE_FIELDS = ("title", "url", "tags", "folder")


def clean_up_url(url: Optional[str]) -> str:
    """Normalize a URL for display and matching.

    Strips the protocol, a leading ``www.`` and one trailing slash, then
    lowercases.
    """
    if not url:
        return ""
    cleaned = _URL_PREFIX_RE.sub("", str(url), count=1)
    if cleaned.endswith("/"):
        cleaned = cleaned[:-1]
    return cleaned.lower()


def strip_trailing_slash(url: str) -> str:
    return url[:-1] if url.endswith("/") else url


def create_search_string(
    title: Optional[str],
    url: Optional[str],
    tags: Optional[str] = None,
    folder: Optional[str] = None,
) -> str:
    """Join the searchable fields of an entry into one string."""
    search_string = f"{title or ''}{SEARCH_STRING_SEPARATOR}{url or ''}"
    if tags:
        search_string += SEARCH_STRING_SEPARATOR + tags
    if folder:
        search_string += SEARCH_STRING_SEPARATOR + folder
    return search_string


def generate_random_id() -> str:
    return uuid.uuid4().hex[:12]


def _copy_list(values: Optional[List[str]]) -> Optional[List[str]]:
    return None if values is None else list(values)


@dataclass
class Entry:
    """A searchable item of one of the datasets.

    ``type`` is one of bookmark, tab or history for corpus entries and
    search, customSearch or direct for synthetic ones.
    """
    type: str
    title: str = ""
    url: str = ""
    original_url: str = ""
    id: str = ""
    tags: str = ""
    tags_array: List[str] = field(default_factory=list)
    folder: str = ""
    folder_array: List[str] = field(default_factory=list)
    group: Optional[str] = None
    visit_count: Optional[int] = None
    last_visit_seconds_ago: Optional[float] = None
    date_added: Optional[float] = None  # ms since epoch
    custom_bonus_score: int = 0
    tab: bool = False  # bookmark is currently open as a tab
    active: bool = False
    window_id: Optional[int] = None
    search_string: Optional[str] = None
    _lower_cache: Tuple[Optional[str], Optional[str]] = field(
        default=(None, None), init=False, repr=False, compare=False
    )

    @property
    def search_string_lower(self) -> str:
        """Lowercase search string, cached per search string value.

        Raises:
            AttributeError: If the entry has no search string.
        """
        source, lowered = self._lower_cache
        if source is not self.search_string or lowered is None:
            lowered = self.search_string.lower()
            self._lower_cache = (self.search_string, lowered)
        return lowered

    def refresh_search_string(self) -> None:
        self.search_string = create_search_string(self.title, self.url, self.tags, self.folder)

    def update(self, **changes: Any) -> "Entry":
        """Apply field changes in place and keep derived fields in sync.

        Changing ``tags`` or ``folder`` without their arrays re-derives the
        arrays. Any change to a searchable field recomputes the search string.
        """
        for name, value in changes.items():
            if name.startswith("_") or not hasattr(self, name):
                raise AttributeError(f"Entry has no field '{name}'")
            setattr(self, name, value)

        if "url" in changes and "original_url" not in changes:
            self.original_url = strip_trailing_slash(changes["url"] or "")
            self.url = clean_up_url(changes["url"])
        if "tags" in changes and "tags_array" not in changes:
            self.tags_array = [t.strip() for t in (self.tags or "").split("#") if t.strip()]
        if "folder" in changes and "folder_array" not in changes:
            self.folder_array = [f.strip() for f in (self.folder or "").split("~") if f.strip()]
        if any(name in changes for name in _SEARCHABLE_FIELDS):
            self.refresh_search_string()
        return self


@dataclass
class SearchResult(Entry):
    """A copy of an entry that matched a search, plus scoring and highlights."""
    search_score: float = 1
    search_approach: Optional[str] = None
    score: Optional[float] = None
    highlighted_title: Optional[str] = None
    highlighted_url: Optional[str] = None
    highlighted_tags_array: Optional[List[str]] = None
    highlighted_folder_array: Optional[List[str]] = None
    highlighted_group: Optional[str] = None

    @classmethod
    def from_entry(
        cls,
        entry: Entry,
        search_score: float = 1,
        search_approach: Optional[str] = None,
    ) -> "SearchResult":
        """Create a new result from an entry without touching the entry."""
        values: Dict[str, Any] = {}
        for f in dataclasses.fields(Entry):
            if not f.init:
                continue
            value = getattr(entry, f.name)
            values[f.name] = list(value) if isinstance(value, list) else value
        return cls(search_score=search_score, search_approach=search_approach, **values)

    def copy(self) -> "SearchResult":
        return dataclasses.replace(
            self,
            tags_array=list(self.tags_array),
            folder_array=list(self.folder_array),
            highlighted_tags_array=_copy_list(self.highlighted_tags_array),
            highlighted_folder_array=_copy_list(self.highlighted_folder_array),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = dataclasses.asdict(self)
        data.pop("_lower_cache", None)
        return data


# ---------------------------------------------------------------------------
# Builders for the three datasets
# ---------------------------------------------------------------------------

def parse_bookmark_title(title: str) -> Tuple[str, str, List[str], int]:
    """Split a bookmark title into title, tags and custom bonus score.

    ``"Docs +20 #python #ref"`` becomes
    ``("Docs", "#python #ref", ["python", "ref"], 20)``.

    Returns:
        Tuple of (title, tags text, tags list, custom bonus score)
    """
    custom_bonus_score = 0
    match = _CUSTOM_BONUS_RE.search(title or "")
    if match:
        title = title.replace(match.group(0), "", 1)
        custom_bonus_score = int(match.group(1))

    if not title:
        return "", "", [], custom_bonus_score

    parts = [part.strip() for part in title.split("#")]
    title = parts[0]
    tags_array = parts[1:]
    tags = " ".join("#" + tag for tag in tags_array)
    return title, tags, tags_array, custom_bonus_score


def bookmark_entry(
    id: str,
    title: str,
    url: str,
    folder_trail: Optional[List[str]] = None,
    date_added: Optional[float] = None,
) -> Entry:
    """Build a bookmark entry, parsing tags and custom bonus from the title."""
    folder_trail = list(folder_trail or [])
    title, tags, tags_array, custom_bonus_score = parse_bookmark_title(title)
    folder = " ".join("~" + name for name in folder_trail)
    entry = Entry(
        type="bookmark",
        id=str(id),
        title=title,
        url=clean_up_url(url),
        original_url=strip_trailing_slash(url),
        tags=tags,
        tags_array=tags_array,
        folder=folder,
        folder_array=folder_trail,
        date_added=date_added,
        custom_bonus_score=custom_bonus_score,
    )
    entry.refresh_search_string()
    return entry


def tab_entry(tab: Dict[str, Any], now_ms: Optional[float] = None) -> Entry:
    """Build a tab entry from a tab object as reported by the browser.

    Recognized keys: id, title, url, active, windowId, group and
    lastAccessed (ms since epoch, used for recency when ``now_ms`` is given).
    """
    url = tab.get("url", "") or ""
    last_visit_seconds_ago = None
    last_accessed = tab.get("lastAccessed")
    if last_accessed is not None and now_ms is not None:
        last_visit_seconds_ago = max(0.0, (now_ms - float(last_accessed)) / 1000)

    entry = Entry(
        type="tab",
        id=str(tab.get("id", "")),
        title=tab.get("title", "") or "",
        url=clean_up_url(url),
        original_url=strip_trailing_slash(url),
        group=tab.get("group") or None,
        active=bool(tab.get("active", False)),
        window_id=tab.get("windowId"),
        last_visit_seconds_ago=last_visit_seconds_ago,
    )
    entry.refresh_search_string()
    return entry


def history_entry(
    id: str,
    title: Optional[str],
    url: str,
    visit_count: Optional[int] = None,
    last_visit_seconds_ago: Optional[float] = None,
) -> Entry:
    """Build a history entry."""
    entry = Entry(
        type="history",
        id=str(id),
        title=title or "",
        url=clean_up_url(url),
        original_url=strip_trailing_slash(url),
        visit_count=visit_count,
        last_visit_seconds_ago=last_visit_seconds_ago,
    )
    entry.refresh_search_string()
    return entry
