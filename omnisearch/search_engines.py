"""Synthetic results: search engines, custom search aliases and direct URLs."""
import re
from typing import List, Optional
from urllib.parse import quote

from omnisearch.config import SearchEngineConfig, SearchOptions
from omnisearch.entries import SearchResult, clean_up_url, generate_random_id


_URL_LIKE_RE = re.compile(
    r"^(?:[a-z][a-z\d+.-]*://)?"  # scheme
    r"(?:localhost|[\w-]+(?:\.[\w-]+)*\.[a-z]{2,}|\d{1,3}(?:\.\d{1,3}){3})"  # host
    r"(?::\d{1,5})?"  # port
    r"(?:[/?#]\S*)?$",
    re.IGNORECASE,
)


def search_engine_result(
    search_term: str,
    name: str,
    url_prefix: str,
    url_blank: Optional[str] = None,
    custom: bool = False,
) -> SearchResult:
    """Result that opens a search engine for the term.

    ``$s`` in the prefix is replaced with the encoded term, otherwise the
    term is appended. With a blank URL and no term the blank URL is used.
    """
    title = f'{name}: "{search_term}"'
    if url_blank and not search_term.strip():
        url = url_blank
        title = name
    elif "$s" in url_prefix:
        url = url_prefix.replace("$s", quote(search_term, safe=""), 1)
    else:
        url = url_prefix + quote(search_term, safe="")

    return SearchResult(
        type="customSearch" if custom else "search",
        id=generate_random_id(),
        title=title,
        url=clean_up_url(url),
        original_url=url,
        search_score=1,
    )


def add_search_engines(search_term: str, options: SearchOptions) -> List[SearchResult]:
    if not options.enable_search_engines:
        return []
    return [
        search_engine_result(search_term, engine.name, engine.url_prefix)
        for engine in options.search_engine_choices
    ]


def _aliases(engine: SearchEngineConfig) -> List[str]:
    return engine.alias if isinstance(engine.alias, list) else [engine.alias]


def collect_custom_search_alias_results(search_term: str, options: SearchOptions) -> List[SearchResult]:
    """Results for custom search engines whose alias starts the term.

    ``"g cats"`` with alias "g" searches "cats" on that engine.
    """
    results = []
    for engine in options.custom_search_engines:
        for alias in _aliases(engine):
            prefix = f"{alias.lower()} "
            if search_term.startswith(prefix):
                results.append(search_engine_result(
                    search_term[len(prefix):],
                    engine.name,
                    engine.url_prefix,
                    engine.blank,
                    custom=True,
                ))
    return results


def looks_like_url(search_term: str) -> bool:
    """True for a bare domain or URL such as ``example.com/path``."""
    term = search_term.strip()
    return bool(term) and " " not in term and _URL_LIKE_RE.match(term) is not None


def direct_url_result(search_term: str) -> Optional[SearchResult]:
    """Result that navigates straight to the typed URL, if it looks like one."""
    term = search_term.strip()
    if not looks_like_url(term):
        return None
    original_url = term if "://" in term else f"https://{term}"
    url = clean_up_url(original_url)
    return SearchResult(
        type="direct",
        id=generate_random_id(),
        title=f'Direct: "{url}"',
        url=url,
        original_url=original_url,
        search_score=1,
    )
