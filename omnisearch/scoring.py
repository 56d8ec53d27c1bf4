"""Final relevance score for search results.

The score is built in five stages:

1. Base score by result type.
2. Multiplied by the matcher's search score.
3. Field bonuses when there is a search term: starts-with, equals, exact
   tag / folder / group, includes and phrase.
4. Behavioral bonuses: visits, recency, open tab and date added.
5. The custom bonus parsed from the bookmark title.

Scores are not normalized and only comparable within one search.
"""
import time
from typing import List, Optional

from omnisearch.config import SearchOptions
from omnisearch.entries import SearchResult
from omnisearch.errors import UnsupportedResultType


# Result type -> SearchOptions attribute with its base score
BASE_SCORE_OPTIONS = {
    "bookmark": "score_bookmark_base_score",
    "tab": "score_tab_base_score",
    "history": "score_history_base_score",
    "search": "score_search_engine_base_score",
    "customSearch": "score_custom_search_engine_base_score",
    "direct": "score_direct_url_score",
}

SECONDS_PER_DAY = 24 * 60 * 60


def _lower_all(values: Optional[List[str]]) -> List[str]:
    return [v.lower() for v in values] if values else []


def _exact_bonus(tokens: List[str], values: List[str], bonus: float) -> float:
    """Bonus for every token equal to one of the values; repeats count again."""
    value_set = set(values)
    return sum(bonus for token in tokens if token and token in value_set)


def calculate_final_score(
    results: List[SearchResult],
    search_term: str,
    options: SearchOptions,
    now_ms: Optional[float] = None,
) -> List[SearchResult]:
    """Assign ``score`` to every result.

    Args:
        results: Result copies to score (updated in place)
        search_term: Normalized search term without mode prefix; empty when
            there is none
        options: Effective search options
        now_ms: Current time in ms since epoch, for the date added bonus

    Returns:
        The same results list

    Raises:
        UnsupportedResultType: If a result has a type without base score.
    """
    o = options
    if now_ms is None:
        now_ms = time.time() * 1000

    has_term = bool(search_term)
    term_parts = search_term.split(" ") if has_term else []
    tokens = [t.strip() for t in term_parts if t.strip()]
    hyphenated_term = "-".join(term_parts)
    tag_terms = search_term.replace("#", "").split(" ") if has_term else []
    folder_terms = search_term.replace("~", "").split(" ") if has_term else []
    group_terms = search_term.replace("@", "").split(" ") if has_term else []
    is_phrase = len(tokens) > 1

    for result in results:
        base_option = BASE_SCORE_OPTIONS.get(result.type)
        if base_option is None:
            raise UnsupportedResultType(result.type)

        # 1. + 2.
        score = getattr(o, base_option) * (result.search_score or o.score_title_weight)

        # 3.
        if has_term:
            title = result.title.lower().strip() if result.title else ""
            url = result.url.lower() if result.url else ""
            tags = result.tags.lower() if result.tags else ""
            folder = result.folder.lower() if result.folder else ""
            group = result.group.lower() if result.group else ""

            if o.score_exact_starts_with_bonus:
                if title and title.startswith(search_term):
                    score += o.score_exact_starts_with_bonus * o.score_title_weight
                elif url and url.startswith(hyphenated_term):
                    score += o.score_exact_starts_with_bonus * o.score_url_weight

            if o.score_exact_equals_bonus and title and title == search_term:
                score += o.score_exact_equals_bonus * o.score_title_weight

            if o.score_exact_tag_match_bonus and result.tags_array:
                score += _exact_bonus(tag_terms, _lower_all(result.tags_array), o.score_exact_tag_match_bonus)
            if o.score_exact_folder_match_bonus and result.folder_array:
                score += _exact_bonus(folder_terms, _lower_all(result.folder_array), o.score_exact_folder_match_bonus)
            if o.score_exact_group_match_bonus and group:
                score += _exact_bonus(group_terms, [group], o.score_exact_group_match_bonus)

            if o.score_exact_includes_bonus:
                bonuses = 0
                for token in tokens:
                    if bonuses >= o.score_exact_includes_max_bonuses:
                        break
                    if len(token) < o.score_exact_includes_bonus_min_chars and not token.isdigit():
                        continue

                    url_token = "-".join(token.split())
                    if title and token in title:
                        weight = o.score_title_weight
                    elif url and url_token in url:
                        weight = o.score_url_weight
                    elif tags and token in tags:
                        weight = o.score_tag_weight
                    elif folder and token in folder:
                        weight = o.score_folder_weight
                    elif group and token in group:
                        weight = o.score_folder_weight
                    else:
                        continue
                    score += o.score_exact_includes_bonus * weight
                    bonuses += 1

            if is_phrase:
                if o.score_exact_phrase_title_bonus and title and search_term in title:
                    score += o.score_exact_phrase_title_bonus
                if o.score_exact_phrase_url_bonus and url and hyphenated_term in url:
                    score += o.score_exact_phrase_url_bonus

        # 4.
        if o.score_visited_bonus_score and result.visit_count:
            score += min(
                o.score_visited_bonus_score_maximum,
                result.visit_count * o.score_visited_bonus_score,
            )

        if o.score_recent_bonus_score_maximum and result.last_visit_seconds_ago is not None:
            max_seconds = o.history_days_ago * SECONDS_PER_DAY
            if result.last_visit_seconds_ago == 0:
                score += o.score_recent_bonus_score_maximum
            elif max_seconds > 0 and result.last_visit_seconds_ago > 0:
                score += max(
                    0,
                    (1 - result.last_visit_seconds_ago / max_seconds) * o.score_recent_bonus_score_maximum,
                )

        if o.score_bookmark_open_tab_bonus and result.type == "bookmark" and result.tab:
            score += o.score_bookmark_open_tab_bonus

        if (
            o.score_date_added_bonus_score_maximum
            and o.score_date_added_bonus_score_per_day
            and result.date_added is not None
        ):
            days_ago = (now_ms - result.date_added) / 1000 / SECONDS_PER_DAY
            score += max(
                0,
                o.score_date_added_bonus_score_maximum - days_ago * o.score_date_added_bonus_score_per_day,
            )

        # 5.
        if o.score_custom_bonus_score and result.custom_bonus_score:
            score += result.custom_bonus_score

        result.score = score

    return results
