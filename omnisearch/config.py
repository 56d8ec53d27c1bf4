"""Configuration for the omnisearch MCP server and its search options."""
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationError,
    field_validator,
)

from omnisearch.errors import ErrorReporter, InvalidOptionsError, print_error


# Non-negative option values. Strict types reject "5" for 5 and 10.5 for an int.
Score = Annotated[StrictFloat, Field(ge=0)]
Count = Annotated[StrictInt, Field(ge=0)]


class SearchEngineConfig(BaseModel):
    """A search engine offered as a synthetic result.

    ``url_prefix`` may contain ``$s`` as a placeholder for the search term;
    otherwise the term is appended. Engines with an ``alias`` are custom
    search engines and are only offered when the term starts with an alias.
    """
    model_config = ConfigDict(extra="forbid")

    name: StrictStr = Field(..., min_length=1)
    url_prefix: StrictStr = Field(..., min_length=1)
    alias: List[StrictStr] = Field(default_factory=list)
    blank: Optional[StrictStr] = None

    @field_validator("alias", mode="before")
    @classmethod
    def _single_alias(cls, value: Any) -> Any:
        return [value] if isinstance(value, str) else value


def _default_search_engines() -> List[SearchEngineConfig]:
    return [
        SearchEngineConfig(name="Google", url_prefix="https://www.google.com/search?q=$s"),
        SearchEngineConfig(name="Bing", url_prefix="https://www.bing.com/search?q=$s"),
        SearchEngineConfig(name="dict.cc", url_prefix="https://www.dict.cc/?s=$s"),
    ]


def _default_custom_search_engines() -> List[SearchEngineConfig]:
    return [
        SearchEngineConfig(
            name="Google",
            url_prefix="https://www.google.com/search?q=$s",
            alias=["g", "google"],
            blank="https://www.google.com",
        ),
        SearchEngineConfig(
            name="dict.cc",
            url_prefix="https://www.dict.cc/?s=$s",
            alias=["d", "dict"],
            blank="https://www.dict.cc",
        ),
    ]


class SearchOptions(BaseModel):
    """Every option the search engine recognizes, with its default."""
    model_config = ConfigDict(extra="forbid")

    # Search behavior
    search_strategy: Literal["precise", "fuzzy"] = "precise"
    search_max_results: Annotated[StrictInt, Field(ge=1)] = 32
    search_fuzzyness: Annotated[StrictFloat, Field(ge=0, le=1)] = 0.6

    # Datasets
    enable_tabs: StrictBool = True
    enable_bookmarks: StrictBool = True
    enable_history: StrictBool = True
    enable_search_engines: StrictBool = True
    enable_direct_url: StrictBool = True
    bookmarks_ignore_folder_list: List[StrictStr] = Field(default_factory=list)
    tabs_only_current_window: StrictBool = False
    max_recent_tabs_to_show: Count = 16
    history_days_ago: Count = 14
    history_max_items: Annotated[StrictInt, Field(ge=1)] = 1024
    history_ignore_list: List[StrictStr] = Field(default_factory=lambda: ["extension://"])

    # Search engines
    search_engine_choices: List[SearchEngineConfig] = Field(default_factory=_default_search_engines)
    custom_search_engines: List[SearchEngineConfig] = Field(default_factory=_default_custom_search_engines)

    # Base scores
    score_min_score: Score = 30
    score_bookmark_base_score: Score = 100
    score_tab_base_score: Score = 70
    score_history_base_score: Score = 45
    score_search_engine_base_score: Score = 30
    score_custom_search_engine_base_score: Score = 400
    score_direct_url_score: Score = 500

    # Field weights
    score_title_weight: Score = 1
    score_tag_weight: Score = 0.7
    score_url_weight: Score = 0.6
    score_folder_weight: Score = 0.5

    # Field bonuses
    score_custom_bonus_score: StrictBool = True
    score_exact_includes_bonus: Score = 5
    score_exact_includes_bonus_min_chars: Count = 3
    score_exact_includes_max_bonuses: Count = 3
    score_exact_starts_with_bonus: Score = 10
    score_exact_equals_bonus: Score = 15
    score_exact_tag_match_bonus: Score = 10
    score_exact_folder_match_bonus: Score = 5
    score_exact_group_match_bonus: Score = 5
    score_exact_phrase_title_bonus: Score = 8
    score_exact_phrase_url_bonus: Score = 5

    # Behavioral bonuses
    score_visited_bonus_score: Score = 0.5
    score_visited_bonus_score_maximum: Score = 20
    score_recent_bonus_score_maximum: Score = 20
    score_bookmark_open_tab_bonus: Score = 10
    score_date_added_bonus_score_maximum: Score = 0
    score_date_added_bonus_score_per_day: Score = 0

    @classmethod
    def from_dict(cls, user_options: Optional[Dict[str, Any]] = None) -> "SearchOptions":
        """Merge user options over the defaults.

        Raises:
            InvalidOptionsError: If the options are not an object.
            pydantic.ValidationError: On unknown keys or invalid values.
        """
        if user_options is None:
            return cls()
        if not isinstance(user_options, dict):
            raise InvalidOptionsError("User options must be a JSON object")
        return cls.model_validate(user_options)


def load_options(
    options_path: Optional[Path] = None,
    report_error: ErrorReporter = print_error,
) -> SearchOptions:
    """Load user options from a JSON file and merge them over the defaults.

    Invalid or unreadable user options are reported and the defaults are
    used instead.

    Args:
        options_path: JSON file with user overrides. None or a missing file
            means no overrides.
        report_error: Receives the error when the user options are rejected.

    Returns:
        The effective search options
    """
    if options_path is None or not options_path.exists():
        return SearchOptions()

    try:
        with open(options_path, "r", encoding="utf-8") as f:
            user_options = json.load(f)
        return SearchOptions.from_dict(user_options)
    except (json.JSONDecodeError, InvalidOptionsError, ValidationError) as e:
        report_error(e, "Could not get valid user options, falling back to defaults.")
        return SearchOptions()


@dataclass
class Config:
    """Main configuration for the omnisearch MCP server."""
    chrome_profile: str = "Default"  # Chrome profile name
    bookmarks_path: Optional[Path] = None  # None = profile default
    history_path: Optional[Path] = None  # None = profile default
    bridge_port: int = 8765  # WebSocket port for Chrome extension bridge
    options_path: Optional[Path] = None
    options: SearchOptions = field(default_factory=SearchOptions)

    @classmethod
    def from_env(cls) -> "Config":
        """Create config from environment variables."""
        bookmarks_str = os.environ.get("OMNISEARCH_BOOKMARKS_FILE")
        history_str = os.environ.get("OMNISEARCH_HISTORY_DB")
        options_str = os.environ.get("OMNISEARCH_OPTIONS_FILE")
        options_path = Path(options_str) if options_str else None

        return cls(
            chrome_profile=os.environ.get("OMNISEARCH_CHROME_PROFILE", "Default"),
            bookmarks_path=Path(bookmarks_str) if bookmarks_str else None,
            history_path=Path(history_str) if history_str else None,
            bridge_port=int(os.environ.get("OMNISEARCH_BRIDGE_PORT", "8765")),
            options_path=options_path,
            options=load_options(options_path),
        )


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global config instance.

    Returns:
        Config loaded from environment
    """
    global _config

    if _config is None:
        _config = Config.from_env()

    return _config
