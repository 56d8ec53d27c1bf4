"""Errors raised by the search engine and the default error reporter."""
import sys
from typing import Callable, Optional


class SearchError(Exception):
    """Base class for failures that abort a single search pass."""


class UnsupportedResultType(SearchError):
    """A result reached the scorer with a type that has no base score."""

    def __init__(self, result_type: str):
        super().__init__(f'Search result type "{result_type}" not supported')
        self.result_type = result_type


class UnknownSortMode(SearchError):
    """The orchestrator was asked to sort results in an unknown way."""

    def __init__(self, sort_mode: str):
        super().__init__(f'Unknown sort mode "{sort_mode}"')
        self.sort_mode = sort_mode


class FuzzyEngineError(SearchError):
    """The approximate-matching engine could not be loaded or rejected a term."""


class InvalidOptionsError(ValueError):
    """User supplied search options are not a JSON object."""


# Signature: (error, context message) -> None
ErrorReporter = Callable[[BaseException, Optional[str]], None]


def print_error(err: BaseException, context: Optional[str] = None) -> None:
    """Report an error on stderr (stdout is owned by the MCP transport)."""
    if context:
        print(f"[Omnisearch] {context} {type(err).__name__}: {err}", file=sys.stderr)
    else:
        print(f"[Omnisearch] {type(err).__name__}: {err}", file=sys.stderr)
