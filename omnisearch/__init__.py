"""Incremental search and ranking over browser bookmarks, tabs and history."""
