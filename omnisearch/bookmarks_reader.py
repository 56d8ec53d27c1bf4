"""Chrome profile paths and the bookmarks reader."""
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from omnisearch.entries import Entry, bookmark_entry


# Chrome stores bookmarks in these roots; their names are not part of the folder trail
BOOKMARK_ROOTS = ("bookmark_bar", "other", "synced")

# Microseconds between 1601-01-01 (Chrome/WebKit epoch) and 1970-01-01
WEBKIT_EPOCH_OFFSET_US = 11644473600 * 1_000_000


def get_chrome_profile_dir(profile: str = "Default") -> Path:
    """Get the directory of a Chrome profile.

    Args:
        profile: Chrome profile name (default: "Default")

    Returns:
        Path to the profile directory
    """
    home = Path.home()
    if os.name == "nt":  # Windows
        return home / "AppData" / "Local" / "Google" / "Chrome" / "User Data" / profile
    if sys.platform == "darwin":  # macOS
        return home / "Library" / "Application Support" / "Google" / "Chrome" / profile
    if os.name == "posix":  # Linux
        profile_dir = home / ".config" / "google-chrome" / profile
        # Also check for chromium
        if not profile_dir.exists():
            profile_dir = home / ".config" / "chromium" / profile
        return profile_dir
    raise OSError(f"Unsupported operating system: {os.name}")


def get_chrome_bookmarks_path(profile: str = "Default") -> Path:
    return get_chrome_profile_dir(profile) / "Bookmarks"


def webkit_to_epoch_ms(value: Any) -> Optional[float]:
    """Convert a Chrome timestamp (µs since 1601) to ms since the Unix epoch."""
    if value in (None, "", "0", 0):
        return None
    return (int(value) - WEBKIT_EPOCH_OFFSET_US) / 1000


def load_bookmarks_file(bookmarks_path: Optional[Path] = None) -> Dict[str, Any]:
    """Load Chrome bookmarks JSON file.

    Args:
        bookmarks_path: Optional path to bookmarks file. If None, uses default Chrome location.

    Returns:
        Parsed JSON bookmarks data

    Raises:
        FileNotFoundError: If bookmarks file doesn't exist
        json.JSONDecodeError: If bookmarks file is malformed
    """
    if bookmarks_path is None:
        bookmarks_path = get_chrome_bookmarks_path()

    if not bookmarks_path.exists():
        raise FileNotFoundError(f"Bookmarks file not found at {bookmarks_path}")

    with open(bookmarks_path, "r", encoding="utf-8") as f:
        return json.load(f)


def extract_bookmarks(
    node: Dict[str, Any],
    bookmarks: List[Entry],
    folder_trail: List[str],
    ignore_folders: Iterable[str] = (),
) -> None:
    """Recursively convert a bookmarks subtree into entries.

    Args:
        node: Current node in the bookmarks tree
        bookmarks: List to accumulate entries
        folder_trail: Names of the folders above the node
        ignore_folders: Folder names whose subtrees are skipped
    """
    if node.get("type") == "url":
        bookmarks.append(bookmark_entry(
            id=node.get("id", ""),
            title=node.get("name", ""),
            url=node.get("url", ""),
            folder_trail=folder_trail,
            date_added=webkit_to_epoch_ms(node.get("date_added")),
        ))
    elif node.get("type") == "folder":
        name = node.get("name", "")
        if name in ignore_folders:
            return
        trail = folder_trail + [name] if name else folder_trail
        for child in node.get("children", []):
            extract_bookmarks(child, bookmarks, trail, ignore_folders)


def read_chrome_bookmarks(
    bookmarks_path: Optional[Path] = None,
    ignore_folders: Iterable[str] = (),
) -> List[Entry]:
    """Read all bookmarks from a Chrome bookmarks file.

    Args:
        bookmarks_path: Optional path to bookmarks file. If None, uses default Chrome location.
        ignore_folders: Folder names to leave out, with everything below them

    Returns:
        Bookmark entries in tree order

    Raises:
        FileNotFoundError: If bookmarks file doesn't exist
        json.JSONDecodeError: If bookmarks file is malformed
    """
    bookmarks_data = load_bookmarks_file(bookmarks_path)
    ignore_folders = set(ignore_folders)

    all_bookmarks: List[Entry] = []
    roots = bookmarks_data.get("roots", {})

    for root_name in BOOKMARK_ROOTS:
        root_node = roots.get(root_name)
        if not root_node:
            continue
        for child in root_node.get("children", []):
            extract_bookmarks(child, all_bookmarks, [], ignore_folders)

    return all_bookmarks
