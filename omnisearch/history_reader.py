"""Async reader for Chrome's browsing history database."""
import shutil
import sys
import tempfile
import time
from pathlib import Path
from typing import Iterable, List, Optional

import aiosqlite

from omnisearch.bookmarks_reader import WEBKIT_EPOCH_OFFSET_US, get_chrome_profile_dir
from omnisearch.entries import Entry, history_entry


HISTORY_QUERY = """
    SELECT id, url, title, visit_count, last_visit_time
    FROM urls
    WHERE last_visit_time >= ?
    ORDER BY last_visit_time DESC
    LIMIT ?
"""


def get_chrome_history_path(profile: str = "Default") -> Path:
    return get_chrome_profile_dir(profile) / "History"


class HistoryReader:
    """Reads recent history items from a Chrome ``History`` SQLite file.

    Chrome keeps the database locked while running, so it is copied to a
    temporary file before being opened.
    """

    def __init__(self, history_path: Optional[Path] = None):
        """Initialize the history reader.

        Args:
            history_path: Path to the History database. Defaults to the
                Default Chrome profile.
        """
        self.history_path = history_path or get_chrome_history_path()

    async def read(
        self,
        days_ago: int = 14,
        max_items: int = 1024,
        ignore_list: Iterable[str] = (),
        now: Optional[float] = None,
    ) -> List[Entry]:
        """Read history items visited within the last days.

        Args:
            days_ago: Only include items visited within this many days
            max_items: Maximum number of items to read, most recent first
            ignore_list: URL prefixes to leave out
            now: Current time in seconds since epoch (defaults to time.time())

        Returns:
            History entries, most recently visited first

        Raises:
            FileNotFoundError: If the History database doesn't exist
            aiosqlite.Error: If the database can't be read
        """
        if not self.history_path.exists():
            raise FileNotFoundError(f"History database not found at {self.history_path}")

        now = time.time() if now is None else now
        now_us = int(now * 1_000_000) + WEBKIT_EPOCH_OFFSET_US
        start_us = now_us - days_ago * 24 * 60 * 60 * 1_000_000

        with tempfile.TemporaryDirectory() as tmp_dir:
            db_copy = Path(tmp_dir) / "History"
            shutil.copyfile(self.history_path, db_copy)

            async with aiosqlite.connect(db_copy) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(HISTORY_QUERY, (start_us, max_items))
                rows = await cursor.fetchall()

        ignore_prefixes = tuple(ignore_list)
        entries = []
        ignored = 0
        for row in rows:
            url = row["url"] or ""
            if ignore_prefixes and url.startswith(ignore_prefixes):
                ignored += 1
                continue
            entries.append(history_entry(
                id=row["id"],
                title=row["title"],
                url=url,
                visit_count=row["visit_count"],
                last_visit_seconds_ago=max(0.0, (now_us - row["last_visit_time"]) / 1_000_000),
            ))

        if ignored:
            print(f"[History] Ignored {ignored} history items due to ignore list", file=sys.stderr)
        return entries
