import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


class ProgressStore:
    """
    SQLite key/value store for kana cards and the selected character set.

    Everything here is best effort: database errors are logged and turned
    into "nothing saved" or "no history", never raised to the game.
    """

    def __init__(self, db_path=":memory:"):
        if isinstance(db_path, Path):
            db_path.parent.mkdir(parents=True, exist_ok=True)
            db_path = str(db_path)
        self.db_path = db_path
        self._conn = sqlite3.connect(db_path)
        self._init_db()

    def _init_db(self):
        current = int(self._conn.execute("PRAGMA user_version").fetchone()[0])
        if current > SCHEMA_VERSION:
            self._conn.close()
            raise RuntimeError(f"Database schema version {current} is newer than supported {SCHEMA_VERSION}.")
        with self._conn:
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS kana_cards (
                    character_id TEXT PRIMARY KEY,
                    payload TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """)
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS selected_characters (
                    character_id TEXT PRIMARY KEY
                )
                """)
            self._conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")

    # -------------------------
    # Cards
    # -------------------------
    def load_cards(self):
        """Return {character_id: record} or None when nothing usable is stored."""
        try:
            rows = self._conn.execute("SELECT character_id, payload FROM kana_cards").fetchall()
        except sqlite3.Error as e:
            logger.warning("Failed to load progress: %s", e)
            return None
        if not rows:
            return None

        cards = {}
        for character_id, payload in rows:
            try:
                record = json.loads(payload)
            except json.JSONDecodeError as e:
                logger.warning("Skipping unreadable card %s: %s", character_id, e)
                continue
            if isinstance(record, dict):
                cards[character_id] = record
        return cards or None

    def save_cards(self, cards):
        """Upsert records; last write wins per character."""
        now = datetime.now(timezone.utc).isoformat()
        try:
            with self._conn:
                self._conn.executemany(
                    """
                    INSERT INTO kana_cards (character_id, payload, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(character_id) DO UPDATE SET
                        payload = excluded.payload,
                        updated_at = excluded.updated_at
                    """,
                    [(character_id, json.dumps(record), now) for character_id, record in cards.items()],
                )
        except (sqlite3.Error, TypeError, ValueError) as e:
            logger.warning("Failed to save progress: %s", e)

    def clear_cards(self):
        try:
            with self._conn:
                self._conn.execute("DELETE FROM kana_cards")
        except sqlite3.Error as e:
            logger.warning("Failed to clear progress: %s", e)

    # -------------------------
    # Selection
    # -------------------------
    def load_selected_ids(self):
        try:
            rows = self._conn.execute("SELECT character_id FROM selected_characters").fetchall()
        except sqlite3.Error as e:
            logger.warning("Failed to load selected characters: %s", e)
            return set()
        return {str(row[0]) for row in rows}

    def save_selected_ids(self, character_ids):
        try:
            with self._conn:
                self._conn.execute("DELETE FROM selected_characters")
                self._conn.executemany(
                    "INSERT INTO selected_characters (character_id) VALUES (?)",
                    [(character_id,) for character_id in sorted(character_ids)],
                )
        except sqlite3.Error as e:
            logger.warning("Failed to save selected characters: %s", e)

    def close(self):
        self._conn.close()
