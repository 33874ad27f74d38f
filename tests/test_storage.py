import sqlite3

import pytest

from kana_battle.storage import SCHEMA_VERSION, ProgressStore


def test_empty_store_has_no_history(store) -> None:
    assert store.load_cards() is None
    assert store.load_selected_ids() == set()


def test_cards_upsert(store) -> None:
    store.save_cards({"hiragana-a": {"times_shown": 1}})
    store.save_cards({"hiragana-a": {"times_shown": 2}, "hiragana-i": {"times_shown": 1}})
    assert store.load_cards() == {"hiragana-a": {"times_shown": 2}, "hiragana-i": {"times_shown": 1}}

    store.clear_cards()
    assert store.load_cards() is None


def test_unreadable_rows_are_skipped(store) -> None:
    store.save_cards({"hiragana-a": {"times_shown": 1}})
    with store._conn:
        store._conn.execute(
            "INSERT INTO kana_cards (character_id, payload, updated_at) VALUES (?, ?, ?)",
            ("hiragana-i", "{broken", "2026-01-01"),
        )
        store._conn.execute(
            "INSERT INTO kana_cards (character_id, payload, updated_at) VALUES (?, ?, ?)",
            ("hiragana-u", "[1, 2]", "2026-01-01"),
        )
    assert store.load_cards() == {"hiragana-a": {"times_shown": 1}}


def test_unserializable_record_is_not_saved(store) -> None:
    store.save_cards({"hiragana-a": {"when": object()}})
    assert store.load_cards() is None


def test_selection_round_trip(store) -> None:
    store.save_selected_ids({"hiragana-a", "katakana-ka"})
    assert store.load_selected_ids() == {"hiragana-a", "katakana-ka"}
    store.save_selected_ids({"hiragana-i"})
    assert store.load_selected_ids() == {"hiragana-i"}


def test_file_store_creates_parent_directory(tmp_path) -> None:
    db = tmp_path / "nested" / "progress.db"
    store = ProgressStore(db)
    store.save_selected_ids({"hiragana-a"})
    store.close()
    assert db.exists()
    reopened = ProgressStore(db)
    assert reopened.load_selected_ids() == {"hiragana-a"}
    reopened.close()


def test_newer_schema_is_refused(tmp_path) -> None:
    db = tmp_path / "future.db"
    conn = sqlite3.connect(db)
    conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION + 1}")
    conn.close()
    with pytest.raises(RuntimeError):
        ProgressStore(db)
