import sqlite3
from types import SimpleNamespace

from kana_battle.app import DEFAULT_DB_PATH, TextualTimers, bar, build_parser, describe_answer, hearts, open_store
from kana_battle.selection import Prompt
from kana_battle.session import PreviousAnswer
from kana_battle.storage import SCHEMA_VERSION


def test_bar_is_clamped() -> None:
    assert bar(8, 16, width=16) == "[green]" + "█" * 8 + "[/]" + "░" * 8
    assert bar(-3, 10, width=10) == "[green][/]" + "░" * 10
    assert bar(50, 10, width=4, color="red") == "[red]████[/]"
    assert bar(1, 0) == ""


def test_hearts() -> None:
    assert hearts(2, 3) == "[red]♥♥[/]♡"
    assert hearts(0, 3) == "[red][/]♡♡♡"


def test_describe_answer(catalog) -> None:
    prompt = Prompt(characters=(catalog.get("hiragana-ne"), catalog.get("hiragana-ko")), source_word="ねこ")
    previous = PreviousAnswer(
        prompt=prompt,
        user_input="nego",
        per_character=(True, False),
        all_correct=False,
        translation="cat",
    )
    text = describe_answer(previous)
    assert text.startswith("ね ne [green]✓[/]  こ ko [red]✗[/]")
    assert text.endswith("Meaning: cat")


def test_parser_defaults() -> None:
    args = build_parser().parse_args([])
    assert args.db == str(DEFAULT_DB_PATH)
    assert args.groups is None
    assert args.seed is None
    assert not args.reset

    args = build_parser().parse_args(["--groups", "hiragana:k", "katakana", "--seed", "3", "--reset"])
    assert args.groups == ["hiragana:k", "katakana"]
    assert args.seed == 3
    assert args.reset


def test_open_store_falls_back_to_memory(tmp_path) -> None:
    # a directory cannot be opened as a database file
    store = open_store(tmp_path)
    assert store.db_path == ":memory:"
    store.close()


def test_open_store_falls_back_on_newer_schema(tmp_path) -> None:
    db = tmp_path / "future.db"
    conn = sqlite3.connect(db)
    conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION + 1}")
    conn.close()

    store = open_store(db)
    assert store.db_path == ":memory:"
    assert store.load_cards() is None
    store.close()


def test_textual_timers_stop_the_app_timer() -> None:
    stopped = []
    scheduled = []

    def set_timer(delay, callback):
        scheduled.append((delay, callback))
        return SimpleNamespace(stop=lambda: stopped.append(delay))

    handle = TextualTimers(SimpleNamespace(set_timer=set_timer)).call_later(2.0, print)
    assert scheduled == [(2.0, print)]
    handle.cancel()
    assert stopped == [2.0]


def test_textual_timers_use_the_monotonic_clock() -> None:
    timers = TextualTimers(SimpleNamespace())
    first = timers.time()
    assert timers.time() >= first
