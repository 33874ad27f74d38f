import random

import pytest

from kana_battle.config import DEFENSE, GameConfig
from kana_battle.segmenter import WordCorpus
from kana_battle.session import GameSession

from conftest import NOW

QUICK = GameConfig(enemy_health_range=(2, 2), enemy_attack_threshold_range=(3, 3))


def _session(catalog, ledger, timers, ids=("hiragana-a",), config=QUICK, **kwargs):
    return GameSession(
        catalog,
        set(ids),
        ledger,
        timers,
        rng=random.Random(9),
        config=config,
        clock=lambda: NOW,
        **kwargs,
    )


def test_session_needs_a_selection(catalog, ledger, timers) -> None:
    with pytest.raises(ValueError):
        _session(catalog, ledger, timers, ids=())
    with pytest.raises(KeyError):
        _session(catalog, ledger, timers, ids=("hiragana-zz",))


def test_first_prompt_is_ready(catalog, ledger, timers) -> None:
    session = _session(catalog, ledger, timers)
    assert session.accepting
    assert session.prompt.text == "あ"
    assert session.stats().enemies_defeated == 0
    assert session.combat_state().lives == 3


def test_blank_input_changes_nothing(catalog, ledger, timers) -> None:
    session = _session(catalog, ledger, timers)
    prompt = session.prompt
    assert session.submit_answer("") is None
    assert session.submit_answer("   ") is None
    assert session.prompt is prompt
    assert session.stats().total_attempts == 0
    assert len(ledger) == 0


def test_answer_updates_ledger_and_totals(catalog, ledger, timers) -> None:
    session = _session(catalog, ledger, timers)
    outcome = session.submit_answer("a")
    assert outcome.all_correct
    assert outcome.per_character == (True,)
    assert outcome.damage_dealt == 1
    assert outcome.combo_after == 1
    assert ledger.get("hiragana-a").times_correct == 1
    assert session.previous_answer.user_input == "a"

    outcome = session.submit_answer("i")
    assert not outcome.all_correct
    assert outcome.healed == 1
    stats = session.stats()
    assert (stats.total_correct, stats.total_attempts) == (1, 2)
    assert stats.accuracy == pytest.approx(0.5)
    assert ledger.get("hiragana-a").times_shown == 2


def test_enemy_defeat_waits_for_respawn(catalog, ledger, timers) -> None:
    changes = []
    session = _session(catalog, ledger, timers, on_change=changes.append)
    session.submit_answer("a")
    outcome = session.submit_answer("a")
    assert outcome.enemy_defeated
    assert session.prompt is None
    assert not session.accepting
    assert session.submit_answer("a") is None
    assert session.stats().enemies_defeated == 0

    timers.advance(1.0)
    assert session.stats().enemies_defeated == 0

    timers.advance(1.5)
    assert session.stats().enemies_defeated == 1
    assert session.accepting
    assert session.prompt is not None
    assert changes == [session]


def test_failed_defenses_end_the_game(catalog, ledger, timers) -> None:
    session = _session(catalog, ledger, timers)
    outcome = None
    for _ in range(50):
        if session.prompt is None:
            break
        outcome = session.submit_answer("x")
    assert outcome.game_over
    assert outcome.lives_lost == 1
    assert session.combat_state().lives == 0
    assert session.prompt is None
    assert session.submit_answer("a") is None


def test_defense_prompt_comes_after_threshold(catalog, ledger, timers) -> None:
    session = _session(catalog, ledger, timers, ids=("hiragana-a", "hiragana-i"), config=GameConfig(enemy_health_range=(10, 10), enemy_attack_threshold_range=(2, 2)))
    session.submit_answer("x")
    session.submit_answer("x")
    assert session.prompt.phase == DEFENSE
    outcome = session.submit_answer(session.prompt.characters[0].hint)
    assert outcome.all_correct
    assert outcome.lives_lost == 0


def test_word_prompt_reports_translation(catalog, ledger, timers) -> None:
    corpus = WordCorpus(catalog, {"hiragana": {"ねこ": "cat"}, "katakana": {}})
    session = _session(
        catalog,
        ledger,
        timers,
        ids=("hiragana-ne", "hiragana-ko"),
        config=GameConfig(word_threshold=1),
        corpus=corpus,
    )
    assert session.prompt.source_word == "ねこ"
    outcome = session.submit_answer("NEKO")
    assert outcome.all_correct
    assert outcome.translation == "cat"
    assert session.previous_answer.translation == "cat"


def test_close_stops_timers(catalog, ledger, timers) -> None:
    session = _session(catalog, ledger, timers)
    session.submit_answer("a")
    session.submit_answer("a")
    session.close()
    timers.advance(10)
    assert session.stats().enemies_defeated == 0
    assert timers.pending == 0


def test_think_time_window_restarts_with_each_prompt(catalog, ledger, timers) -> None:
    session = _session(catalog, ledger, timers, config=GameConfig(enemy_health_range=(10, 10)))
    assert session.combo_time_left() == (7.0, 7.0)
    timers.advance(3.0)
    assert session.combo_time_left() == (4.0, 7.0)
    session.submit_answer("a")
    assert session.combo_time_left() == (7.0, 7.0)
