import argparse
import logging
import random
import sqlite3
import time
from pathlib import Path

from textual.app import App, ComposeResult
from textual.containers import Vertical
from textual.logging import TextualHandler
from textual.reactive import reactive
from textual.widgets import Footer, Input, Static

from .config import DEFENSE
from .kana import HIRAGANA, romaji_to_kana
from .service import GameService
from .storage import ProgressStore

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path(".kana_battle") / "progress.db"


# -----------------------------
# Utility: visual bars
# -----------------------------
def bar(current, maximum, width=16, color="green"):
    if maximum <= 0:
        return ""
    filled = int(width * max(0, min(current, maximum)) / maximum)
    empty = width - filled
    return f"[{color}]" + "█" * filled + "[/]" + "░" * empty


def hearts(lives, maximum):
    return "[red]" + "♥" * lives + "[/]" + "♡" * max(0, maximum - lives)


def describe_answer(previous):
    """One line per character: glyph, expected spelling, tick or cross."""
    parts = []
    for char, correct in zip(previous.prompt.characters, previous.per_character):
        mark = "[green]✓[/]" if correct else "[red]✗[/]"
        parts.append(f"{char.character} {char.hint} {mark}")
    line = "  ".join(parts)
    if previous.translation:
        line += f"\nMeaning: {previous.translation}"
    return line


# -----------------------------
# Timer bridge
# -----------------------------
class _TimerHandle:
    def __init__(self, timer):
        self.timer = timer

    def cancel(self):
        self.timer.stop()


class TextualTimers:
    """Run the engine's delayed calls on the app's event loop."""

    def __init__(self, app):
        self.app = app

    def time(self):
        # textual timers count on the monotonic clock
        return time.monotonic()

    def call_later(self, delay, callback):
        return _TimerHandle(self.app.set_timer(delay, callback))


# -----------------------------
# Main Game App
# -----------------------------
class KanaBattle(App):
    CSS = "Screen { align: center middle; }"
    mode = reactive("intro")

    def __init__(self, service, selected_ids):
        super().__init__()
        self.service = service
        self.selected_ids = set(selected_ids)
        self.session = None

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Static("", id="enemy")
            yield Static("", id="prompt")
            yield Static("", id="mana")
            yield Static("", id="kana")
            yield Static("", id="feedback")
            yield Static("", id="stats")
            yield Input(placeholder="Type romaji…", id="input")
            yield Footer()

    def on_mount(self):
        self.show_intro()
        self.set_interval(0.1, self.refresh_mana)

    # -------------------------
    # Intro Screen
    # -------------------------
    def show_intro(self):
        self.mode = "intro"
        intro_text = f"""


┏━━━━━━━━━━━━━━━━━━━━━━┓
┃      仮 名 の 戦 い      ┃
┗━━━━━━━━━━━━━━━━━━━━━━┛

    KANA BATTLE

    Type the romaji of the kana shown.
    {len(self.selected_ids)} characters selected.

    • ATTACK prompts damage the enemy
    • DEFEND prompts protect your lives
    • Combos hit harder but give you less time


    Press ENTER to begin...


"""
        self.query_one("#enemy", Static).update(intro_text)
        self.query_one("#prompt", Static).update("")
        self.query_one("#kana", Static).update("")
        self.query_one("#feedback", Static).update("")
        self.query_one("#stats", Static).update("")
        self.query_one(Input).display = False

    def start_game(self):
        if self.session is not None:
            self.session.close()
        self.session = self.service.start_session(
            self.selected_ids,
            TextualTimers(self),
            on_change=self.on_session_change,
        )
        self.mode = "battle"
        inp = self.query_one(Input)
        inp.display = True
        inp.disabled = False
        inp.value = ""
        inp.focus()
        self.query_one("#feedback", Static).update("")
        self.refresh_battle()

    # -------------------------
    # Battle
    # -------------------------
    def refresh_battle(self):
        state = self.session.combat_state()
        stats = self.session.stats()
        prompt = self.session.prompt

        if state.enemy_defeated_pending:
            enemy_text = "\n   ✦ Enemy defeated! ✦\n\n   A new enemy approaches…"
        else:
            enemy_text = (
                f"\n   Enemy HP {bar(state.health, state.enemy.max_health, color='red')} "
                f"{state.health}/{state.enemy.max_health}"
            )
        self.query_one("#enemy", Static).update(enemy_text)

        if prompt is None:
            self.query_one("#prompt", Static).update("")
        else:
            label = "[yellow]DEFEND![/]" if prompt.phase == DEFENSE else "[cyan]ATTACK[/]"
            self.query_one("#prompt", Static).update(f"\n{label}\n\n   {prompt.text}   \n")

        multiplier = self.service.config.combo_tier(state.combo).multiplier
        self.query_one("#stats", Static).update(
            f"Lives {hearts(state.lives, self.service.config.max_lives)} | "
            f"Combo {state.combo} (x{multiplier:g}) | "
            f"Enemies {stats.enemies_defeated} | "
            f"Accuracy {stats.accuracy:.0%}"
        )

    def refresh_mana(self):
        """Think-time bar: how long the combo survives without an answer."""
        mana = self.query_one("#mana", Static)
        window = self.session.combo_time_left() if self.mode == "battle" and self.session else None
        if window is None:
            mana.update("")
            return
        left, total = window
        mana.update(f"Time {bar(left, total, color='blue')} {left:.1f}s")

    def on_session_change(self, session):
        # Timer-driven changes: respawn or combo expiry
        if self.mode == "battle" and session is self.session:
            self.refresh_battle()

    def on_key(self, event):
        if event.key == "escape":
            self.exit()

        if self.mode == "intro" and event.key == "enter":
            self.start_game()
        elif self.mode == "gameover" and event.key == "r":
            self.start_game()

    def on_input_changed(self, event):
        if self.mode != "battle" or self.session is None or self.session.prompt is None:
            return
        script = self.session.prompt.characters[0].script if len(self.session.prompt) else HIRAGANA
        self.query_one("#kana", Static).update(f"→ {romaji_to_kana(event.value, script)}")

    def on_input_submitted(self, event):
        if self.mode != "battle":
            return

        outcome = self.service.submit_answer(self.session, event.value)
        if outcome is None:
            return

        inp = self.query_one(Input)
        inp.value = ""
        self.query_one("#kana", Static).update("→ ")

        feedback = describe_answer(self.session.previous_answer)
        if outcome.damage_dealt:
            feedback += f"\n[green]Hit for {outcome.damage_dealt}![/]"
        elif outcome.lives_lost:
            feedback += "\n[red]The enemy strikes! -1 life[/]"
        elif outcome.healed:
            feedback += f"\n[yellow]Miss! The enemy heals {outcome.healed}[/]"
        elif outcome.all_correct:
            feedback += "\n[cyan]Blocked![/]"
        self.query_one("#feedback", Static).update(feedback)

        if outcome.game_over:
            self.game_over()
            return
        self.refresh_battle()

    def game_over(self):
        self.mode = "gameover"
        stats = self.session.stats()
        self.query_one("#enemy", Static).update(
            f"\n💀 GAME OVER 💀\n\nEnemies defeated: {stats.enemies_defeated}\n"
            f"Accuracy: {stats.accuracy:.0%} ({stats.total_correct}/{stats.total_attempts})\n\n"
            "Press R to play again, Esc to quit"
        )
        self.query_one("#prompt", Static).update("")
        self.query_one("#kana", Static).update("")
        self.query_one(Input).display = False

    def on_unmount(self):
        if self.session is not None:
            self.session.close()


# -----------------------------
# Entry point
# -----------------------------
def open_store(db_path):
    """Open the progress database, falling back to memory if it is unusable."""
    try:
        return ProgressStore(Path(db_path))
    except (sqlite3.Error, OSError, RuntimeError) as e:
        logger.warning("Falling back to in-memory progress: %s", e)
        print(f"Could not open progress database {db_path}: {e}")
        print("Progress will not be saved this time.")
        return ProgressStore(":memory:")


def choose_groups(service):
    """Ask which kana groups to practice."""
    print("\nAvailable groups:")
    for key in service.catalog.groups():
        print(f"  {key}")
    answer = input("\nGroups to practice, comma separated (default=hiragana): ").strip()
    groups = [g.strip() for g in answer.split(",") if g.strip()] or [HIRAGANA]
    return service.ids_for_groups(groups)


def build_parser():
    parser = argparse.ArgumentParser(prog="kana-battle", description="Learn kana by fighting enemies")
    parser.add_argument("--db", default=str(DEFAULT_DB_PATH), help="progress database path")
    parser.add_argument(
        "--groups",
        nargs="+",
        help="kana groups to practice, e.g. hiragana or katakana:k (default: last selection)",
    )
    parser.add_argument("--seed", type=int, help="random seed for reproducible prompts")
    parser.add_argument("--reset", action="store_true", help="forget all learning progress first")
    parser.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level, handlers=[TextualHandler()])

    print("=" * 60)
    print("KANA BATTLE")
    print("=" * 60)

    rng = random.Random(args.seed) if args.seed is not None else None
    service = GameService(store=open_store(args.db), rng=rng)

    try:
        if args.reset:
            service.reset_progress()
            print("Progress reset.")

        try:
            if args.groups:
                selected = service.ids_for_groups(args.groups)
            else:
                selected = service.saved_selection() or choose_groups(service)
        except KeyError as e:
            print(f"\nERROR: {e}")
            return 2

        print(f"\n{len(selected)} characters selected, {len(service.ledger)} with history.")
        print(f"{len(service.corpus)} words in the word bank.")
        print(f"{'=' * 60}\n")
        input("Press Enter to start the game...")
        KanaBattle(service, selected).run()
        return 0
    finally:
        service.close()


if __name__ == "__main__":
    raise SystemExit(main())
