import logging
import random
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from .combat import DAMAGE, ENEMY_DEFEATED, GAME_OVER, HEAL, LIFE_LOST, CombatEngine
from .config import DEFAULT_CONFIG
from .matcher import match
from .selection import next_prompt

logger = logging.getLogger(__name__)


@dataclass
class Session:
    session_id: str
    selected_ids: frozenset
    enemies_defeated: int = 0
    total_correct: int = 0
    total_attempts: int = 0

    @property
    def accuracy(self):
        if self.total_attempts == 0:
            return 0.0
        return self.total_correct / self.total_attempts


@dataclass(frozen=True)
class PreviousAnswer:
    prompt: object
    user_input: str
    per_character: tuple
    all_correct: bool
    translation: str | None = None


@dataclass(frozen=True)
class AnswerOutcome:
    per_character: tuple
    all_correct: bool
    combo_after: int
    damage_dealt: int = 0
    lives_lost: int = 0
    healed: int = 0
    enemy_defeated: bool = False
    game_over: bool = False
    translation: str | None = None
    events: tuple = ()


def _utcnow():
    return datetime.now(timezone.utc)


class GameSession:
    """
    One game from character selection to game over.

    Each turn: pick a prompt, take the typed answer, match it, update the
    ledger, then let the combat engine resolve it. No prompt exists and no
    answer is taken while an enemy is dying or after game over.
    """

    def __init__(self, catalog, selected_ids, ledger, timers, corpus=None, rng=None, config=DEFAULT_CONFIG, clock=_utcnow, on_change=None):
        if not selected_ids:
            raise ValueError("Select at least one character before starting a session")
        self.available = catalog.resolve(selected_ids)
        self.ledger = ledger
        self.corpus = corpus
        self.rng = rng or random.Random()
        self.config = config
        self.clock = clock
        self.on_change = on_change

        self.session = Session(session_id=str(uuid.uuid4()), selected_ids=frozenset(selected_ids))
        self.combat = CombatEngine(
            timers,
            rng=self.rng,
            config=config,
            on_respawn=self._on_respawn,
            on_combo_expired=self._notify,
        )
        self.prompt = None
        self.previous_answer = None
        self._next_prompt()
        logger.info("Session %s started with %d characters", self.session.session_id, len(self.available))

    @property
    def session_id(self):
        return self.session.session_id

    @property
    def accepting(self):
        return self.prompt is not None and self.combat.accepting

    def combat_state(self):
        return self.combat.snapshot()

    def stats(self):
        return replace(self.session)

    def combo_time_left(self):
        return self.combat.combo_time_left()

    def submit_answer(self, raw_input):
        """
        Resolve one typed answer against the live prompt.

        Returns None when the input is blank or when there is no live prompt
        (enemy defeat transition, game over).
        """
        if not raw_input or not raw_input.strip():
            return None
        if not self.accepting:
            logger.debug("Ignoring answer %r: no live prompt", raw_input)
            return None

        now = self.clock()
        prompt = self.prompt
        result = match(prompt.characters, raw_input)
        for char, correct in zip(prompt.characters, result.per_character):
            self.ledger.record_answer(char.id, correct, now)

        self.session.total_correct += result.correct_count
        self.session.total_attempts += len(prompt)

        translation = None
        if prompt.source_word and self.corpus is not None:
            translation = self.corpus.translation(prompt.characters)

        events = self.combat.on_answer(result.all_correct)
        self.previous_answer = PreviousAnswer(
            prompt=prompt,
            user_input=raw_input,
            per_character=result.per_character,
            all_correct=result.all_correct,
            translation=translation,
        )

        kinds = {event.kind for event in events}
        outcome = AnswerOutcome(
            per_character=result.per_character,
            all_correct=result.all_correct,
            combo_after=self.combat.state.combo,
            damage_dealt=sum(e.amount for e in events if e.kind == DAMAGE),
            lives_lost=sum(e.amount for e in events if e.kind == LIFE_LOST),
            healed=sum(e.amount for e in events if e.kind == HEAL),
            enemy_defeated=ENEMY_DEFEATED in kinds,
            game_over=GAME_OVER in kinds,
            translation=translation,
            events=tuple(events),
        )

        if self.combat.accepting:
            self._next_prompt()
        else:
            self.prompt = None
        return outcome

    def _next_prompt(self):
        if not self.combat.accepting:
            self.prompt = None
            return
        self.prompt = next_prompt(
            self.available,
            self.ledger,
            now=self.clock(),
            enemies_defeated=self.session.enemies_defeated,
            phase=self.combat.state.phase,
            corpus=self.corpus,
            rng=self.rng,
            config=self.config,
        )
        self.combat.restart_combo_timer()

    def _on_respawn(self, enemy):
        self.session.enemies_defeated += 1
        logger.info("Enemy %d defeated", self.session.enemies_defeated)
        self._next_prompt()
        self._notify()

    def _notify(self):
        if self.on_change is not None:
            self.on_change(self)

    def close(self):
        self.combat.close()
