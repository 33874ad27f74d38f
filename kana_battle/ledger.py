import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone

from fsrs import Card, Rating, Scheduler

from .config import DEFAULT_CONFIG

logger = logging.getLogger(__name__)

AGAIN = "again"
HARD = "hard"
GOOD = "good"
EASY = "easy"
GRADES = (AGAIN, HARD, GOOD, EASY)

_RATINGS = {
    AGAIN: Rating.Again,
    HARD: Rating.Hard,
    GOOD: Rating.Good,
    EASY: Rating.Easy,
}


def utc(now=None):
    """fsrs only accepts timezone-aware UTC datetimes."""
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


# -----------------------------
# Scheduler adapter
# -----------------------------
class SpacedRepetition:
    """Thin wrapper over fsrs.Scheduler tuned for short kana review cycles."""

    def __init__(self, config=DEFAULT_CONFIG):
        self.scheduler = Scheduler(
            desired_retention=config.desired_retention,
            learning_steps=config.learning_steps,
            relearning_steps=config.relearning_steps,
            maximum_interval=config.maximum_interval,
            # Predictable intervals
            enable_fuzzing=False,
        )

    def create_card(self, now=None):
        return Card(due=utc(now))

    def grade(self, state, grade, now=None):
        card, _review_log = self.scheduler.review_card(state, _RATINGS[grade], review_datetime=utc(now))
        return card

    def retrievability(self, state, now=None):
        return self.scheduler.get_card_retrievability(state, current_datetime=utc(now))

    def due(self, state):
        return state.due

    def dump(self, state):
        return state.to_dict()

    def load(self, payload):
        return Card.from_dict(payload)


# -----------------------------
# Per-character cards
# -----------------------------
@dataclass
class KanaCard:
    character_id: str
    scheduler_state: object
    last_reviewed_at: datetime | None = None
    times_shown: int = 0
    times_correct: int = 0

    @property
    def accuracy(self):
        if self.times_shown == 0:
            return 0.0
        return self.times_correct / self.times_shown


def wilson_lower_bound(correct, shown, z=1.96):
    """Lower bound of the Wilson score interval for correct/shown."""
    if shown <= 0:
        return 0.0
    p = correct / shown
    z2 = z * z
    centre = p + z2 / (2 * shown)
    margin = z * math.sqrt(p * (1 - p) / shown + z2 / (4 * shown * shown))
    return max(0.0, (centre - margin) / (1 + z2 / shown))


def grade_for(card, is_correct, config=DEFAULT_CONFIG):
    """
    Pick the review grade from the answer and the card's history so far.

    A correct answer on a historically strong character is "easy", on a
    historically weak one "hard"; wrong answers are always "again".
    """
    if not is_correct:
        return AGAIN
    if card is None or card.times_shown < config.grade_min_history:
        return GOOD
    if card.accuracy >= config.easy_accuracy:
        return EASY
    if card.accuracy < config.hard_accuracy:
        return HARD
    return GOOD


# -----------------------------
# Ledger
# -----------------------------
class AccuracyLedger:
    """Answer counters and scheduler state for every character seen so far."""

    def __init__(self, scheduler=None, store=None, config=DEFAULT_CONFIG):
        self.scheduler = scheduler or SpacedRepetition(config)
        self.store = store
        self.config = config
        self.cards = {}

    @classmethod
    def load(cls, store, scheduler=None, config=DEFAULT_CONFIG):
        """Build a ledger from persisted cards; unreadable history counts as none."""
        ledger = cls(scheduler=scheduler, store=store, config=config)
        records = store.load_cards() if store is not None else None
        for character_id, record in (records or {}).items():
            try:
                ledger.cards[character_id] = ledger._decode(character_id, record)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Ignoring corrupt card %s: %s", character_id, e)
        logger.info("Loaded %d kana cards", len(ledger.cards))
        return ledger

    def __contains__(self, character_id):
        return character_id in self.cards

    def __len__(self):
        return len(self.cards)

    def get(self, character_id):
        return self.cards.get(character_id)

    def record_answer(self, character_id, is_correct, now=None):
        now = utc(now)
        card = self.cards.get(character_id)
        grade = grade_for(card, is_correct, self.config)
        if card is None:
            card = KanaCard(character_id=character_id, scheduler_state=self.scheduler.create_card(now))

        updated = KanaCard(
            character_id=character_id,
            scheduler_state=self.scheduler.grade(card.scheduler_state, grade, now),
            last_reviewed_at=now,
            times_shown=card.times_shown + 1,
            times_correct=card.times_correct + (1 if is_correct else 0),
        )
        self.cards[character_id] = updated
        self._persist(updated)
        return updated

    def accuracy(self, character_id):
        card = self.cards.get(character_id)
        return card.accuracy if card is not None else 0.0

    def is_new(self, character_id):
        return character_id not in self.cards

    def is_overdue(self, character_id, now=None):
        card = self.cards.get(character_id)
        if card is None:
            return False
        try:
            return self.scheduler.due(card.scheduler_state) < utc(now)
        except Exception:
            logger.warning("Could not read due date for %s", character_id, exc_info=True)
            return False

    def weight(self, character_id, now=None):
        """
        Selection priority, higher means shown more often.

        Unseen characters get a flat boost. Seen ones multiply an inverse
        retrievability factor by an inverse Wilson accuracy factor, so a
        character is favoured when it is close to being forgotten or when we
        cannot yet be confident it is known.
        """
        card = self.cards.get(character_id)
        if card is None:
            return self.config.new_card_weight

        try:
            retrievability = self.scheduler.retrievability(card.scheduler_state, now)
            retrievability = min(1.0, max(0.0, float(retrievability)))
            retrievability_factor = 1.0 / (retrievability + self.config.retrievability_offset)
        except Exception:
            logger.warning("Retrievability failed for %s, using neutral weight", character_id, exc_info=True)
            retrievability_factor = self.config.neutral_retrievability_weight

        bound = wilson_lower_bound(card.times_correct, card.times_shown, self.config.wilson_z)
        wilson_factor = 1.0 / (bound + self.config.accuracy_offset)
        return retrievability_factor * wilson_factor

    def reset(self):
        self.cards.clear()
        if self.store is not None:
            self.store.clear_cards()

    # -------------------------
    # Persistence
    # -------------------------
    def _persist(self, card):
        if self.store is None:
            return
        self.store.save_cards({card.character_id: self._encode(card)})

    def _encode(self, card):
        return {
            "scheduler_state": self.scheduler.dump(card.scheduler_state),
            "last_reviewed_at": card.last_reviewed_at.isoformat() if card.last_reviewed_at else None,
            "times_shown": card.times_shown,
            "times_correct": card.times_correct,
        }

    def _decode(self, character_id, record):
        shown = int(record["times_shown"])
        correct = int(record["times_correct"])
        if shown < 0 or not 0 <= correct <= shown:
            raise ValueError(f"bad counters {correct}/{shown}")
        reviewed = record.get("last_reviewed_at")
        return KanaCard(
            character_id=character_id,
            scheduler_state=self.scheduler.load(record["scheduler_state"]),
            last_reviewed_at=datetime.fromisoformat(reviewed) if reviewed else None,
            times_shown=shown,
            times_correct=correct,
        )
