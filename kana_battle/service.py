import logging
import random

from .config import DEFAULT_CONFIG
from .kana import KanaCatalog, load_word_bank
from .ledger import AccuracyLedger, SpacedRepetition
from .segmenter import WordCorpus
from .session import GameSession
from .storage import ProgressStore

logger = logging.getLogger(__name__)


class GameService:
    """Entry point for front ends: catalog, word bank, progress and sessions."""

    def __init__(self, store=None, catalog=None, corpus=None, config=DEFAULT_CONFIG, rng=None):
        self.config = config
        self.store = store if store is not None else ProgressStore(":memory:")
        self.catalog = catalog or KanaCatalog()
        self.corpus = corpus if corpus is not None else WordCorpus(self.catalog, load_word_bank())
        self.rng = rng or random.Random()
        self.ledger = AccuracyLedger.load(self.store, SpacedRepetition(config), config)

    # -------------------------
    # Selection
    # -------------------------
    def ids_for_groups(self, groups):
        return self.catalog.ids_for_groups(groups)

    def saved_selection(self):
        """Previously selected ids that still exist in the catalog."""
        return {cid for cid in self.store.load_selected_ids() if cid in self.catalog.by_id}

    def save_selection(self, character_ids):
        self.store.save_selected_ids(set(character_ids))

    def reset_progress(self):
        self.ledger.reset()
        logger.info("Progress reset")

    # -------------------------
    # Sessions
    # -------------------------
    def start_session(self, selected_ids, timers, on_change=None, clock=None):
        selected_ids = set(selected_ids)
        if not selected_ids:
            raise ValueError("Select at least one character before starting a session")
        self.save_selection(selected_ids)
        kwargs = {"clock": clock} if clock is not None else {}
        return GameSession(
            self.catalog,
            selected_ids,
            self.ledger,
            timers,
            corpus=self.corpus,
            rng=self.rng,
            config=self.config,
            on_change=on_change,
            **kwargs,
        )

    def submit_answer(self, session, raw_input):
        return session.submit_answer(raw_input)

    def current_prompt(self, session):
        return session.prompt

    def combat_state(self, session):
        return session.combat_state()

    def close(self):
        self.store.close()
