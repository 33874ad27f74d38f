import logging
import random
from bisect import bisect_right
from dataclasses import dataclass
from itertools import accumulate

from .config import ATTACK, DEFAULT_CONFIG, DEFENSE
from .kana import HIRAGANA, KATAKANA
from .segmenter import scored_characters

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Prompt:
    characters: tuple
    phase: str = ATTACK
    source_word: str | None = None

    def __len__(self):
        return len(self.characters)

    def __iter__(self):
        return iter(self.characters)

    @property
    def text(self):
        return "".join(c.character for c in self.characters)


# -----------------------------
# Weighted sampling
# -----------------------------
def weighted_choice(items, weights, rng=random):
    """
    Pick one item with probability proportional to its weight.

    Cumulative weights plus binary search; when every weight is zero the
    pick is uniform.
    """
    if not items:
        raise ValueError("Cannot choose from an empty sequence")
    cumulative = list(accumulate(max(0.0, w) for w in weights))
    total = cumulative[-1]
    if total <= 0:
        return rng.choice(items)
    index = bisect_right(cumulative, rng.random() * total)
    return items[min(index, len(items) - 1)]


# -----------------------------
# Defense prompts
# -----------------------------
def bottom_by_accuracy(available, ledger, count):
    """The `count` characters with the lowest raw accuracy (unseen count as 0)."""
    ranked = sorted(available, key=lambda c: ledger.accuracy(c.id))
    return ranked[: min(count, len(ranked))]


def defense_prompt(available, ledger, enemies_defeated, rng=random, config=DEFAULT_CONFIG):
    pool = bottom_by_accuracy(available, ledger, config.defense_pool_size)
    rng.shuffle(pool)
    # Longer defense prompts as the run goes on, capped
    length = min(enemies_defeated + 1, config.defense_max_length)
    return Prompt(characters=tuple(pool[:length]), phase=DEFENSE)


# -----------------------------
# Attack prompts: word mode
# -----------------------------
def word_weight(word, ledger, now=None):
    """Average character weight; modifiers don't count."""
    weights = [ledger.weight(c.id, now) for c in scored_characters(word)]
    if not weights:
        return 0.0
    return sum(weights) / len(weights)


def _script_ratio(available):
    hiragana = sum(1 for c in available if c.script == HIRAGANA)
    katakana = sum(1 for c in available if c.script == KATAKANA)
    total = hiragana + katakana
    return hiragana / total if total else 0.0


def next_word(available, ledger, corpus, max_length, now=None, rng=random, config=DEFAULT_CONFIG):
    """
    Weighted pick from the composable word bank, or None when too few words
    fit the current selection for word mode to be worthwhile.
    """
    words = corpus.composable(available)
    hiragana_words = [w for w in words.get(HIRAGANA, []) if len(w) <= max_length]
    katakana_words = [w for w in words.get(KATAKANA, []) if len(w) <= max_length]
    if len(hiragana_words) + len(katakana_words) < config.word_threshold:
        return None

    # Pick a word bank in proportion to the selected scripts
    use_hiragana = rng.random() < _script_ratio(available)
    if use_hiragana and hiragana_words:
        candidates = hiragana_words
    elif katakana_words:
        candidates = katakana_words
    elif hiragana_words:
        candidates = hiragana_words
    else:
        return None

    with_new = []
    with_overdue = []
    everything = []
    # A word can sit in several buckets
    for word in candidates:
        weight = word_weight(word, ledger, now)
        if weight <= 0:
            continue
        scored = scored_characters(word)
        if any(ledger.is_new(c.id) for c in scored):
            with_new.append((word, weight))
        if any(ledger.is_overdue(c.id, now) for c in scored):
            with_overdue.append((word, weight))
        everything.append((word, weight))

    # 1/3 each: words with new kana, words with overdue kana, any word
    roll = rng.random()
    if roll < 1 / 3:
        bucket = with_new or everything
    elif roll < 2 / 3:
        bucket = with_overdue or everything
    else:
        bucket = everything

    if not bucket:
        return None
    return weighted_choice([w for w, _ in bucket], [weight for _, weight in bucket], rng)


# -----------------------------
# Attack prompts: individual mode
# -----------------------------
def next_character(candidates, ledger, now=None, rng=random):
    """
    Weighted pick of one character.

    When both unseen and seen characters are present a coin flip decides
    which group to draw from, so new kana keep appearing even when their
    weight would lose out.
    """
    new = [c for c in candidates if ledger.is_new(c.id)]
    seen = [c for c in candidates if not ledger.is_new(c.id)]
    if new and seen:
        pool = new if rng.random() < 0.5 else seen
    else:
        pool = new or seen
    return weighted_choice(pool, [ledger.weight(c.id, now) for c in pool], rng)


def individual_prompt(available, ledger, now=None, rng=random, config=DEFAULT_CONFIG):
    chosen = []
    used = set()
    for _ in range(min(config.individual_prompt_length, len(available))):
        remaining = [c for c in available if c.id not in used]
        char = next_character(remaining, ledger, now, rng)
        chosen.append(char)
        used.add(char.id)
    return Prompt(characters=tuple(chosen), phase=ATTACK)


def next_prompt(available, ledger, now=None, enemies_defeated=0, phase=ATTACK, corpus=None, rng=None, config=DEFAULT_CONFIG):
    """Build the next prompt for the given phase."""
    if not available:
        raise ValueError("Cannot build a prompt from an empty character selection")
    rng = rng or random.Random()
    available = list(available)

    if phase == DEFENSE:
        return defense_prompt(available, ledger, enemies_defeated, rng, config)

    if corpus is not None:
        word = next_word(
            available,
            ledger,
            corpus,
            max_length=enemies_defeated + config.word_length_bonus,
            now=now,
            rng=rng,
            config=config,
        )
        if word:
            text = "".join(c.character for c in word)
            logger.debug("Word prompt: %s", text)
            return Prompt(characters=tuple(word), phase=ATTACK, source_word=text)

    return individual_prompt(available, ledger, now, rng, config)
