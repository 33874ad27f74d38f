import logging

from .kana import SCRIPTS

logger = logging.getLogger(__name__)

# Small tsu and the long vowel mark are part of words but are never offered
# as selectable characters on their own.
MODIFIER_GLYPHS = frozenset({"っ", "ッ", "ー"})


def _glyph_table(catalog):
    table = {}
    for char in catalog:
        table.setdefault(char.character, char)
    # Longest glyph first so きゃ wins over き
    return sorted(table.items(), key=lambda item: len(item[0]), reverse=True)


def segment(word, catalog, glyphs=None):
    """
    Split a word into catalog characters by greedy longest match.

    Positions that match no known glyph (e.g. small tsu) are skipped, so the
    result can be shorter than the word.
    """
    if glyphs is None:
        glyphs = _glyph_table(catalog)

    result = []
    i = 0
    while i < len(word):
        for glyph, char in glyphs:
            if word.startswith(glyph, i):
                result.append(char)
                i += len(glyph)
                break
        else:
            i += 1
    return result


def can_compose(word_chars, available):
    """True if every non-modifier character of the word is in `available`."""
    available_glyphs = {c.character for c in available}
    return all(c.character in available_glyphs for c in word_chars if c.character not in MODIFIER_GLYPHS)


def scored_characters(word_chars):
    """Characters that count towards weights and bucket membership."""
    return [c for c in word_chars if c.character not in MODIFIER_GLYPHS]


# -----------------------------
# Word corpus
# -----------------------------
class WordCorpus:
    """Word bank segmented once at startup, filtered per character selection."""

    def __init__(self, catalog, bank):
        glyphs = _glyph_table(catalog)
        self.words = {}
        self.translations = {}
        for script in SCRIPTS:
            table = bank.get(script, {})
            segmented = []
            for word, meaning in table.items():
                chars = tuple(segment(word, catalog, glyphs))
                if not chars:
                    logger.debug("Dropping word %s: no known characters", word)
                    continue
                segmented.append(chars)
                # Keyed by the segmented spelling so prompts missing a
                # skipped modifier still find their meaning
                self.translations.setdefault(word, meaning)
                self.translations.setdefault("".join(c.character for c in chars), meaning)
            self.words[script] = segmented

        self._cache_key = None
        self._cache = None

    def __len__(self):
        return sum(len(words) for words in self.words.values())

    def composable(self, available):
        """Words per script that can be formed from `available`."""
        key = tuple(sorted(c.id for c in available))
        if key == self._cache_key:
            return self._cache

        result = {script: [w for w in words if can_compose(w, available)] for script, words in self.words.items()}
        self._cache_key = key
        self._cache = result
        logger.debug(
            "Composable words for %d characters: %s",
            len(available),
            {script: len(words) for script, words in result.items()},
        )
        return result

    def translation(self, chars):
        word = "".join(c.character for c in chars)
        return self.translations.get(word)
