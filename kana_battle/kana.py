import json
import logging
from dataclasses import dataclass
from pathlib import Path

import jaconv
import romkan

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"
WORDS_PATH = DATA_DIR / "words.json"

HIRAGANA = "hiragana"
KATAKANA = "katakana"
SCRIPTS = (HIRAGANA, KATAKANA)


class CatalogError(ValueError):
    """Raised when the bundled kana or word data is unusable."""


@dataclass(frozen=True)
class Character:
    id: str
    character: str
    romaji: tuple  # accepted spellings, longest first
    script: str
    group: str
    display: str = ""  # spelling shown in feedback

    @property
    def max_romaji_length(self):
        return max(len(r) for r in self.romaji)

    @property
    def hint(self):
        return self.display or self.romaji[0]


# -----------------------------
# Kana table
# -----------------------------
# (hiragana glyph, id suffix, accepted romaji with the displayed one first, selection group)
# Katakana entries are derived from the same rows with jaconv.
KANA_ROWS = (
    ("あ", "a", ("a",), "vowels"),
    ("い", "i", ("i",), "vowels"),
    ("う", "u", ("u",), "vowels"),
    ("え", "e", ("e",), "vowels"),
    ("お", "o", ("o",), "vowels"),
    ("か", "ka", ("ka",), "k"),
    ("き", "ki", ("ki",), "k"),
    ("く", "ku", ("ku",), "k"),
    ("け", "ke", ("ke",), "k"),
    ("こ", "ko", ("ko",), "k"),
    ("さ", "sa", ("sa",), "s"),
    ("し", "shi", ("shi", "si"), "s"),
    ("す", "su", ("su",), "s"),
    ("せ", "se", ("se",), "s"),
    ("そ", "so", ("so",), "s"),
    ("た", "ta", ("ta",), "t"),
    ("ち", "chi", ("chi", "ti"), "t"),
    ("つ", "tsu", ("tsu", "tu"), "t"),
    ("て", "te", ("te",), "t"),
    ("と", "to", ("to",), "t"),
    ("な", "na", ("na",), "n"),
    ("に", "ni", ("ni",), "n"),
    ("ぬ", "nu", ("nu",), "n"),
    ("ね", "ne", ("ne",), "n"),
    ("の", "no", ("no",), "n"),
    ("は", "ha", ("ha",), "h"),
    ("ひ", "hi", ("hi",), "h"),
    ("ふ", "fu", ("fu", "hu"), "h"),
    ("へ", "he", ("he",), "h"),
    ("ほ", "ho", ("ho",), "h"),
    ("ま", "ma", ("ma",), "m"),
    ("み", "mi", ("mi",), "m"),
    ("む", "mu", ("mu",), "m"),
    ("め", "me", ("me",), "m"),
    ("も", "mo", ("mo",), "m"),
    ("や", "ya", ("ya",), "y"),
    ("ゆ", "yu", ("yu",), "y"),
    ("よ", "yo", ("yo",), "y"),
    ("ら", "ra", ("ra",), "r"),
    ("り", "ri", ("ri",), "r"),
    ("る", "ru", ("ru",), "r"),
    ("れ", "re", ("re",), "r"),
    ("ろ", "ro", ("ro",), "r"),
    ("わ", "wa", ("wa",), "w"),
    ("を", "wo", ("wo", "o"), "w"),
    ("ん", "n", ("n",), "w"),
    # Dakuten / handakuten
    ("が", "ga", ("ga",), "dakuten-g"),
    ("ぎ", "gi", ("gi",), "dakuten-g"),
    ("ぐ", "gu", ("gu",), "dakuten-g"),
    ("げ", "ge", ("ge",), "dakuten-g"),
    ("ご", "go", ("go",), "dakuten-g"),
    ("ざ", "za", ("za",), "dakuten-z"),
    ("じ", "ji", ("ji", "zi"), "dakuten-z"),
    ("ず", "zu", ("zu",), "dakuten-z"),
    ("ぜ", "ze", ("ze",), "dakuten-z"),
    ("ぞ", "zo", ("zo",), "dakuten-z"),
    ("だ", "da", ("da",), "dakuten-d"),
    ("ぢ", "di", ("ji", "di"), "dakuten-d"),
    ("づ", "du", ("zu", "du"), "dakuten-d"),
    ("で", "de", ("de",), "dakuten-d"),
    ("ど", "do", ("do",), "dakuten-d"),
    ("ば", "ba", ("ba",), "dakuten-b"),
    ("び", "bi", ("bi",), "dakuten-b"),
    ("ぶ", "bu", ("bu",), "dakuten-b"),
    ("べ", "be", ("be",), "dakuten-b"),
    ("ぼ", "bo", ("bo",), "dakuten-b"),
    ("ぱ", "pa", ("pa",), "dakuten-p"),
    ("ぴ", "pi", ("pi",), "dakuten-p"),
    ("ぷ", "pu", ("pu",), "dakuten-p"),
    ("ぺ", "pe", ("pe",), "dakuten-p"),
    ("ぽ", "po", ("po",), "dakuten-p"),
    # Combinations (youon)
    ("きゃ", "kya", ("kya",), "youon-k"),
    ("きゅ", "kyu", ("kyu",), "youon-k"),
    ("きょ", "kyo", ("kyo",), "youon-k"),
    ("しゃ", "sha", ("sha", "sya"), "youon-s"),
    ("しゅ", "shu", ("shu", "syu"), "youon-s"),
    ("しょ", "sho", ("sho", "syo"), "youon-s"),
    ("ちゃ", "cha", ("cha", "tya"), "youon-t"),
    ("ちゅ", "chu", ("chu", "tyu"), "youon-t"),
    ("ちょ", "cho", ("cho", "tyo"), "youon-t"),
    ("にゃ", "nya", ("nya",), "youon-n"),
    ("にゅ", "nyu", ("nyu",), "youon-n"),
    ("にょ", "nyo", ("nyo",), "youon-n"),
    ("ひゃ", "hya", ("hya",), "youon-h"),
    ("ひゅ", "hyu", ("hyu",), "youon-h"),
    ("ひょ", "hyo", ("hyo",), "youon-h"),
    ("みゃ", "mya", ("mya",), "youon-m"),
    ("みゅ", "myu", ("myu",), "youon-m"),
    ("みょ", "myo", ("myo",), "youon-m"),
    ("りゃ", "rya", ("rya",), "youon-r"),
    ("りゅ", "ryu", ("ryu",), "youon-r"),
    ("りょ", "ryo", ("ryo",), "youon-r"),
    ("ぎゃ", "gya", ("gya",), "youon-g"),
    ("ぎゅ", "gyu", ("gyu",), "youon-g"),
    ("ぎょ", "gyo", ("gyo",), "youon-g"),
    ("じゃ", "ja", ("ja", "jya", "zya"), "youon-j"),
    ("じゅ", "ju", ("ju", "jyu", "zyu"), "youon-j"),
    ("じょ", "jo", ("jo", "jyo", "zyo"), "youon-j"),
    ("びゃ", "bya", ("bya",), "youon-b"),
    ("びゅ", "byu", ("byu",), "youon-b"),
    ("びょ", "byo", ("byo",), "youon-b"),
    ("ぴゃ", "pya", ("pya",), "youon-p"),
    ("ぴゅ", "pyu", ("pyu",), "youon-p"),
    ("ぴょ", "pyo", ("pyo",), "youon-p"),
)


def _longest_first(romaji):
    # sorted() is stable, so equal-length spellings keep their listed order
    return tuple(sorted((r.lower() for r in romaji), key=len, reverse=True))


def build_characters(rows=KANA_ROWS):
    characters = []
    for script in SCRIPTS:
        for glyph, suffix, romaji, group in rows:
            if not romaji:
                raise CatalogError(f"No romaji for {glyph}")
            if script == KATAKANA:
                glyph = jaconv.hira2kata(glyph)
            characters.append(
                Character(
                    id=f"{script}-{suffix}",
                    character=glyph,
                    romaji=_longest_first(romaji),
                    script=script,
                    group=group,
                    display=romaji[0].lower(),
                )
            )
    return tuple(characters)


class KanaCatalog:
    """Static set of selectable characters, loaded once at startup."""

    def __init__(self, characters=None):
        self.characters = tuple(characters) if characters is not None else build_characters()
        self.by_id = {}
        self.by_glyph = {}
        for char in self.characters:
            if char.id in self.by_id:
                raise CatalogError(f"Duplicate character id: {char.id}")
            self.by_id[char.id] = char
            self.by_glyph.setdefault(char.character, char)

    def __len__(self):
        return len(self.characters)

    def __iter__(self):
        return iter(self.characters)

    def get(self, character_id):
        return self.by_id[character_id]

    def resolve(self, character_ids):
        """Characters for the given ids, in catalog order."""
        wanted = set(character_ids)
        unknown = wanted - self.by_id.keys()
        if unknown:
            raise KeyError(f"Unknown character ids: {sorted(unknown)}")
        return [c for c in self.characters if c.id in wanted]

    def groups(self):
        """Group keys like 'hiragana:k' in catalog order."""
        seen = []
        for char in self.characters:
            key = f"{char.script}:{char.group}"
            if key not in seen:
                seen.append(key)
        return seen

    def ids_for_groups(self, groups):
        """
        Expand group keys to character ids.

        A bare script name ("hiragana") selects the whole script, and
        "katakana:k" selects one row.
        """
        ids = set()
        for key in groups:
            script, _, group = key.partition(":")
            if script not in SCRIPTS:
                raise KeyError(f"Unknown script in group {key!r}")
            matched = [c.id for c in self.characters if c.script == script and (not group or c.group == group)]
            if not matched:
                raise KeyError(f"Unknown group {key!r}")
            ids.update(matched)
        return ids


# -----------------------------
# Word bank loader
# -----------------------------
def load_word_bank(path=WORDS_PATH):
    """
    Load the word -> translation tables.

    Expected format: {"hiragana": {"ねこ": "cat", ...}, "katakana": {...}}
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogError(f"Could not load word bank from {path}: {e}") from e

    if not isinstance(data, dict):
        raise CatalogError(f"Word bank {path} must be a JSON object")

    bank = {}
    for script in SCRIPTS:
        table = data.get(script, {})
        if not isinstance(table, dict):
            raise CatalogError(f"Word table for {script} must be an object")
        # Normalize half-width kana and similar variants
        bank[script] = {jaconv.normalize(word.strip()): meaning for word, meaning in table.items() if word.strip()}
    logger.debug("Loaded %d hiragana and %d katakana words", len(bank[HIRAGANA]), len(bank[KATAKANA]))
    return bank


# -----------------------------
# Japanese utilities
# -----------------------------
def romaji_to_kana(romaji, script=HIRAGANA):
    """Live preview of typed romaji in the prompt's script."""
    try:
        hira = jaconv.normalize(jaconv.kata2hira(romkan.to_hiragana(romaji.strip().lower())))
    except Exception:
        return ""
    if script == KATAKANA:
        return jaconv.hira2kata(hira)
    return hira
