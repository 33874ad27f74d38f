import re
from dataclasses import dataclass
from functools import lru_cache


@dataclass(frozen=True)
class MatchResult:
    per_character: tuple
    all_correct: bool
    consumed: int  # how much of the normalized input was read

    @property
    def correct_count(self):
        return sum(1 for ok in self.per_character if ok)


def normalize_input(raw_input):
    return raw_input.strip().lower()


@lru_cache(maxsize=512)
def _romaji_pattern(romaji):
    # Longest spelling first so "shi" wins over "si"
    spellings = sorted((r.lower() for r in romaji), key=len, reverse=True)
    return re.compile("|".join(re.escape(r) for r in spellings))


def match(expected, raw_input):
    """
    Check typed romaji against the expected characters, one by one.

    Each character's spellings are tried at the current input position. A
    miss still consumes up to the character's longest spelling, so one
    wrong character does not shift every character after it.
    """
    text = normalize_input(raw_input)
    cursor = 0
    results = []

    for char in expected:
        found = _romaji_pattern(tuple(char.romaji)).match(text, cursor)
        if found and found.end() > cursor:
            results.append(True)
            cursor = found.end()
        else:
            results.append(False)
            longest = max(len(r) for r in char.romaji)
            cursor += max(1, min(longest, len(text) - cursor))

    all_correct = all(results) and cursor >= len(text)
    return MatchResult(per_character=tuple(results), all_correct=all_correct, consumed=min(cursor, len(text)))
