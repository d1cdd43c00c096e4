from __future__ import annotations

import random


FIRST_HINT_AT = 44
SECOND_HINT_AT = 25


def letter_positions(word: str) -> list[int]:
    return [i for i, ch in enumerate(word) if ch.isalnum()]


def word_structure(word: str) -> str:
    """Mask letters and digits, keeping spaces, dashes and other separators."""
    return "".join("_" if ch.isalnum() else ch for ch in word)


def hint_limit(word: str, hint_count: int) -> int:
    letters = len(letter_positions(word))
    limit = max(0, hint_count)
    if letters <= 3:
        limit = min(limit, 1)
    return max(0, min(limit, letters - 1))


def hint_checkpoints(hint_count: int) -> list[int]:
    """Remaining-seconds marks at which hints are revealed, latest-first."""
    if hint_count <= 0:
        return []
    marks = [FIRST_HINT_AT]
    if hint_count >= 2:
        marks.append(SECOND_HINT_AT)
    extra = hint_count - 2
    if extra > 0:
        step = SECOND_HINT_AT / (extra + 1)
        marks.extend(int(SECOND_HINT_AT - step * i) for i in range(1, extra + 1))
    return marks


def pick_hint(word: str, revealed: set[int], rng: random.Random | None = None) -> int | None:
    choices = [i for i in letter_positions(word) if i not in revealed]
    if not choices:
        return None
    return (rng or random).choice(choices)
