from __future__ import annotations

import math
import re
from enum import Enum


class Verdict(str, Enum):
    EXACT = "exact"
    CLOSE = "close"
    WRONG = "wrong"


_STRIP_RE = re.compile(r"[\s\-]+")

POSITION_MULTIPLIERS = (2.0, 1.0, 0.75, 0.5)
LATE_MULTIPLIER = 0.25


def normalize(text: str) -> str:
    return _STRIP_RE.sub("", (text or "").lower())


def levenshtein(a: str, b: str) -> int:
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        cur = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            cur.append(min(prev[j] + 1, cur[j - 1] + 1, prev[j - 1] + cost))
        prev = cur
    return prev[-1]


def evaluate(guess: str, secret: str) -> Verdict:
    g = normalize(guess)
    s = normalize(secret)
    if g and g == s:
        return Verdict.EXACT
    if g and s and levenshtein(g, s) == 1:
        return Verdict.CLOSE
    return Verdict.WRONG


def position_multiplier(guess_position: int) -> float:
    if 1 <= guess_position <= len(POSITION_MULTIPLIERS):
        return POSITION_MULTIPLIERS[guess_position - 1]
    return LATE_MULTIPLIER


def score(time_remaining: int, total_time: int, word_length: int, guess_position: int) -> int:
    if total_time <= 0:
        return 0
    # Floor the time-weighted base first so position multipliers stay exact
    # ratios of each other (1st is always 2x the 2nd).
    base = (word_length * 50 * max(0, time_remaining)) // total_time
    return math.floor(base * position_multiplier(guess_position))


def drawer_share(guesser_score: int, guess_position: int) -> int:
    if guess_position == 1:
        return math.floor(guesser_score * 0.5)
    return math.floor(guesser_score * 0.3)
