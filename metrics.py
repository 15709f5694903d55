from __future__ import annotations

import math
from dataclasses import asdict, dataclass


CHARS_PER_WORD = 5


@dataclass(frozen=True)
class FinalStats:
    wpm: int
    raw_wpm: int
    accuracy: int
    correct_chars: int
    incorrect_chars: int
    missed_chars: int
    extra_chars: int
    time_elapsed: float

    def to_dict(self) -> dict:
        return asdict(self)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def words_per_minute(chars: int, elapsed_s: float) -> int:
    """Characters over elapsed seconds as whole words per minute, 0 for no time."""
    minutes = elapsed_s / 60.0
    if minutes <= 0:
        return 0
    return round_half_up((chars / CHARS_PER_WORD) / minutes)


def compute_correct_chars(target_text: str, typed_text: str) -> int:
    correct = 0
    for i, ch in enumerate(typed_text):
        if i >= len(target_text):
            break
        if ch == target_text[i]:
            correct += 1
    return correct


def score(target_text: str, typed_text: str, started_at: float, ended_at: float) -> FinalStats:
    """Compute the final report of a session.

    ``started_at`` and ``ended_at`` are readings of the same monotonic clock,
    in seconds. Degenerate sessions (nothing typed, no elapsed time) get
    fallback values instead of raising.
    """
    elapsed_s = max(ended_at - started_at, 0.0)
    total_typed = len(typed_text)
    correct_chars = compute_correct_chars(target_text, typed_text)
    incorrect_chars = total_typed - correct_chars

    if total_typed > 0:
        accuracy = round_half_up(correct_chars / total_typed * 100)
    else:
        accuracy = 100
    accuracy = min(100, max(0, accuracy))

    return FinalStats(
        wpm=words_per_minute(correct_chars, elapsed_s),
        raw_wpm=words_per_minute(total_typed, elapsed_s),
        accuracy=accuracy,
        correct_chars=correct_chars,
        incorrect_chars=incorrect_chars,
        missed_chars=max(len(target_text) - total_typed, 0),
        extra_chars=0,
        time_elapsed=elapsed_s,
    )
