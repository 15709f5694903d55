from __future__ import annotations

from enum import Enum


class CharacterJudgement(Enum):
    PENDING = "pending"
    CORRECT = "correct"
    INCORRECT = "incorrect"


def judge_at(passage: str, typed: str, index: int) -> CharacterJudgement:
    """Classify a single passage position against what has been typed so far."""
    if index >= len(typed):
        return CharacterJudgement.PENDING
    if typed[index] == passage[index]:
        return CharacterJudgement.CORRECT
    return CharacterJudgement.INCORRECT


def judge(passage: str, typed: str) -> list[CharacterJudgement]:
    return [judge_at(passage, typed, i) for i in range(len(passage))]


def cursor_index(passage: str, typed: str, finished: bool = False) -> int | None:
    """Index of the next position to type, or None once nothing is left to type."""
    if finished or len(typed) >= len(passage):
        return None
    return len(typed)


def split_words(passage: str) -> list[tuple[int, str]]:
    """Group the passage into (start index, word) pairs on single spaces.

    Every word except the last keeps its trailing space, so concatenating the
    words gives back the passage and each space stays a judged position.
    """
    words = passage.split(" ")
    groups: list[tuple[int, str]] = []
    start = 0
    for i, word in enumerate(words):
        chunk = word if i == len(words) - 1 else word + " "
        groups.append((start, chunk))
        start += len(chunk)
    return groups
