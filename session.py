"""Typing session engine.

A ``TypingSession`` walks through three states: IDLE until the first
character arrives, RUNNING while the clock and the sampling timer are live,
and FINISHED once the whole passage has been typed. FINISHED is terminal; a
restart is a brand-new session built by the ``Trainer`` from the same passage.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import Any, Callable

from matcher import CharacterJudgement, cursor_index, judge, split_words
from metrics import FinalStats, score
from sampler import LiveMetrics, WpmPoint, append_point, live_metrics, take_sample
from settings import SAMPLE_INTERVAL


logger = logging.getLogger(__name__)

# (interval seconds, callback) -> handle with a stop() method
TimerFactory = Callable[[float, Callable[[], None]], Any]
TickHook = Callable[[LiveMetrics], None]
FinishHook = Callable[[FinalStats, tuple], None]


class Difficulty(str, Enum):
    EASY = "easy"
    NORMAL = "normal"
    HARD = "hard"


@dataclass(frozen=True)
class SessionConfig:
    topic: str = "Technology"
    difficulty: Difficulty = Difficulty.NORMAL
    include_punctuation: bool = True
    allow_capitalization: bool = True


class SessionState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    FINISHED = "finished"


class TypingSession:
    def __init__(
        self,
        passage: str,
        config: SessionConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        timer_factory: TimerFactory | None = None,
        interval: float = SAMPLE_INTERVAL,
        on_tick: TickHook | None = None,
        on_finish: FinishHook | None = None,
        allow_corrections: bool = False,
    ) -> None:
        if not passage:
            raise ValueError("passage must be a non-empty string")
        self._passage = passage
        self._config = config or SessionConfig()
        self._clock = clock
        self._timer_factory = timer_factory
        self._interval = interval
        self._on_tick = on_tick
        self._on_finish = on_finish
        self._allow_corrections = allow_corrections

        self._lock = Lock()
        self._state = SessionState.IDLE
        self._typed = ""
        self._history: list[WpmPoint] = []
        self._started_at: float | None = None
        self._ended_at: float | None = None
        self._stats: FinalStats | None = None
        self._timer: Any = None

    @property
    def passage(self) -> str:
        return self._passage

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def typed(self) -> str:
        return self._typed

    @property
    def start_time(self) -> float | None:
        return self._started_at

    @property
    def end_time(self) -> float | None:
        return self._ended_at

    @property
    def history(self) -> tuple[WpmPoint, ...]:
        return tuple(self._history)

    @property
    def stats(self) -> FinalStats | None:
        """Final report, available only once the session has finished."""
        return self._stats

    @property
    def cursor_index(self) -> int | None:
        return cursor_index(self._passage, self._typed, self._state is SessionState.FINISHED)

    def judgements(self) -> list[CharacterJudgement]:
        return judge(self._passage, self._typed)

    def words(self) -> list[tuple[int, str]]:
        return split_words(self._passage)

    def live_metrics(self) -> LiveMetrics:
        """Elapsed seconds and instantaneous WPM; frozen at the end time once finished."""
        if self._started_at is None:
            return LiveMetrics(elapsed_seconds=0, wpm=0)
        now = self._ended_at if self._ended_at is not None else self._clock()
        return live_metrics(self._started_at, now, len(self._typed))

    def submit_input(self, candidate: str) -> bool:
        """Apply the full current value of the entry field.

        Returns False when the value is rejected: the session is finished, the
        value runs past the end of the passage, or corrections are disabled and
        the value does not extend what was already typed.
        """
        with self._lock:
            if self._state is SessionState.FINISHED:
                logger.debug("Ignoring input after the session finished")
                return False
            if len(candidate) > len(self._passage):
                logger.debug("Rejecting input of %d chars for a %d char passage", len(candidate), len(self._passage))
                return False
            if not self._allow_corrections and not candidate.startswith(self._typed):
                logger.debug("Rejecting input that rewrites typed text")
                return False
            if self._state is SessionState.IDLE:
                if not candidate:
                    return True
                self._start()

            self._typed = candidate
            if len(candidate) < len(self._passage):
                return True
            self._finish()
            stats, history = self._stats, tuple(self._history)

        if self._on_finish is not None:
            self._on_finish(stats, history)
        return True

    def tick(self) -> LiveMetrics | None:
        """Run one sampling step; does nothing unless the session is running."""
        with self._lock:
            if self._state is not SessionState.RUNNING or self._started_at is None:
                return None
            now = self._clock()
            append_point(self._history, take_sample(self._started_at, now, len(self._typed)))
            metrics = live_metrics(self._started_at, now, len(self._typed))

        if self._on_tick is not None:
            self._on_tick(metrics)
        return metrics

    def reset(self) -> bool:
        """Drop back to IDLE keeping the passage. Only a running session resets."""
        with self._lock:
            if self._state is not SessionState.RUNNING:
                return False
            self._stop_timer()
            self._state = SessionState.IDLE
            self._typed = ""
            self._history = []
            self._started_at = None
            logger.info("Session reset to idle")
            return True

    def _start(self) -> None:
        self._started_at = self._clock()
        self._state = SessionState.RUNNING
        if self._timer_factory is not None:
            self._timer = self._timer_factory(self._interval, self.tick)
        logger.info("Session started (%d char passage)", len(self._passage))

    def _finish(self) -> None:
        self._stop_timer()
        self._ended_at = self._clock()
        self._state = SessionState.FINISHED
        self._stats = score(self._passage, self._typed, self._started_at, self._ended_at)
        logger.info(
            "Session finished: %d wpm, %d%% accuracy in %.1fs",
            self._stats.wpm,
            self._stats.accuracy,
            self._stats.time_elapsed,
        )

    def _stop_timer(self) -> None:
        if self._timer is not None:
            self._timer.stop()
            self._timer = None


class Trainer:
    """Holds the one live session and the passage it was built from."""

    def __init__(self) -> None:
        self.passage: str | None = None
        self.config: SessionConfig | None = None
        self.session: TypingSession | None = None
        self._session_kwargs: dict[str, Any] = {}

    def load(self, passage: str, config: SessionConfig) -> None:
        self._discard()
        self.passage = passage
        self.config = config

    def new_session(self, **kwargs: Any) -> TypingSession:
        """Replace the live session with a fresh one for the loaded passage.

        Keyword arguments are passed to ``TypingSession`` and remembered for
        later restarts.
        """
        if self.passage is None:
            raise RuntimeError("no passage loaded")
        self._discard()
        self._session_kwargs = kwargs
        self.session = TypingSession(self.passage, self.config, **kwargs)
        return self.session

    def restart(self) -> TypingSession:
        return self.new_session(**self._session_kwargs)

    def return_to_menu(self) -> None:
        self._discard()
        self.passage = None
        self.config = None
        self._session_kwargs = {}

    def _discard(self) -> None:
        if self.session is not None:
            self.session.reset()
            self.session = None
