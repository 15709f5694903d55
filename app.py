from __future__ import annotations

import logging

from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, Vertical
from textual.screen import Screen
from textual.widgets import Button, Footer, Header, Input, Select, Sparkline, Static, Switch
from rich.markup import escape
from rich.console import Group
from rich.table import Table

from matcher import CharacterJudgement
from metrics import FinalStats
from passages import TOPICS, generate_passage
from sampler import LiveMetrics, WpmPoint
from session import Difficulty, SessionConfig, SessionState, Trainer, TypingSession
from settings import DATA_DIR, LOG_FILE, LOG_LEVEL, SAMPLE_INTERVAL, is_online


logger = logging.getLogger(__name__)

# lets the last character render before the results replace the passage
FINISH_GRACE_S = 0.05

CORRECT_STYLE = "#4ade80"
INCORRECT_STYLE = "bold #ef4444 on #4f2f2f"
PENDING_STYLE = "#2f6f3f"
CURSOR_STYLE = "black on #4ade80"

STATUS_LABELS = {
    SessionState.IDLE: ">> AWAITING INPUT",
    SessionState.RUNNING: ">> TYPING",
    SessionState.FINISHED: ">> COMPLETE",
}


class MenuScreen(Screen):
    BINDINGS = [("enter", "start", "Start"), ("q", "quit", "Quit")]

    def __init__(self) -> None:
        super().__init__()
        self.loading = False

    def compose(self) -> ComposeResult:
        yield Header()
        with Container(id="menu"):
            yield Static("FLOWTYPE_", id="title")
            yield Static(
                "[ CONNECTION: SECURE ]" if is_online() else "[ CONNECTION: OFFLINE ]",
                id="connection",
                classes="online" if is_online() else "offline",
            )
            yield Static("Topic", classes="label")
            yield Select([(t, t) for t in TOPICS], value=TOPICS[0], allow_blank=False, id="topic")
            yield Static("Difficulty", classes="label")
            yield Select(
                [(d.value.capitalize(), d) for d in Difficulty],
                value=Difficulty.NORMAL,
                allow_blank=False,
                id="difficulty",
            )
            with Horizontal(classes="toggle"):
                yield Switch(value=True, id="punctuation")
                yield Static("Punctuation", classes="label")
            with Horizontal(classes="toggle"):
                yield Switch(value=True, id="capitalization")
                yield Static("Capitalization", classes="label")
            with Horizontal(id="menu-buttons"):
                yield Button("Start [ENTER]", id="start", variant="success")
                yield Button("Quit", id="quit", variant="error")
            yield Static("", id="loading")
        yield Footer()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "start":
            self.action_start()
        elif event.button.id == "quit":
            self.app.exit()

    def action_start(self) -> None:
        if self.loading:
            return
        config = SessionConfig(
            topic=self.query_one("#topic", Select).value,
            difficulty=self.query_one("#difficulty", Select).value,
            include_punctuation=self.query_one("#punctuation", Switch).value,
            allow_capitalization=self.query_one("#capitalization", Switch).value,
        )
        self.loading = True
        self.query_one("#loading", Static).update(">> GENERATING PASSAGE...")
        self._generate(config)

    @work(thread=True, exclusive=True)
    def _generate(self, config: SessionConfig) -> None:
        passage = generate_passage(config)
        self.app.call_from_thread(self._on_passage_ready, passage, config)

    def _on_passage_ready(self, passage: str, config: SessionConfig) -> None:
        self.loading = False
        self.query_one("#loading", Static).update("")
        self.app.trainer.load(passage, config)
        self.app.push_screen(SessionScreen())


class SessionScreen(Screen):
    BINDINGS = [
        Binding("tab", "restart", "Restart", priority=True),
        Binding("escape", "menu", "Menu", priority=True),
    ]

    def __init__(self) -> None:
        super().__init__()
        self.session: TypingSession | None = None
        self._results_timer = None
        self.shown_metrics = LiveMetrics(elapsed_seconds=0, wpm=0)

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="session"):
            with Horizontal(id="metrics"):
                yield Static(">> AWAITING INPUT", id="status")
                yield Static("0s", id="elapsed")
                yield Static("0 wpm", id="wpm")
            yield Static("", id="passage")
            yield Input(placeholder="start typing...", id="typing-input")
        yield Footer()

    def on_mount(self) -> None:
        self.session = self.app.trainer.new_session(
            timer_factory=self.set_interval,
            interval=SAMPLE_INTERVAL,
            on_tick=self._on_tick,
            on_finish=self._on_finish,
            allow_corrections=True,
        )
        self._update_passage()
        self.query_one("#typing-input", Input).focus()

    def on_input_changed(self, event: Input.Changed) -> None:
        if self.session is None:
            return
        accepted = self.session.submit_input(event.value)
        if not accepted and self.session.state is not SessionState.FINISHED and event.value != self.session.typed:
            event.input.value = self.session.typed
        self._update_status()
        self._update_passage()

    def _on_tick(self, metrics: LiveMetrics) -> None:
        self._update_metrics(metrics)

    def _on_finish(self, stats: FinalStats, history: tuple[WpmPoint, ...]) -> None:
        self._update_status()
        self._update_metrics(self.session.live_metrics())
        self.query_one("#typing-input", Input).disabled = True
        self._results_timer = self.set_timer(
            FINISH_GRACE_S, lambda: self.app.switch_screen(ResultsScreen(stats, history))
        )

    def action_restart(self) -> None:
        if self._results_timer is not None:
            self._results_timer.stop()
            self._results_timer = None
        if self.session is not None and self.session.state is SessionState.RUNNING:
            self.session.reset()
        else:
            self.session = self.app.trainer.restart()
        typing_input = self.query_one("#typing-input", Input)
        typing_input.disabled = False
        typing_input.value = ""
        typing_input.focus()
        self._update_status()
        self._update_metrics(self.session.live_metrics())
        self._update_passage()

    def action_menu(self) -> None:
        if self._results_timer is not None:
            self._results_timer.stop()
        self.app.trainer.return_to_menu()
        self.app.pop_screen()

    def _update_status(self) -> None:
        state = self.session.state if self.session is not None else SessionState.IDLE
        self.query_one("#status", Static).update(STATUS_LABELS[state])

    def _update_metrics(self, metrics: LiveMetrics) -> None:
        self.shown_metrics = metrics
        self.query_one("#elapsed", Static).update(f"{metrics.elapsed_seconds}s")
        self.query_one("#wpm", Static).update(f"{metrics.wpm} wpm")

    def _update_passage(self) -> None:
        session = self.session
        if session is None:
            return
        judgements = session.judgements()
        cursor = session.cursor_index
        rendered = []
        for start, word in session.words():
            for offset, ch in enumerate(word):
                i = start + offset
                if i == cursor:
                    style = CURSOR_STYLE
                elif judgements[i] is CharacterJudgement.CORRECT:
                    style = CORRECT_STYLE
                elif judgements[i] is CharacterJudgement.INCORRECT:
                    style = INCORRECT_STYLE
                else:
                    style = PENDING_STYLE
                rendered.append(f"[{style}]{escape(ch)}[/]")
        self.query_one("#passage", Static).update("".join(rendered))


class ResultsScreen(Screen):
    BINDINGS = [
        Binding("tab", "restart", "Restart", priority=True),
        Binding("escape", "menu", "Menu", priority=True),
    ]

    def __init__(self, stats: FinalStats, history: tuple[WpmPoint, ...]) -> None:
        super().__init__()
        self.stats = stats
        self.history = history

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="results"):
            yield Static(">> SESSION REPORT", id="results-title")
            with Horizontal(id="headline"):
                yield Static(f"{self.stats.wpm}\nWPM", classes="headline")
                yield Static(f"{self.stats.accuracy}%\nACCURACY", classes="headline")
                yield Static(f"{self.stats.raw_wpm}\nRAW", classes="headline")
                yield Static(f"{round(self.stats.time_elapsed)}s\nDURATION", classes="headline")
            yield Static(
                f"Correct: {self.stats.correct_chars}  Incorrect: {self.stats.incorrect_chars}  "
                f"Missed: {self.stats.missed_chars}  Extra: {self.stats.extra_chars}",
                id="chars",
            )
            yield Sparkline([p.wpm for p in self.history] or [0], summary_function=max, id="wpm-chart")
            yield Static("", id="series")
            with Horizontal(id="results-buttons"):
                yield Button("Restart [TAB]", id="restart", variant="success")
                yield Button("Menu [ESC]", id="menu")
        yield Footer()

    def on_mount(self) -> None:
        table = Table(show_header=True, box=None, show_edge=False, pad_edge=False)
        table.add_column("Second", justify="right", width=8, no_wrap=True)
        table.add_column("WPM", justify="right", width=6, no_wrap=True)
        table.add_column("Raw", justify="right", width=6, no_wrap=True)
        for point in self.history:
            table.add_row(str(point.time), str(point.wpm), str(point.raw))
        summary = f"Peak WPM: {max((p.wpm for p in self.history), default=0)}\n"
        self.query_one("#series", Static).update(Group(summary, table))

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "restart":
            self.action_restart()
        elif event.button.id == "menu":
            self.action_menu()

    def action_restart(self) -> None:
        self.app.switch_screen(SessionScreen())

    def action_menu(self) -> None:
        self.app.trainer.return_to_menu()
        self.app.pop_screen()


class FlowTypeApp(App):
    CSS = """
    #menu, #session, #results {
        padding: 1 2;
    }

    #title {
        text-style: bold;
        color: #4ade80;
        margin-bottom: 1;
    }

    .online {
        color: $success;
    }

    .offline {
        color: $error;
    }

    .label {
        color: $text-muted;
        margin-top: 1;
    }

    .toggle {
        height: auto;
    }

    #menu-buttons, #results-buttons {
        height: auto;
        margin-top: 1;
    }

    #metrics, #headline {
        height: auto;
        margin: 1 0;
    }

    #status {
        width: 1fr;
        color: $text-muted;
    }

    #elapsed, #wpm {
        width: 12;
        text-align: right;
        text-style: bold;
    }

    #passage {
        height: 12;
        border: solid $primary;
        padding: 1;
        overflow: auto;
    }

    #typing-input {
        margin-top: 1;
    }

    .headline {
        width: 1fr;
        content-align: center middle;
        text-style: bold;
        border: solid $secondary;
    }

    #wpm-chart {
        height: 5;
        margin: 1 0;
    }

    #results-title {
        text-style: bold;
        margin-bottom: 1;
    }
    """

    TITLE = "FlowType"

    def __init__(self) -> None:
        super().__init__()
        self.trainer = Trainer()

    def on_mount(self) -> None:
        self.push_screen(MenuScreen())


def configure_logging() -> None:
    # the terminal belongs to textual, so log to a file
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.FileHandler(LOG_FILE, encoding="utf-8")],
    )


def main() -> None:
    configure_logging()
    logger.info("FlowType starting (online=%s)", is_online())
    FlowTypeApp().run()


if __name__ == "__main__":
    main()
