from __future__ import annotations

from typing import Any

import pytest
import requests

import passages
from passages import FALLBACK_TEXT, build_prompt, generate_passage
from session import Difficulty, SessionConfig

GOOD_TEXT = "Satellites drift quietly above the clouds, mapping storms and relaying signals across oceans."


class FakeResponse:
    def __init__(self, data: Any = None, status_code: int = 200, bad_json: bool = False) -> None:
        self.data = data
        self.status_code = status_code
        self.bad_json = bad_json

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self) -> Any:
        if self.bad_json:
            raise ValueError("not json")
        return self.data


def model_reply(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest.fixture
def replies(monkeypatch):
    """Queue of responses (or exceptions) handed out by a stubbed requests.post."""
    queue: list[Any] = []
    calls: list[dict] = []

    def fake_post(url, **kwargs):
        calls.append({"url": url, **kwargs})
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    monkeypatch.setattr(passages.requests, "post", fake_post)
    return queue, calls


def test_no_api_key_uses_fallback(replies) -> None:
    _, calls = replies
    assert generate_passage(SessionConfig(), api_key=None) == FALLBACK_TEXT
    assert calls == []


def test_returns_cleaned_model_text(replies) -> None:
    queue, calls = replies
    queue.append(FakeResponse(model_reply(f"```text\n  {GOOD_TEXT}\n\n```")))
    assert generate_passage(SessionConfig(), api_key="k") == GOOD_TEXT
    assert len(calls) == 1
    assert calls[0]["headers"]["x-goog-api-key"] == "k"
    assert calls[0]["json"]["generationConfig"]["temperature"] == 0.9
    assert all(s["threshold"] == "BLOCK_NONE" for s in calls[0]["json"]["safetySettings"])


def test_joins_multiple_parts(replies) -> None:
    queue, _ = replies
    queue.append(FakeResponse({"candidates": [{"content": {"parts": [{"text": "Rivers carve "}, {"text": "the valley floor."}]}}]}))
    assert generate_passage(SessionConfig(), api_key="k") == "Rivers carve the valley floor."


def test_lowercases_without_capitalization(replies) -> None:
    queue, _ = replies
    queue.append(FakeResponse(model_reply("Hello World From The Quiet Orbit Station")))
    text = generate_passage(SessionConfig(allow_capitalization=False), api_key="k")
    assert text == "hello world from the quiet orbit station"


def test_strips_punctuation_when_disabled(replies) -> None:
    queue, _ = replies
    queue.append(FakeResponse(model_reply("Hello, world! It's a (very) bright - day; isn't it?")))
    text = generate_passage(SessionConfig(include_punctuation=False), api_key="k")
    assert text == "Hello world Its a very bright day isnt it"


def test_retries_short_text_then_succeeds(replies) -> None:
    queue, calls = replies
    queue.extend([FakeResponse(model_reply("too short")), FakeResponse(model_reply(GOOD_TEXT))])
    assert generate_passage(SessionConfig(), api_key="k") == GOOD_TEXT
    assert len(calls) == 2


def test_retries_after_request_errors(replies) -> None:
    queue, calls = replies
    queue.extend(
        [
            requests.ConnectionError("offline"),
            FakeResponse(status_code=503),
            FakeResponse(model_reply(GOOD_TEXT)),
        ]
    )
    assert generate_passage(SessionConfig(), api_key="k", tries=3) == GOOD_TEXT
    assert len(calls) == 3


def test_falls_back_after_all_attempts_fail(replies) -> None:
    queue, calls = replies
    queue.extend([FakeResponse(bad_json=True), FakeResponse({"candidates": []}), FakeResponse(model_reply(""))])
    assert generate_passage(SessionConfig(), api_key="k", tries=3) == FALLBACK_TEXT
    assert len(calls) == 3


def test_rejects_non_ascii_text(replies) -> None:
    queue, _ = replies
    queue.extend([FakeResponse(model_reply("Café culture thrives in the narrow streets of old towns.")), FakeResponse(model_reply(GOOD_TEXT))])
    assert generate_passage(SessionConfig(), api_key="k", tries=2) == GOOD_TEXT


def test_prompt_reflects_config() -> None:
    prompt = build_prompt(SessionConfig(topic="Space", difficulty=Difficulty.EASY, include_punctuation=False))
    assert "about Space" in prompt
    assert "Grade level: 3" in prompt
    assert "don't rely heavily on punctuation" in prompt
    assert "40-50 words" in prompt


def test_prompt_accepts_plain_difficulty_string() -> None:
    prompt = build_prompt(SessionConfig(difficulty="hard"))
    assert "Grade level: College" in prompt


@pytest.mark.parametrize(
    "data",
    [
        {"candidates": ["oops"]},
        {"candidates": [{"content": {"parts": ["oops"]}}]},
        {"candidates": [{"content": "oops"}]},
        {"candidates": [{"content": {"parts": [{"text": 42}]}}]},
        {"candidates": {"content": {}}},
        ["not", "a", "dict"],
        {"content": []},
    ],
)
def test_malformed_replies_fall_back(replies, data) -> None:
    queue, calls = replies
    queue.extend([FakeResponse(data) for _ in range(3)])
    assert generate_passage(SessionConfig(), api_key="k", tries=3) == FALLBACK_TEXT
    assert len(calls) == 3


def test_malformed_reply_then_good_reply(replies) -> None:
    queue, _ = replies
    queue.extend([FakeResponse({"candidates": ["oops"]}), FakeResponse(model_reply(GOOD_TEXT))])
    assert generate_passage(SessionConfig(), api_key="k", tries=2) == GOOD_TEXT


def test_unknown_difficulty_uses_normal_style(replies) -> None:
    queue, _ = replies
    queue.append(FakeResponse(model_reply(GOOD_TEXT)))
    prompt = build_prompt(SessionConfig(difficulty="extreme"))
    assert "conversational English" in prompt
    assert generate_passage(SessionConfig(difficulty="extreme"), api_key="k") == GOOD_TEXT
