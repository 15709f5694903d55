from __future__ import annotations

import logging
import random
import re
import time

import requests

from session import Difficulty, SessionConfig
from settings import API_KEY, MODEL


logger = logging.getLogger(__name__)

GENERATE_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

FALLBACK_TEXT = (
    "The quick brown fox jumps over the lazy dog. Programming is the art of telling "
    "another human what one wants the computer to do. Simplicity is the soul of efficiency."
)

TOPICS = ["Technology", "Nature", "Space", "History", "Philosophy", "Cyberpunk"]

MIN_CHARS = 20

STYLE_INSTRUCTIONS = {
    Difficulty.EASY: "Use simple, short, high-frequency words. Avoid complex sentences. Grade level: 3.",
    Difficulty.NORMAL: "Use standard, conversational English. Clear and articulate.",
    Difficulty.HARD: (
        "Use sophisticated, academic, and complex vocabulary. Use longer words and "
        "varied sentence structures. Grade level: College."
    ),
}

SAFETY_CATEGORIES = [
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
]

_FENCE_OPEN = re.compile(r"^```(typescript|javascript|ts|js|text)?\n?", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\n?```$")
_PUNCTUATION = re.compile(r"[.,;:'\"?!()\[\]{}—\-]")


def build_prompt(config: SessionConfig) -> str:
    topic = config.topic or "technology"
    style = STYLE_INSTRUCTIONS.get(config.difficulty, STYLE_INSTRUCTIONS[Difficulty.NORMAL])
    punctuation_note = (
        "" if config.include_punctuation else "Write loosely connected phrases that don't rely heavily on punctuation."
    )
    seed = f"{time.time()}{random.random()}"
    return (
        f"Write a coherent, interesting paragraph about {topic}.\n"
        f"Style Instructions: {style} {punctuation_note}\n"
        "Length: 40-50 words.\n"
        'Format: Return ONLY the raw plain text. No Markdown. No Title. No "Here is the text".\n'
        f"RandomSeed: {seed}"
    )


def _clean_text(text: str, config: SessionConfig) -> str:
    text = _FENCE_OPEN.sub("", text.strip())
    text = _FENCE_CLOSE.sub("", text)
    text = re.sub(r"\s+", " ", text).strip()
    if not config.allow_capitalization:
        text = text.lower()
    if not config.include_punctuation:
        text = _PUNCTUATION.sub("", text)
        text = re.sub(r"\s+", " ", text).strip()
    return text


def _is_ascii(text: str) -> bool:
    try:
        text.encode("ascii")
        return True
    except UnicodeEncodeError:
        return False


def _extract_text(data: object) -> str:
    """Join the text parts of the first candidate; "" for any unexpected shape."""
    if not isinstance(data, dict):
        return ""
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        return ""
    content = candidates[0].get("content")
    if not isinstance(content, dict):
        return ""
    parts = content.get("parts")
    if not isinstance(parts, list):
        return ""
    return "".join(part["text"] for part in parts if isinstance(part, dict) and isinstance(part.get("text"), str))


def generate_passage(config: SessionConfig, api_key: str | None = API_KEY, tries: int = 3) -> str:
    """Ask the model for a 40-50 word passage shaped by ``config``.

    Falls back to ``FALLBACK_TEXT`` when no key is configured or every
    attempt fails, so callers always get something typeable.
    """
    if not api_key:
        logger.warning("No API key configured, using the fallback passage")
        return FALLBACK_TEXT

    url = GENERATE_URL.format(model=MODEL)
    for attempt in range(1, tries + 1):
        payload = {
            "contents": [{"parts": [{"text": build_prompt(config)}]}],
            "generationConfig": {"temperature": 0.9},
            "safetySettings": [{"category": c, "threshold": "BLOCK_NONE"} for c in SAFETY_CATEGORIES],
        }
        try:
            response = requests.post(
                url,
                json=payload,
                timeout=20,
                headers={
                    "x-goog-api-key": api_key,
                    "User-Agent": "flowtype/0.1 (python requests)",
                    "Accept": "application/json",
                },
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Passage generation attempt %d failed: %s", attempt, exc)
            continue

        text = _clean_text(_extract_text(data), config)
        if len(text) > MIN_CHARS and _is_ascii(text):
            return text
        logger.warning("Passage generation attempt %d yielded unusable text: %r", attempt, text)

    logger.error("All %d passage generation attempts failed, using the fallback passage", tries)
    return FALLBACK_TEXT
