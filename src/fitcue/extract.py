import json
import re
from typing import Optional, Protocol

from fitcue import errors, runtime, types as t

TEMPERATURE = 0.3
MAX_TOKENS = 1000
TRUNCATION_MARKER = "...(truncated)"

SYSTEM_PROMPT = "You are a fitness expert who analyzes workout videos."

PROMPT = """You are analyzing a workout video transcript to identify exercises.

Video Title: {title}

Transcript (with timestamps):
{transcript} {truncated}

Extract all exercises mentioned in this workout video. For each exercise:
1. Exercise name (standardized, e.g., "Push-ups", "Squats", "Bench Press")
2. Timestamp in seconds when the exercise starts
3. Target muscle groups (e.g., ["Chest", "Triceps"])

Return ONLY a JSON array in this exact format:
[
  {{
    "exerciseName": "Push-ups",
    "timestamp": 45,
    "targetMuscles": ["Chest", "Triceps", "Shoulders"]
  }}
]

If no exercises are found, return an empty array: []"""

_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")


def extract_json_array(raw: str) -> Optional[str]:
    match = _JSON_ARRAY.search(raw or "")
    return match.group(0) if match else None


def build_prompt(transcript: str, title: str, budget: int = runtime.DEFAULT_PROMPT_BUDGET) -> str:
    return PROMPT.format(
        title=title,
        transcript=transcript[:budget],
        truncated=TRUNCATION_MARKER if len(transcript) > budget else "",
    )


def parse_segments(raw: str) -> list[t.ExerciseSegment]:
    """Turns a free-form model reply into exercise segments.

    A reply without any ``[...]`` yields no segments. A bracketed span that
    is not a JSON array of well-formed segment objects raises
    ``ExtractionParseError``. Output is ordered by timestamp.
    """
    array_text = extract_json_array(raw)
    if array_text is None:
        return []
    try:
        items = json.loads(array_text)
    except json.JSONDecodeError as exc:
        raise errors.ExtractionParseError(f"Malformed JSON in model response: {exc}") from exc
    if not isinstance(items, list):
        raise errors.ExtractionParseError("Model response is not a JSON array")
    try:
        segments = [t.ExerciseSegment.from_json(item) for item in items]
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise errors.ExtractionParseError(f"Invalid exercise entry in model response: {exc}") from exc
    return sorted(segments, key=lambda s: s.timestamp)


class Completer(Protocol):
    @property
    def available(self) -> bool: ...

    def complete(self, prompt: str, temperature: float, max_tokens: int) -> str: ...


class ClaudeCompleter:
    def __init__(self, api_key: str | None = None, model: str = runtime.DEFAULT_MODEL):
        self._api_key = api_key
        self._model = model
        self._client = None

    @property
    def available(self) -> bool:
        return bool(self._api_key)

    def _get_client(self):
        if self._client is None:
            import anthropic
            self._client = anthropic.Anthropic(api_key=self._api_key)
        return self._client

    def complete(self, prompt: str, temperature: float, max_tokens: int) -> str:
        if not self.available:
            raise errors.InferenceUnavailable("Language model API key not configured")
        resp = self._get_client().messages.create(
            model=self._model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": prompt}],
        )
        return "".join(block.text for block in resp.content if getattr(block, "type", "") == "text").strip()

    @classmethod
    def from_settings(cls, settings: runtime.Settings) -> 'ClaudeCompleter':
        return cls(api_key=settings.anthropic_api_key, model=settings.model)


class ExerciseExtractor:
    def __init__(self, completer: Completer, prompt_budget: int = runtime.DEFAULT_PROMPT_BUDGET):
        self._completer = completer
        self._budget = prompt_budget

    @property
    def available(self) -> bool:
        return self._completer.available

    def extract(self, transcript: str, title: str) -> list[t.ExerciseSegment]:
        if not self.available:
            raise errors.InferenceUnavailable("Language model API key not configured")
        prompt = build_prompt(transcript, title, self._budget)
        raw = self._completer.complete(prompt, temperature=TEMPERATURE, max_tokens=MAX_TOKENS)
        return parse_segments(raw)
