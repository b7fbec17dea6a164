import json
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from fitcue import errors, extract, types as t
from conftest import FakeCompleter, TWO_EXERCISES


@pytest.mark.parametrize("raw, expected", [
    ("[]", "[]"),
    ('[{"a": 1}]', '[{"a": 1}]'),
    ('```json\n[{"a": 1}]\n```', '[{"a": 1}]'),
    ('Sure! [1, 2]\nand [3]. Done.', "[1, 2]\nand [3]"),
    ("no exercises detected", None),
    ("", None),
    ("only an opening [ bracket", None),
])
def test_extract_json_array(raw, expected):
    assert extract.extract_json_array(raw) == expected


def test_build_prompt_short_transcript():
    prompt = extract.build_prompt("[0s] hello", "Leg Day")
    assert "Video Title: Leg Day" in prompt
    assert "[0s] hello" in prompt
    assert extract.TRUNCATION_MARKER not in prompt
    assert '"exerciseName": "Push-ups"' in prompt
    assert "return an empty array: []" in prompt


def test_build_prompt_truncates_to_budget():
    transcript = "a" * 2999 + "bc"
    prompt = extract.build_prompt(transcript, "Leg Day")
    assert "a" * 2999 + "b " + extract.TRUNCATION_MARKER in prompt
    assert "a" * 2999 + "bc" not in prompt


def test_build_prompt_exact_budget_not_marked():
    prompt = extract.build_prompt("a" * 3000, "Leg Day", budget=3000)
    assert extract.TRUNCATION_MARKER not in prompt


def test_build_prompt_custom_budget():
    prompt = extract.build_prompt("abcdef", "t", budget=3)
    assert "abc " + extract.TRUNCATION_MARKER in prompt


def test_parse_segments():
    segments = extract.parse_segments(TWO_EXERCISES)
    assert segments == [
        t.ExerciseSegment(timestamp=45, exercise_name="Push-ups", target_muscles=["Chest", "Triceps"]),
        t.ExerciseSegment(timestamp=120, exercise_name="Squats", target_muscles=["Quadriceps", "Glutes"]),
    ]


def test_parse_segments_sorted_by_timestamp():
    raw = '[{"exerciseName": "Lunges", "timestamp": 90}, {"exerciseName": "Plank", "timestamp": 10}]'
    segments = extract.parse_segments(raw)
    assert [s.exercise_name for s in segments] == ["Plank", "Lunges"]
    assert segments[0].target_muscles == []


def test_parse_segments_no_array_is_empty():
    assert extract.parse_segments("I could not find any exercises.") == []


@pytest.mark.parametrize("raw", [
    '[{"exerciseName": "Push-ups", "timestamp": 45,}]',
    '[{"exerciseName": "Push-ups"}]',
    '[{"exerciseName": "", "timestamp": 3}]',
    '[{"exerciseName": "Squats", "timestamp": -1}]',
    '[{"exerciseName": "Squats", "timestamp": "1:30"}]',
    '[{"exerciseName": "Squats", "timestamp": "soon"}]',
    '[{"exerciseName": "Squats", "timestamp": "NaN"}]',
    '[{"exerciseName": "Squats", "timestamp": -2.5}]',
    '[{"exerciseName": "Squats", "timestamp": true}]',
    '[{"exerciseName": "Squats", "timestamp": null}]',
    '[{"exerciseName": "Squats", "timestamp": 4, "targetMuscles": "Legs"}]',
    '["Push-ups", "Squats"]',
])
def test_parse_segments_malformed(raw):
    with pytest.raises(errors.ExtractionParseError):
        extract.parse_segments(raw)


@pytest.mark.parametrize("timestamp", ["45", " 45 ", "45.9", 45.5, 45.0])
def test_parse_segments_floors_numeric_timestamps(timestamp):
    raw = json.dumps([{"exerciseName": "Push-ups", "timestamp": timestamp, "targetMuscles": ["Chest"]}])
    [segment] = extract.parse_segments(raw)
    assert segment.timestamp == 45
    assert type(segment.timestamp) is int


def test_extractor_calls_completer_with_fixed_parameters():
    completer = MagicMock()
    completer.available = True
    completer.complete.return_value = "[]"
    result = extract.ExerciseExtractor(completer).extract("[0s] hi", "Yoga Flow")
    assert result == []
    prompt = completer.complete.call_args.args[0]
    assert "Video Title: Yoga Flow" in prompt
    assert completer.complete.call_args.kwargs == {"temperature": 0.3, "max_tokens": 1000}


def test_extractor_unavailable():
    completer = FakeCompleter(available=False)
    extractor = extract.ExerciseExtractor(completer)
    assert not extractor.available
    with pytest.raises(errors.InferenceUnavailable):
        extractor.extract("[0s] hi", "Yoga Flow")
    assert completer.prompts == []


def test_extractor_uses_prompt_budget():
    completer = FakeCompleter(reply="[]")
    extract.ExerciseExtractor(completer, prompt_budget=5).extract("0123456789", "t")
    assert "01234 " + extract.TRUNCATION_MARKER in completer.prompts[0]


def test_claude_completer_availability():
    assert not extract.ClaudeCompleter(api_key=None).available
    assert extract.ClaudeCompleter(api_key="sk-test").available


def test_claude_completer_unavailable_raises():
    with pytest.raises(errors.InferenceUnavailable):
        extract.ClaudeCompleter(api_key=None).complete("p", temperature=0.3, max_tokens=10)


@patch("anthropic.Anthropic")
def test_claude_completer_sends_request(mock_cls):
    client = mock_cls.return_value
    client.messages.create.return_value = SimpleNamespace(
        content=[SimpleNamespace(type="text", text="  [] \n")],
    )
    completer = extract.ClaudeCompleter(api_key="sk-test", model="claude-test")
    assert completer.complete("prompt", temperature=0.3, max_tokens=1000) == "[]"

    mock_cls.assert_called_once_with(api_key="sk-test")
    kwargs = client.messages.create.call_args.kwargs
    assert kwargs["model"] == "claude-test"
    assert kwargs["temperature"] == 0.3
    assert kwargs["max_tokens"] == 1000
    assert kwargs["system"] == extract.SYSTEM_PROMPT
    assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]
