import threading
import time

import pytest

from fitcue import analyze, extract, store as st, types as t

WATCH_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"

TRANSCRIPT = [
    t.TranscriptEntry(offset_millis=0, text="welcome to today's workout"),
    t.TranscriptEntry(offset_millis=45_500, text="let's start with push-ups"),
    t.TranscriptEntry(offset_millis=120_999, text="now drop into squats"),
]

TWO_EXERCISES = """Here is the analysis:
[
  {"exerciseName": "Push-ups", "timestamp": 45, "targetMuscles": ["Chest", "Triceps"]},
  {"exerciseName": "Squats", "timestamp": 120, "targetMuscles": ["Quadriceps", "Glutes"]}
]"""


class FakeTranscriber:
    def __init__(self, entries=None, error: Exception | None = None):
        self.entries = TRANSCRIPT if entries is None else entries
        self.error = error
        self.calls: list[str] = []

    def fetch(self, video_id: str) -> list[t.TranscriptEntry]:
        self.calls.append(video_id)
        if self.error:
            raise self.error
        return list(self.entries)


class FakeCompleter:
    def __init__(self, reply: str = TWO_EXERCISES, available: bool = True,
                 delay: float = 0.0, error: Exception | None = None):
        self.reply = reply
        self._available = available
        self.delay = delay
        self.error = error
        self.prompts: list[str] = []
        self.finished = threading.Event()

    @property
    def available(self) -> bool:
        return self._available

    def complete(self, prompt: str, temperature: float, max_tokens: int) -> str:
        self.prompts.append(prompt)
        if self.delay:
            time.sleep(self.delay)
        self.finished.set()
        if self.error:
            raise self.error
        return self.reply


def make_video(video_id="vid1", url=WATCH_URL, title="Full Body Burner") -> t.Video:
    return t.Video(video_id=video_id, url=url, title=title)


def make_analyzer(store, transcriber=None, completer=None, deadline=5.0) -> analyze.Analyzer:
    return analyze.Analyzer(
        store=store,
        transcriber=transcriber or FakeTranscriber(),
        extractor=extract.ExerciseExtractor(completer or FakeCompleter()),
        deadline=deadline,
    )


class CountingStore(st.MemoryStore):
    def __init__(self, videos=None):
        super().__init__(videos)
        self.updates: list[tuple[str, dict]] = []

    async def update(self, video_id: str, **fields) -> t.Video:
        self.updates.append((video_id, fields))
        return await super().update(video_id, **fields)


@pytest.fixture
def store():
    return CountingStore([make_video()])
