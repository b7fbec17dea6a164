import math
from dataclasses import dataclass, field
from typing import Optional

from fitcue import util

PENDING = "pending"
COMPLETED = "completed"
FAILED = "failed"
STATUSES = (PENDING, COMPLETED, FAILED)


@dataclass(frozen=True)
class TranscriptEntry:
    offset_millis: int
    text: str

    @property
    def offset(self) -> util.Time:
        return util.Time.millis(self.offset_millis)


def _whole_seconds(value):
    """Floors numeric timestamps such as ``45.5`` or ``"45"`` to whole seconds.

    Anything else is returned unchanged for validation to reject.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise ValueError(f"timestamp must be a number of seconds, got {value!r}")
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"timestamp must be finite, got {value!r}")
        return math.floor(value)
    return value


@dataclass
class ExerciseSegment:
    timestamp: int
    exercise_name: str
    target_muscles: list[str] = field(default_factory=list)

    def __post_init__(self):
        if isinstance(self.timestamp, bool) or not isinstance(self.timestamp, int) or self.timestamp < 0:
            raise ValueError(f"timestamp must be a non-negative integer, got {self.timestamp!r}")
        if not isinstance(self.exercise_name, str) or not self.exercise_name.strip():
            raise ValueError("exerciseName must be a non-empty string")
        if not all(isinstance(m, str) for m in self.target_muscles):
            raise ValueError("targetMuscles must be a list of strings")

    def to_json(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "exerciseName": self.exercise_name,
            "targetMuscles": list(self.target_muscles),
        }

    @classmethod
    def from_json(cls, data: util.Json) -> 'ExerciseSegment':
        muscles = data.get("targetMuscles") or []
        if not isinstance(muscles, list):
            raise ValueError("targetMuscles must be a list of strings")
        return cls(
            timestamp=_whole_seconds(data["timestamp"]),
            exercise_name=data["exerciseName"],
            target_muscles=muscles,
        )


@dataclass
class Video:
    video_id: str
    url: str
    title: str
    status: str = PENDING
    segments: list[ExerciseSegment] = field(default_factory=list)
    analysis_error: Optional[str] = None
    thumbnail: str = ""
    duration_seconds: float = 0.0
    created_at: str = field(default_factory=util.now_iso)

    def to_json(self) -> dict:
        return {
            "id": self.video_id,
            "url": self.url,
            "title": self.title,
            "status": self.status,
            "segments": [s.to_json() for s in self.segments],
            "analysisError": self.analysis_error,
            "thumbnail": self.thumbnail,
            "duration": self.duration_seconds,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_json(cls, data: util.Json) -> 'Video':
        return cls(
            video_id=data["id"],
            url=data["url"],
            title=data["title"],
            status=data.get("status", PENDING),
            segments=[ExerciseSegment.from_json(s) for s in data.get("segments", [])],
            analysis_error=data.get("analysisError"),
            thumbnail=data.get("thumbnail", ""),
            duration_seconds=data.get("duration", 0.0),
            created_at=data.get("createdAt") or util.now_iso(),
        )
