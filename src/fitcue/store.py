import asyncio
import json
import os
import tempfile
import uuid
from dataclasses import replace
from pathlib import Path
from typing import Protocol

from fitcue import errors, types as t

UPDATABLE_FIELDS = frozenset({"status", "segments", "analysis_error"})


def _new_id() -> str:
    return uuid.uuid4().hex


def _check_fields(fields: dict):
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")
    if "status" in fields and fields["status"] not in t.STATUSES:
        raise ValueError(f"Unknown status: {fields['status']}")


class VideoStore(Protocol):
    async def get(self, video_id: str) -> t.Video: ...
    async def update(self, video_id: str, **fields) -> t.Video: ...
    async def create(self, url: str, title: str, thumbnail: str = "", duration_seconds: float = 0.0) -> t.Video: ...
    async def list_videos(self) -> list[t.Video]: ...


class MemoryStore:
    def __init__(self, videos: list[t.Video] | None = None):
        self._videos: dict[str, t.Video] = {v.video_id: v for v in videos or []}

    async def get(self, video_id: str) -> t.Video:
        video = self._videos.get(video_id)
        if video is None:
            raise errors.VideoNotFound(video_id)
        return replace(video, segments=list(video.segments))

    async def update(self, video_id: str, **fields) -> t.Video:
        _check_fields(fields)
        if video_id not in self._videos:
            raise errors.VideoNotFound(video_id)
        self._videos[video_id] = replace(self._videos[video_id], **fields)
        return await self.get(video_id)

    async def create(self, url: str, title: str, thumbnail: str = "", duration_seconds: float = 0.0) -> t.Video:
        video = t.Video(video_id=_new_id(), url=url, title=title,
                        thumbnail=thumbnail, duration_seconds=duration_seconds)
        self._videos[video.video_id] = video
        return await self.get(video.video_id)

    async def list_videos(self) -> list[t.Video]:
        return [await self.get(vid) for vid in self._videos]


class JsonStore:
    """One ``<video_id>.json`` document per video under ``directory``.

    Writes go through a temp file and ``os.replace`` so a reader never sees
    a half-written document. Updates to one id are serialized by a per-id
    lock; different ids never contend.
    """

    def __init__(self, directory: Path):
        self._dir = directory
        self._dir.mkdir(parents=True, exist_ok=True)
        self._locks: dict[str, asyncio.Lock] = {}

    def _path(self, video_id: str) -> Path:
        if not video_id or "/" in video_id or "\\" in video_id or video_id.startswith("."):
            raise errors.VideoNotFound(video_id)
        return self._dir / f"{video_id}.json"

    def _lock(self, video_id: str) -> asyncio.Lock:
        if video_id not in self._locks:
            self._locks[video_id] = asyncio.Lock()
        return self._locks[video_id]

    def _load(self, video_id: str) -> t.Video:
        p = self._path(video_id)
        if not p.exists():
            raise errors.VideoNotFound(video_id)
        return t.Video.from_json(json.loads(p.read_text()))

    def _save(self, video: t.Video):
        fd, tmp = tempfile.mkstemp(dir=self._dir, prefix=f".{video.video_id}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(video.to_json(), f, indent=2)
            os.replace(tmp, self._path(video.video_id))
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    async def get(self, video_id: str) -> t.Video:
        return await asyncio.to_thread(self._load, video_id)

    async def update(self, video_id: str, **fields) -> t.Video:
        _check_fields(fields)
        async with self._lock(video_id):
            video = await asyncio.to_thread(self._load, video_id)
            video = replace(video, **fields)
            await asyncio.to_thread(self._save, video)
            return video

    async def create(self, url: str, title: str, thumbnail: str = "", duration_seconds: float = 0.0) -> t.Video:
        video = t.Video(video_id=_new_id(), url=url, title=title,
                        thumbnail=thumbnail, duration_seconds=duration_seconds)
        await asyncio.to_thread(self._save, video)
        return video

    async def list_videos(self) -> list[t.Video]:
        paths = sorted(self._dir.glob("*.json"))
        videos = [await self.get(p.stem) for p in paths]
        return sorted(videos, key=lambda v: v.created_at, reverse=True)
