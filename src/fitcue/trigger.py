import asyncio
import sys
from typing import Iterable, Optional

from fitcue import analyze, errors, types as t

DEFAULT_CONCURRENCY = 4


class JobTrigger:
    """Starts analysis runs and keeps at most one in flight per video id."""

    def __init__(self, analyzer: analyze.Analyzer):
        self._analyzer = analyzer
        self._in_flight: set[str] = set()
        self._tasks: set[asyncio.Task] = set()

    def in_flight(self, video_id: str) -> bool:
        return video_id in self._in_flight

    def _claim(self, video_id: str) -> bool:
        if video_id in self._in_flight:
            print(f"[{video_id}] Analysis already running, ignoring trigger")
            return False
        self._in_flight.add(video_id)
        return True

    def submit(self, video_id: str) -> Optional[asyncio.Task]:
        if not self._claim(video_id):
            return None
        task = asyncio.get_running_loop().create_task(self._run(video_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def run(self, video_id: str) -> Optional[t.Video]:
        if not self._claim(video_id):
            return None
        return await self._run(video_id)

    async def run_many(self, video_ids: Iterable[str], concurrency: int = DEFAULT_CONCURRENCY) -> list[Optional[t.Video]]:
        sem = asyncio.Semaphore(concurrency)

        async def one(video_id: str) -> Optional[t.Video]:
            async with sem:
                return await self.run(video_id)

        return await asyncio.gather(*(one(vid) for vid in video_ids))

    async def wait(self):
        if self._tasks:
            await asyncio.gather(*self._tasks)

    async def _run(self, video_id: str) -> Optional[t.Video]:
        try:
            return await self._analyzer.analyze(video_id)
        except errors.VideoNotFound as exc:
            print(f"[{video_id}] {exc}", file=sys.stderr)
            return None
        finally:
            self._in_flight.discard(video_id)
