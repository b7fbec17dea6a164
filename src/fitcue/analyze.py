"""Analysis run for a single stored video.

A run reads the video once, fetches its transcript, asks the language model
for exercise segments and records exactly one terminal outcome. The whole
run races a deadline; the pipeline itself never writes, so whichever of
{pipeline, deadline} finishes first is the only one that reaches the store.
"""
import asyncio
import sys
import time
from dataclasses import dataclass, field
from typing import Optional

from fitcue import errors, extract, runtime, store as st, transcribe, types as t, youtube

STARTED = "started"
ID_FETCHED = "id_fetched"
TRANSCRIPT_FETCHED = "transcript_fetched"
ANALYZED = "analyzed"
PERSISTED = "persisted"

TIMEOUT_MESSAGE = "Analysis timeout. Video may be too long or transcript unavailable."
UNCONFIGURED_MESSAGE = "Language model API key not configured. Add ANTHROPIC_API_KEY to .env file."


@dataclass(frozen=True)
class Outcome:
    status: str
    segments: list[t.ExerciseSegment] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def failed(cls, error: str) -> 'Outcome':
        return cls(status=t.FAILED, error=error)


@dataclass
class _Run:
    video_id: str
    stage: str = STARTED
    finalized: bool = False
    started_at: float = field(default_factory=time.monotonic)

    def advance(self, stage: str):
        self.stage = stage

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at


class Analyzer:
    def __init__(
        self,
        store: st.VideoStore,
        transcriber: transcribe.Transcriber,
        extractor: extract.ExerciseExtractor,
        deadline: float = runtime.DEFAULT_ANALYSIS_TIMEOUT,
    ):
        self._store = store
        self._transcriber = transcriber
        self._extractor = extractor
        self._deadline = deadline

    @classmethod
    def from_settings(cls, settings: runtime.Settings, store: st.VideoStore) -> 'Analyzer':
        return cls(
            store=store,
            transcriber=transcribe.YouTubeTranscriber(),
            extractor=extract.ExerciseExtractor(
                extract.ClaudeCompleter.from_settings(settings),
                prompt_budget=settings.prompt_budget,
            ),
            deadline=settings.analysis_timeout,
        )

    @property
    def inference_available(self) -> bool:
        return self._extractor.available

    async def analyze(self, video_id: str) -> t.Video:
        """Runs one analysis and returns the video as stored afterwards.

        Raises ``VideoNotFound`` without writing anything when the id is
        unknown. Every other outcome, including the deadline, ends in a
        single store update.
        """
        run = _Run(video_id)
        print(f"[{video_id}] Starting analysis")
        pipeline = asyncio.create_task(self._pipeline(run))
        try:
            outcome = await asyncio.wait_for(pipeline, timeout=self._deadline)
        except asyncio.TimeoutError as exc:
            if pipeline.done() and not pipeline.cancelled():
                # raised by a provider inside the pipeline, not by the deadline
                outcome = Outcome.failed(str(exc) or type(exc).__name__)
            else:
                print(f"[{video_id}] Timed out after {self._deadline:.0f}s during {run.stage}", file=sys.stderr)
                outcome = Outcome.failed(str(errors.AnalysisTimeout(TIMEOUT_MESSAGE)))
        except errors.VideoNotFound:
            raise
        except Exception as exc:
            outcome = Outcome.failed(str(exc) or type(exc).__name__)
        return await self._finalize(run, outcome)

    async def _finalize(self, run: _Run, outcome: Outcome) -> t.Video:
        if run.finalized:
            raise RuntimeError(f"Analysis run for {run.video_id} already recorded its outcome")
        run.finalized = True
        video = await self._store.update(
            run.video_id,
            status=outcome.status,
            segments=list(outcome.segments),
            analysis_error=outcome.error,
        )
        run.advance(PERSISTED)
        if outcome.status == t.FAILED:
            print(f"[{run.video_id}] FAILED: {outcome.error}", file=sys.stderr)
        else:
            print(f"[{run.video_id}] Done in {run.elapsed:.1f}s: {len(outcome.segments)} exercises")
        return video

    async def _pipeline(self, run: _Run) -> Outcome:
        video = await self._store.get(run.video_id)

        platform_id = youtube.extract_video_id(video.url)
        if not platform_id:
            return Outcome.failed(str(errors.InvalidSourceUrl(video.url)))
        run.advance(ID_FETCHED)

        print(f"[{run.video_id}] Fetching transcript...")
        try:
            entries = await asyncio.to_thread(self._transcriber.fetch, platform_id)
        except errors.TranscriptUnavailable as exc:
            return Outcome.failed(str(exc))
        except Exception as exc:
            return Outcome.failed(str(errors.TranscriptUnavailable(platform_id, str(exc) or type(exc).__name__)))
        run.advance(TRANSCRIPT_FETCHED)
        print(f"[{run.video_id}] Got transcript ({len(entries)} entries)")

        text = transcribe.format_transcript(entries)

        if not self._extractor.available:
            print(f"[{run.video_id}] Language model not configured, skipping exercise detection")
            return Outcome(status=t.COMPLETED, error=UNCONFIGURED_MESSAGE)

        print(f"[{run.video_id}] Analyzing with language model...")
        try:
            segments = await asyncio.to_thread(self._extractor.extract, text, video.title)
        except errors.InferenceUnavailable:
            return Outcome(status=t.COMPLETED, error=UNCONFIGURED_MESSAGE)
        except Exception as exc:
            return Outcome.failed(str(exc) or type(exc).__name__)
        run.advance(ANALYZED)

        return Outcome(status=t.COMPLETED, segments=segments)
