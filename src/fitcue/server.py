import asyncio
from typing import Optional

from fastapi import BackgroundTasks, FastAPI, HTTPException
from pydantic import BaseModel

from fitcue import analyze, errors, store as st, trigger as tr, types as t, youtube


class SegmentResult(BaseModel):
    timestamp: int
    exerciseName: str
    targetMuscles: list[str] = []


class VideoResult(BaseModel):
    id: str
    url: str
    title: str
    status: str
    segments: list[SegmentResult]
    analysisError: Optional[str] = None
    thumbnail: str = ""
    duration: float = 0.0
    createdAt: str


class VideosResponse(BaseModel):
    videos: list[VideoResult]


class CreateVideoRequest(BaseModel):
    url: str
    title: Optional[str] = None


class AnalyzeResponse(BaseModel):
    id: str
    status: str
    queued: bool


class HealthResponse(BaseModel):
    status: str
    inference_available: bool


def _to_result(video: t.Video) -> VideoResult:
    return VideoResult(**video.to_json())


def create_app(
    store: st.VideoStore,
    analyzer: analyze.Analyzer,
    downloader: youtube.Downloader | None = None,
) -> FastAPI:
    app = FastAPI(title="fitcue workout video analysis")
    trigger = tr.JobTrigger(analyzer)
    _downloader = downloader or youtube.RealDownloader()
    app.state.trigger = trigger

    async def _get_or_404(video_id: str) -> t.Video:
        try:
            return await store.get(video_id)
        except errors.VideoNotFound:
            raise HTTPException(status_code=404, detail="Video not found")

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(status="ok", inference_available=analyzer.inference_available)

    @app.get("/videos", response_model=VideosResponse)
    async def list_videos():
        return VideosResponse(videos=[_to_result(v) for v in await store.list_videos()])

    @app.get("/videos/{video_id}", response_model=VideoResult)
    async def get_video(video_id: str):
        return _to_result(await _get_or_404(video_id))

    @app.post("/videos", response_model=VideoResult, status_code=201)
    async def create_video(req: CreateVideoRequest, background_tasks: BackgroundTasks):
        url = req.url.strip()
        platform_id = youtube.extract_video_id(url)
        if not platform_id:
            raise HTTPException(status_code=400, detail="Invalid YouTube URL")
        if any(v.url == url for v in await store.list_videos()):
            raise HTTPException(status_code=409, detail="Video already exists")

        title = (req.title or "").strip()
        thumbnail = youtube.thumbnail_url(platform_id)
        duration = 0.0
        if not title:
            try:
                meta = await asyncio.to_thread(_downloader.metadata, platform_id)
            except Exception as exc:
                raise HTTPException(status_code=502, detail=f"Could not fetch video metadata: {exc}")
            title = meta.title
            thumbnail = meta.thumbnail or thumbnail
            duration = float(meta.length.s)

        video = await store.create(url, title, thumbnail=thumbnail, duration_seconds=duration)
        background_tasks.add_task(trigger.run, video.video_id)
        return _to_result(video)

    @app.post("/videos/{video_id}/analyze", response_model=AnalyzeResponse, status_code=202)
    async def reanalyze(video_id: str, background_tasks: BackgroundTasks):
        await _get_or_404(video_id)
        if trigger.in_flight(video_id):
            return AnalyzeResponse(id=video_id, status=t.PENDING, queued=False)
        await store.update(video_id, status=t.PENDING, segments=[], analysis_error=None)
        background_tasks.add_task(trigger.run, video_id)
        return AnalyzeResponse(id=video_id, status=t.PENDING, queued=True)

    return app
