from typing import Iterable, Protocol, runtime_checkable

from fitcue import errors, types as t, youtube


@runtime_checkable
class Transcriber(Protocol):
    def fetch(self, video_id: str) -> list[t.TranscriptEntry]: ...


class YouTubeTranscriber:
    def __init__(self, downloader: youtube.Downloader | None = None):
        self._downloader = downloader or youtube.RealDownloader()

    def fetch(self, video_id: str) -> list[t.TranscriptEntry]:
        try:
            entries = self._downloader.captions(video_id)
        except Exception as exc:
            raise errors.TranscriptUnavailable(video_id, str(exc) or type(exc).__name__) from exc
        if not entries:
            raise errors.TranscriptUnavailable(video_id, "No transcript available for this video")
        return list(entries)


def format_line(entry: t.TranscriptEntry) -> str:
    return f"[{entry.offset.s}s] {entry.text}"


def format_transcript(entries: Iterable[t.TranscriptEntry]) -> str:
    """One ``[<seconds>s] <text>`` line per entry, in input order.

    Seconds are floored from the millisecond offset. Nothing is truncated
    here; the prompt builder applies its own character budget.
    """
    return "\n".join(format_line(e) for e in entries)
