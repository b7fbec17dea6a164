from dataclasses import dataclass
import re
from typing import Iterator, Optional, Protocol
from urllib import parse as urlparse

import httpx
import webvtt
import yt_dlp

from fitcue import types as t, util

_VIDEO_ID = re.compile(r'^[A-Za-z0-9_-]{11}$')
_PATH_PREFIXES = ('embed', 'v', 'e', 'shorts', 'live')


def _valid(candidate: Optional[str]) -> Optional[str]:
    if candidate and _VIDEO_ID.match(candidate):
        return candidate
    return None


def extract_video_id(url: str) -> Optional[str]:
    try:
        url = url.strip()
        parsed = urlparse.urlparse(url)
        # pasted links often drop the scheme, which leaves the host in the path
        if not parsed.scheme and not url.startswith('//'):
            parsed = urlparse.urlparse(f'https://{url}')
    except (AttributeError, ValueError):
        return None
    host = (parsed.hostname or '').lower()
    if host.startswith('www.') or host.startswith('m.'):
        host = host.split('.', 1)[1]

    if host == 'youtu.be':
        return _valid(parsed.path.lstrip('/').split('/')[0])

    if host not in ('youtube.com', 'music.youtube.com', 'youtube-nocookie.com'):
        return None

    params = urlparse.parse_qs(parsed.query)
    if 'v' in params:
        return _valid(params['v'][0])

    pieces = [p for p in parsed.path.split('/') if p]
    if len(pieces) >= 2 and pieces[0] in _PATH_PREFIXES:
        return _valid(pieces[1])
    return None


def video_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?{urlparse.urlencode({'v': video_id})}"


def thumbnail_url(video_id: str) -> str:
    return f"https://img.youtube.com/vi/{video_id}/hqdefault.jpg"


@dataclass(frozen=True)
class Metadata:
    title: str
    author: Optional[str]
    length: util.Time
    thumbnail: str


class Downloader(Protocol):
    def metadata(self, video_id: str) -> Metadata: ...
    def captions(self, video_id: str) -> Optional[list[t.TranscriptEntry]]: ...


class RealDownloader:

    @classmethod
    def metadata(cls, video_id: str) -> Metadata:
        info = cls._fetch_info(video_id)

        length_pieces = list(reversed((info.get('duration_string') or '0').split(':')))
        length = util.Time.zero()
        if 0 < len(length_pieces): length += util.Time.seconds(int(length_pieces[0]))
        if 1 < len(length_pieces): length += util.Time.minutes(int(length_pieces[1]))
        if 2 < len(length_pieces): length += util.Time.hours(  int(length_pieces[2]))

        return Metadata(
            title=info['title'],
            author=info.get('channel'),
            length=length,
            thumbnail=info.get('thumbnail') or thumbnail_url(video_id),
        )

    @classmethod
    def captions(cls, video_id: str) -> Optional[list[t.TranscriptEntry]]:
        info = cls._fetch_info(video_id)

        def get_subtitles_vtt_url():
            subs = info.get('subtitles', {}).get('en', [])
            match = util.find(lambda s: s.get('ext') == 'vtt', subs)
            return (match or {}).get('url')

        def get_captions_vtt_url():
            captions = info.get('automatic_captions', {}).get('en', [])
            match = util.find(lambda s: s.get('ext') == 'vtt' and 'url' in s, captions)
            if match:
                return match['url']
            match = util.find(lambda s: s.get('protocol') == 'm3u8_native' and 'url' in s, captions)
            m3u8_url = (match or {}).get('url')
            if not m3u8_url:
                return None

            m3u8 = httpx.get(m3u8_url).text
            return util.find(lambda l: l.startswith('https://www.youtube.com/api/'), m3u8.splitlines())

        vtt_url = get_subtitles_vtt_url() or get_captions_vtt_url()
        if not vtt_url:
            return None

        resp = httpx.get(vtt_url)
        resp.raise_for_status()
        vtt = webvtt.from_string(resp.text)

        return list(cls._caption_entries(vtt))

    @classmethod
    def _caption_entries(cls, vtt: webvtt.WebVTT) -> Iterator[t.TranscriptEntry]:
        previous = None
        for caption in vtt:
            text = ' '.join(line.strip() for line in caption.text.splitlines() if line.strip())
            # auto captions repeat the previous cue while the next one scrolls in
            if not text or text == previous:
                continue
            previous = text
            yield t.TranscriptEntry(
                offset_millis=cls._parse_vtt_time(caption.start).ms,
                text=text,
            )

    @classmethod
    def _parse_vtt_time(cls, ts: str) -> util.Time:
        dot_pieces = ts.split('.')
        time = util.Time.zero() if len(dot_pieces) == 1 else util.Time.millis(int(dot_pieces[1]))

        colon_pieces = list(reversed(dot_pieces[0].split(':')))
        if 0 < len(colon_pieces): time += util.Time.seconds(int(colon_pieces[0]))
        if 1 < len(colon_pieces): time += util.Time.minutes(int(colon_pieces[1]))
        if 2 < len(colon_pieces): time += util.Time.hours(  int(colon_pieces[2]))

        return time

    @classmethod
    def _fetch_info(cls, video_id: str) -> util.Json:
        with yt_dlp.YoutubeDL({'quiet': True, 'skip_download': True}) as ydl:
            return ydl.extract_info(video_url(video_id), download=False)
