import argparse
import asyncio
import json
import sys
from dataclasses import replace
from pathlib import Path

import dotenv
dotenv.load_dotenv()


def _print_video(video):
    print(json.dumps(video.to_json(), indent=2))


def main():
    parser = argparse.ArgumentParser(prog="fitcue")
    parser.add_argument("--data-dir", type=Path, default=None, help="Directory holding the video documents")
    sub = parser.add_subparsers(dest="command")

    p_add = sub.add_parser("add", help="Save a video and analyze it")
    p_add.add_argument("url", type=str)
    p_add.add_argument("--title", type=str, default=None)
    p_add.add_argument("--no-analyze", action="store_true", help="Only save the video")

    p_analyze = sub.add_parser("analyze", help="Run exercise detection on saved videos")
    p_analyze.add_argument("video_ids", nargs="*")
    p_analyze.add_argument("--pending", action="store_true", help="Analyze every video still pending")
    p_analyze.add_argument("--concurrency", type=int, default=4)

    p_show = sub.add_parser("show")
    p_show.add_argument("video_id", type=str)

    sub.add_parser("list")

    p_transcript = sub.add_parser("transcript", help="Print the timestamped transcript of a YouTube video")
    p_transcript.add_argument("url", type=str)

    p_serve = sub.add_parser("serve")
    p_serve.add_argument("--host", default="0.0.0.0")
    p_serve.add_argument("--port", type=int, default=8000)

    args = parser.parse_args()

    from fitcue import analyze, errors, runtime, store as st, trigger as tr, youtube

    settings = runtime.Settings.from_env()
    if args.data_dir:
        settings = replace(settings, data_dir=args.data_dir)
    runtime.require(settings)

    def _store() -> st.JsonStore:
        return st.JsonStore(runtime.data_dir(settings))

    if args.command == "add":
        platform_id = youtube.extract_video_id(args.url)
        if not platform_id:
            print(f"Invalid YouTube URL: {args.url}", file=sys.stderr)
            sys.exit(1)
        title = args.title
        thumbnail = youtube.thumbnail_url(platform_id)
        duration = 0.0
        if not title:
            meta = youtube.RealDownloader.metadata(platform_id)
            title, thumbnail, duration = meta.title, meta.thumbnail, float(meta.length.s)
        store = _store()

        async def _add():
            video = await store.create(args.url, title, thumbnail=thumbnail, duration_seconds=duration)
            print(f"[{video.video_id}] Saved {title!r}")
            if not args.no_analyze:
                video = await analyze.Analyzer.from_settings(settings, store).analyze(video.video_id)
            return video

        _print_video(asyncio.run(_add()))

    elif args.command == "analyze":
        if not settings.inference_available:
            print("Warning: ANTHROPIC_API_KEY not set, exercise detection will be skipped", file=sys.stderr)
        store = _store()

        async def _analyze():
            ids = list(args.video_ids)
            if args.pending:
                ids += [v.video_id for v in await store.list_videos() if v.status == "pending"]
            if not ids:
                print("No videos to analyze.")
                sys.exit(1)
            trigger = tr.JobTrigger(analyze.Analyzer.from_settings(settings, store))
            return await trigger.run_many(ids, concurrency=args.concurrency)

        results = asyncio.run(_analyze())
        failed = [r for r in results if r is None or r.status == "failed"]
        print(f"\nAnalysis complete: {len(results) - len(failed)}/{len(results)} succeeded")
        if failed:
            sys.exit(1)

    elif args.command == "show":
        try:
            video = asyncio.run(_store().get(args.video_id))
        except errors.VideoNotFound as exc:
            print(exc, file=sys.stderr)
            sys.exit(1)
        _print_video(video)

    elif args.command == "list":
        for v in asyncio.run(_store().list_videos()):
            print(f"{v.video_id}  {v.status:<9}  {len(v.segments):>2} exercises  {v.title}")

    elif args.command == "transcript":
        from fitcue import transcribe
        platform_id = youtube.extract_video_id(args.url)
        if not platform_id:
            print(f"Invalid YouTube URL: {args.url}", file=sys.stderr)
            sys.exit(1)
        try:
            entries = transcribe.YouTubeTranscriber().fetch(platform_id)
        except errors.TranscriptUnavailable as exc:
            print(exc, file=sys.stderr)
            sys.exit(1)
        print(transcribe.format_transcript(entries))

    elif args.command == "serve":
        import uvicorn
        from fitcue import server
        store = _store()
        app = server.create_app(store, analyze.Analyzer.from_settings(settings, store))
        uvicorn.run(app, host=args.host, port=args.port)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
