"""Errors raised by the analysis pipeline.

Lower layers raise these; only the analyzer turns them into a stored
``status``/``analysisError`` pair.
"""


class AnalysisError(Exception):
    pass


class VideoNotFound(AnalysisError):
    def __init__(self, video_id: str):
        super().__init__(f"Video not found: {video_id}")
        self.video_id = video_id


class InvalidSourceUrl(AnalysisError):
    def __init__(self, url: str):
        super().__init__("Invalid YouTube URL")
        self.url = url


class TranscriptUnavailable(AnalysisError):
    def __init__(self, video_id: str, reason: str):
        super().__init__(f"Failed to fetch transcript: {reason}")
        self.video_id = video_id
        self.reason = reason


class InferenceUnavailable(AnalysisError):
    pass


class ExtractionParseError(AnalysisError):
    pass


class AnalysisTimeout(AnalysisError):
    pass
