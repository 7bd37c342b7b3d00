from __future__ import annotations


class FeedError(Exception):
    """Base class for errors raised at the feed/store boundary."""


class VideoNotFound(FeedError):
    def __init__(self, video_id: str):
        super().__init__(f"video not found: {video_id}")
        self.video_id = video_id


class InvalidCursor(FeedError):
    def __init__(self, cursor: str):
        super().__init__(f"cursor does not match any feed item: {cursor}")
        self.cursor = cursor
