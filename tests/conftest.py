from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from feed_ranking.domain.models import CandidateVideo
from feed_ranking.store.sqlite import Store

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_video(now):
    """Factory for candidates; ``age`` is a timedelta back from ``now``."""

    def _make(age: timedelta | None = timedelta(days=100), **kwargs) -> CandidateVideo:
        if "created_at" not in kwargs:
            kwargs["created_at"] = now - age if age is not None else None
        if "tags" in kwargs and kwargs["tags"] is not None:
            kwargs["tags"] = tuple(kwargs["tags"])
        return CandidateVideo(**kwargs)

    return _make


@pytest.fixture
def store(tmp_path) -> Store:
    return Store(db_path=str(tmp_path / "feed.sqlite3"))
