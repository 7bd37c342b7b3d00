from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping, Optional


@dataclass(frozen=True)
class CandidateVideo:
    video_id: str = ""
    view_count: int | None = 0
    like_count: int | None = 0
    dislike_count: int | None = 0
    comment_count: int | None = 0
    created_at: Optional[datetime] = None
    category: str | None = None
    tags: tuple[str, ...] | None = None
    # Owner and title ride along for the feed layer; scorers ignore them.
    user_id: str | None = None
    title: str | None = None


@dataclass(frozen=True)
class UserAffinityProfile:
    watched_categories: Mapping[str, int] = field(default_factory=dict)
    watched_tags: Mapping[str, int] = field(default_factory=dict)
    total_watched: int = 0


@dataclass(frozen=True)
class PersonalizationBreakdown:
    category: float
    tags: float
    quality: float
    recency: float
    total: float


@dataclass
class ScoredVideo:
    video: CandidateVideo
    score: float
    breakdown: PersonalizationBreakdown | None = None
