from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Protocol

from feed_ranking.config import Settings, settings as default_settings
from feed_ranking.domain.affinity import build_affinity_profile
from feed_ranking.domain.engagement import EngagementScorer, feed_sort_key
from feed_ranking.domain.models import CandidateVideo, ScoredVideo
from feed_ranking.domain.numeric import as_utc, utcnow
from feed_ranking.domain.personalization import PersonalizationScorer
from feed_ranking.domain.trending import TrendingScorer
from feed_ranking.errors import InvalidCursor
from feed_ranking.store.sqlite import Store

log = logging.getLogger(__name__)


class Scorer(Protocol):
    """Anything that scores one candidate at a given instant.

    External relevance services (e.g. a text-model scorer) plug in here.
    """

    name: str

    def score(self, video: CandidateVideo, now: datetime) -> float: ...


@dataclass
class FeedPage:
    items: list[ScoredVideo]
    next_cursor: str | None = None
    scorer: str = ""
    now: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "scorer": self.scorer,
            "now": self.now.isoformat() if self.now else None,
            "next_cursor": self.next_cursor,
            "items": [scored_to_dict(s) for s in self.items],
        }


def scored_to_dict(s: ScoredVideo) -> dict[str, Any]:
    v = s.video
    d: dict[str, Any] = {
        "video_id": v.video_id,
        "user_id": v.user_id,
        "title": v.title,
        "category": v.category,
        "tags": list(v.tags or ()),
        "view_count": v.view_count,
        "like_count": v.like_count,
        "dislike_count": v.dislike_count,
        "comment_count": v.comment_count,
        "created_at": v.created_at.isoformat() if v.created_at else None,
        "score": s.score,
    }
    if s.breakdown is not None:
        b = s.breakdown
        d["explain"] = {
            "category": b.category,
            "tags": b.tags,
            "quality": b.quality,
            "recency": b.recency,
        }
    return d


def score_all(candidates: Iterable[CandidateVideo], scorer: Scorer,
              now: datetime | None = None) -> list[ScoredVideo]:
    """Score a batch against one shared ``now`` and order it for a feed."""
    now = as_utc(now) if now is not None else utcnow()
    explain = getattr(scorer, "explain", None)
    scored: list[ScoredVideo] = []
    for video in candidates:
        if explain is not None:
            b = explain(video, now)
            scored.append(ScoredVideo(video=video, score=b.total, breakdown=b))
        else:
            scored.append(ScoredVideo(video=video, score=float(scorer.score(video, now))))
    scored.sort(key=feed_sort_key)
    if scored:
        log.debug(
            "[feed] scored %d candidates with %s at %s: min=%.2f max=%.2f",
            len(scored), getattr(scorer, "name", type(scorer).__name__), now.isoformat(),
            scored[-1].score, scored[0].score,
        )
    return scored


class FeedBuilder:
    def __init__(self, store: Store | None = None, cfg: Settings | None = None):
        self.store = store or Store()
        self.cfg = cfg or default_settings

    def page_size(self, limit: int | None) -> int:
        n = int(limit or self.cfg.default_page_size)
        return max(1, min(n, self.cfg.max_page_size))

    def paginate(self, scored: list[ScoredVideo], limit: int | None = None,
                 cursor: str | None = None) -> tuple[list[ScoredVideo], str | None]:
        """Slice one page; the cursor is the video_id that starts the next page."""
        n = self.page_size(limit)
        start = 0
        if cursor:
            for i, s in enumerate(scored):
                if s.video.video_id == cursor:
                    start = i
                    break
            else:
                raise InvalidCursor(cursor)
        window = scored[start:start + n + 1]
        next_cursor = None
        if len(window) > n:
            next_cursor = window.pop().video.video_id
        return window, next_cursor

    def _public_feed(self, scorer: Scorer, limit: int | None, cursor: str | None,
                     search: str | None, exclude_user_id: str | None,
                     now: datetime | None) -> FeedPage:
        now = as_utc(now) if now is not None else utcnow()
        candidates = self.store.list_candidates(exclude_user_id=exclude_user_id, search=search)
        items, next_cursor = self.paginate(score_all(candidates, scorer, now), limit, cursor)
        log.info("[feed] %s feed: %d candidates, %d returned", scorer.name, len(candidates), len(items))
        return FeedPage(items=items, next_cursor=next_cursor, scorer=scorer.name, now=now)

    def global_feed(self, limit: int | None = None, cursor: str | None = None,
                    search: str | None = None, exclude_user_id: str | None = None,
                    now: datetime | None = None) -> FeedPage:
        return self._public_feed(EngagementScorer(self.cfg), limit, cursor, search, exclude_user_id, now)

    def trending_feed(self, limit: int | None = None, cursor: str | None = None,
                      exclude_user_id: str | None = None, now: datetime | None = None) -> FeedPage:
        return self._public_feed(TrendingScorer(self.cfg), limit, cursor, None, exclude_user_id, now)

    def personalized_feed(self, user_id: str, limit: int | None = None,
                          cursor: str | None = None, now: datetime | None = None) -> FeedPage:
        now = as_utc(now) if now is not None else utcnow()
        profile = build_affinity_profile(self.store.watch_history_signals(user_id))
        scorer = PersonalizationScorer(profile, self.cfg)
        # A viewer never sees their own uploads in their feed.
        candidates = self.store.list_candidates(exclude_user_id=user_id)
        items, next_cursor = self.paginate(score_all(candidates, scorer, now), limit, cursor)
        log.info(
            "[feed] personalized feed user=%s: watched=%d candidates=%d returned=%d",
            user_id, profile.total_watched, len(candidates), len(items),
        )
        return FeedPage(items=items, next_cursor=next_cursor, scorer=scorer.name, now=now)
