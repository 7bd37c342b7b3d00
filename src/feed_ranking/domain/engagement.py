from __future__ import annotations

from datetime import datetime, timedelta

from feed_ranking.config import Settings, settings as default_settings
from feed_ranking.domain.models import CandidateVideo, ScoredVideo
from feed_ranking.domain.numeric import age, as_utc, coalesce_count, saturate, step_boost


def recency_boost(created_at: datetime | None, now: datetime,
                  cfg: Settings | None = None) -> float:
    # Step function, not a decay: new uploads get visibility regardless of counts.
    cfg = cfg or default_settings
    elapsed = age(created_at, now)
    if elapsed is None:
        return 0
    return step_boost(
        elapsed,
        [
            (timedelta(days=cfg.fresh_days), cfg.fresh_boost),
            (timedelta(days=cfg.recent_days), cfg.recent_boost),
        ],
        default=0,
    )


def engagement_score(video: CandidateVideo, now: datetime,
                     cfg: Settings | None = None) -> float:
    """Global feed score: weighted counters plus a recency step boost.

    The result can be negative when dislikes dominate; only the ordering is
    meaningful, not the scale.
    """
    cfg = cfg or default_settings
    positive = saturate(
        coalesce_count(video.view_count) * cfg.w_view
        + coalesce_count(video.like_count) * cfg.w_like
    )
    negative = saturate(coalesce_count(video.dislike_count) * cfg.w_dislike)
    return saturate(positive - negative + recency_boost(video.created_at, now, cfg))


def feed_sort_key(scored: ScoredVideo) -> tuple[float, int, float]:
    # Score desc, then created_at desc; unknown created_at goes last among ties.
    created_at = scored.video.created_at
    if created_at is None:
        return (-scored.score, 1, 0.0)
    return (-scored.score, 0, -as_utc(created_at).timestamp())


class EngagementScorer:
    name = "engagement"

    def __init__(self, cfg: Settings | None = None):
        self.cfg = cfg or default_settings

    def score(self, video: CandidateVideo, now: datetime) -> float:
        return engagement_score(video, now, self.cfg)
