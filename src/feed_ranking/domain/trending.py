from __future__ import annotations

from datetime import datetime

from feed_ranking.config import Settings, settings as default_settings
from feed_ranking.domain.models import CandidateVideo
from feed_ranking.domain.numeric import age_hours, coalesce_count, exponential_decay, saturate


def trending_decay(created_at: datetime | None, now: datetime,
                   cfg: Settings | None = None) -> float:
    """Multiplier losing ``trending_decay`` per ``trending_period_hours`` of age.

    Unknown age gives 0: a video cannot trend without a known upload time.
    """
    cfg = cfg or default_settings
    hours = age_hours(created_at, now)
    if hours is None:
        return 0.0
    return exponential_decay(hours, cfg.trending_decay, cfg.trending_period_hours)


def trending_score(video: CandidateVideo, now: datetime,
                   cfg: Settings | None = None) -> float:
    """Weighted engagement, comments included, decayed continuously with age."""
    cfg = cfg or default_settings
    positive = saturate(
        coalesce_count(video.view_count) * cfg.tr_w_view
        + coalesce_count(video.like_count) * cfg.tr_w_like
        + coalesce_count(video.comment_count) * cfg.tr_w_comment
    )
    negative = saturate(coalesce_count(video.dislike_count) * cfg.tr_w_dislike)
    return saturate((positive - negative) * trending_decay(video.created_at, now, cfg))


class TrendingScorer:
    name = "trending"

    def __init__(self, cfg: Settings | None = None):
        self.cfg = cfg or default_settings

    def score(self, video: CandidateVideo, now: datetime) -> float:
        return trending_score(video, now, self.cfg)
