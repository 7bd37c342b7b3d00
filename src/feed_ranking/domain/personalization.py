from __future__ import annotations

import math
from datetime import datetime

from feed_ranking.config import Settings, settings as default_settings
from feed_ranking.domain.models import (
    CandidateVideo, PersonalizationBreakdown, UserAffinityProfile,
)
from feed_ranking.domain.numeric import (
    age_hours, clamp, coalesce_count, linear_decay, round_half_up, safe_ratio,
)


def _denominator(profile: UserAffinityProfile) -> float:
    # Floor of 1 only guards the division; it does not mean "one watch".
    return max(1, coalesce_count(profile.total_watched))


def category_affinity(video: CandidateVideo, profile: UserAffinityProfile,
                      cfg: Settings | None = None) -> float:
    cfg = cfg or default_settings
    if not video.category:
        return 0.0
    watched = coalesce_count(profile.watched_categories.get(video.category))
    if not watched:
        return 0.0
    return clamp(watched / _denominator(profile) * cfg.category_cap, 0.0, cfg.category_cap)


def tag_affinity(video: CandidateVideo, profile: UserAffinityProfile,
                 cfg: Settings | None = None) -> float:
    cfg = cfg or default_settings
    if not video.tags:
        return 0.0
    denom = _denominator(profile)
    total = 0.0
    for tag in set(video.tags):
        total += coalesce_count(profile.watched_tags.get(tag)) / denom
    return clamp(total * cfg.tag_cap, 0.0, cfg.tag_cap)


def engagement_quality(video: CandidateVideo, cfg: Settings | None = None) -> float:
    """Like share of all votes, scaled to the quality cap; 0 with no votes."""
    cfg = cfg or default_settings
    likes = coalesce_count(video.like_count)
    dislikes = coalesce_count(video.dislike_count)
    if math.isinf(likes + dislikes):
        likes, dislikes = likes / 2, dislikes / 2
    return safe_ratio(likes, likes + dislikes) * cfg.quality_cap


def recency_bonus(created_at: datetime | None, now: datetime,
                  cfg: Settings | None = None) -> float:
    """Linear decay from the recency cap to 0 over the recency window."""
    cfg = cfg or default_settings
    hours = age_hours(created_at, now)
    if hours is None:
        return 0.0
    rate = cfg.recency_cap / cfg.recency_window_days  # points per day
    return linear_decay(hours / 24, cfg.recency_cap, rate)


def personalization_breakdown(video: CandidateVideo, profile: UserAffinityProfile,
                              now: datetime,
                              cfg: Settings | None = None) -> PersonalizationBreakdown:
    cfg = cfg or default_settings
    category = category_affinity(video, profile, cfg)
    tags = tag_affinity(video, profile, cfg)
    quality = engagement_quality(video, cfg)
    recency = recency_bonus(video.created_at, now, cfg)
    total = round_half_up(category + tags + quality + recency, cfg.score_places)
    return PersonalizationBreakdown(
        category=category, tags=tags, quality=quality, recency=recency, total=total,
    )


def personalization_score(video: CandidateVideo, profile: UserAffinityProfile,
                          now: datetime, cfg: Settings | None = None) -> float:
    return personalization_breakdown(video, profile, now, cfg).total


class PersonalizationScorer:
    name = "personalized"

    def __init__(self, profile: UserAffinityProfile, cfg: Settings | None = None):
        self.profile = profile
        self.cfg = cfg or default_settings

    def score(self, video: CandidateVideo, now: datetime) -> float:
        return personalization_score(video, self.profile, now, self.cfg)

    def explain(self, video: CandidateVideo, now: datetime) -> PersonalizationBreakdown:
        return personalization_breakdown(video, self.profile, now, self.cfg)
