from __future__ import annotations

import math
from datetime import timedelta

import pytest

from feed_ranking.config import Settings
from feed_ranking.domain.engagement import (
    EngagementScorer, engagement_score, feed_sort_key, recency_boost,
)
from feed_ranking.domain.models import ScoredVideo


def test_reference_scenario(make_video, now):
    v = make_video(age=timedelta(days=2), view_count=1000, like_count=200, dislike_count=10)
    assert engagement_score(v, now) == 2070


@pytest.mark.parametrize("age, boost", [
    (timedelta(0), 100),
    (timedelta(days=6, hours=23), 100),
    (timedelta(days=7), 50),
    (timedelta(days=7, seconds=1), 50),
    (timedelta(days=29, hours=23), 50),
    (timedelta(days=30), 0),
    (timedelta(days=365), 0),
])
def test_recency_boost_steps(now, age, boost):
    assert recency_boost(now - age, now) == boost


def test_recency_boost_missing_or_future_timestamp(now):
    assert recency_boost(None, now) == 0
    assert recency_boost(now + timedelta(days=1), now) == 100


def test_missing_and_negative_counters_coalesce_to_zero(make_video, now):
    v = make_video(view_count=None, like_count=-4, dislike_count=None)
    assert engagement_score(v, now) == 0


def test_score_can_go_negative_when_dislikes_dominate(make_video, now):
    v = make_video(view_count=2, like_count=0, dislike_count=10)
    assert engagement_score(v, now) == -28


def test_score_is_finite_and_idempotent(make_video, now):
    v = make_video(age=timedelta(days=1), view_count=10**12, like_count=10**11, dislike_count=float("nan"))
    first = engagement_score(v, now)
    assert math.isfinite(first)
    assert engagement_score(v, now) == first


def test_score_changes_with_scoring_instant(make_video, now):
    v = make_video(age=timedelta(days=6), view_count=10)
    assert engagement_score(v, now) == 110
    assert engagement_score(v, now + timedelta(days=2)) == 60


def test_custom_weights(make_video, now):
    cfg = Settings(w_view=0.5, w_like=2, w_dislike=1, fresh_boost=10, recent_boost=5)
    v = make_video(age=timedelta(days=10), view_count=10, like_count=3, dislike_count=1)
    assert EngagementScorer(cfg).score(v, now) == 15.0


def test_ties_break_newest_first(make_video):
    older = ScoredVideo(make_video(video_id="old", age=timedelta(days=3)), score=50.0)
    newer = ScoredVideo(make_video(video_id="new", age=timedelta(days=1)), score=50.0)
    undated = ScoredVideo(make_video(video_id="none", age=None), score=50.0)
    top = ScoredVideo(make_video(video_id="top", age=timedelta(days=9)), score=51.0)
    ordered = sorted([undated, older, newer, top], key=feed_sort_key)
    assert [s.video.video_id for s in ordered] == ["top", "new", "old", "none"]


@pytest.mark.parametrize("counters", [
    {"view_count": 10**400},
    {"like_count": 10**308},
    {"dislike_count": 10**400},
    {"view_count": 10**308, "like_count": 10**308, "dislike_count": 10**308},
])
def test_huge_counters_stay_finite(make_video, now, counters):
    score = engagement_score(make_video(age=timedelta(days=1), **counters), now)
    assert math.isfinite(score)


def test_huge_counters_keep_their_sign(make_video, now):
    assert engagement_score(make_video(like_count=10**400), now) > 0
    assert engagement_score(make_video(dislike_count=10**400), now) < 0
