from __future__ import annotations

import argparse
import json
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from feed_ranking.domain.engagement import EngagementScorer
from feed_ranking.domain.models import CandidateVideo, UserAffinityProfile
from feed_ranking.domain.numeric import as_utc, utcnow
from feed_ranking.domain.personalization import PersonalizationScorer
from feed_ranking.domain.trending import TrendingScorer
from feed_ranking.engine.feed_builder import FeedPage, score_all
from feed_ranking.logging_config import configure_logging


class CandidateIn(BaseModel):
    video_id: str = ""
    view_count: Optional[int] = 0
    like_count: Optional[int] = 0
    dislike_count: Optional[int] = 0
    comment_count: Optional[int] = 0
    created_at: Optional[datetime] = None
    category: Optional[str] = None
    tags: Optional[list[str]] = None
    user_id: Optional[str] = None
    title: Optional[str] = None

    def to_candidate(self) -> CandidateVideo:
        data = self.model_dump()
        data["tags"] = tuple(self.tags) if self.tags is not None else None
        return CandidateVideo(**data)


class ProfileIn(BaseModel):
    watched_categories: dict[str, int] = {}
    watched_tags: dict[str, int] = {}
    total_watched: int = 0

    def to_profile(self) -> UserAffinityProfile:
        return UserAffinityProfile(**self.model_dump())


def rank_file(candidates_path: str, profile_path: str | None = None,
              now: datetime | None = None, scorer_name: str = "engagement") -> FeedPage:
    with open(candidates_path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    candidates = [CandidateIn.model_validate(c).to_candidate() for c in raw]

    if profile_path:
        with open(profile_path, "r", encoding="utf-8") as f:
            profile = ProfileIn.model_validate(json.load(f)).to_profile()
        scorer = PersonalizationScorer(profile)
    elif scorer_name == "trending":
        scorer = TrendingScorer()
    else:
        scorer = EngagementScorer()

    now = as_utc(now) if now is not None else utcnow()
    scored = score_all(candidates, scorer, now)
    return FeedPage(items=scored, scorer=scorer.name, now=now)


def main(argv: list[str] | None = None):
    p = argparse.ArgumentParser(prog="feed-ranking")
    p.add_argument("--log-level", default=None)
    sub = p.add_subparsers(dest="cmd", required=True)

    rank = sub.add_parser("rank", help="Score and order candidate videos")
    rank.add_argument("--candidates", required=True, help="JSON list of candidate videos")
    rank.add_argument("--profile", default=None, help="JSON user affinity profile (personalized ranking)")
    rank.add_argument("--scorer", choices=["engagement", "trending"], default="engagement",
                      help="Global scorer when no profile is given")
    rank.add_argument("--now", default=None, help="ISO-8601 scoring instant (default: current time)")
    rank.add_argument("--out", default="ranked.json")

    args = p.parse_args(argv)
    configure_logging(args.log_level)

    if args.cmd == "rank":
        now = datetime.fromisoformat(args.now) if args.now else None
        page = rank_file(args.candidates, args.profile, now, args.scorer)
        with open(args.out, "w", encoding="utf-8") as f:
            json.dump(page.to_dict(), f, indent=2)
        print(f"Wrote {args.out} ({len(page.items)} videos, scorer={page.scorer})")


if __name__ == "__main__":
    main()
