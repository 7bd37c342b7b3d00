from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from feed_ranking.cli import main, rank_file

CANDIDATES = [
    {"video_id": "a", "view_count": 1000, "like_count": 200, "dislike_count": 10,
     "created_at": "2026-02-27T12:00:00+00:00", "category": "Gaming", "tags": ["x", "y"]},
    {"video_id": "b", "view_count": 10, "like_count": None, "dislike_count": 0,
     "created_at": "2025-01-01T00:00:00+00:00", "category": "Music"},
]


@pytest.fixture
def candidates_file(tmp_path):
    path = tmp_path / "candidates.json"
    path.write_text(json.dumps(CANDIDATES), encoding="utf-8")
    return path


def test_rank_engagement(candidates_file, now):
    page = rank_file(str(candidates_file), now=now)
    assert page.scorer == "engagement"
    assert [(s.video.video_id, s.score) for s in page.items] == [("a", 2070), ("b", 10)]


def test_rank_personalized(candidates_file, tmp_path, now):
    profile = tmp_path / "profile.json"
    profile.write_text(json.dumps({"watched_categories": {"Music": 5}, "total_watched": 10}),
                       encoding="utf-8")
    page = rank_file(str(candidates_file), str(profile), now=now)
    assert page.scorer == "personalized"
    # a: quality 9.52 + recency 8.0; b: category 20.0
    assert [(s.video.video_id, s.score) for s in page.items] == [("b", 20.0), ("a", 17.52)]


def test_main_writes_output(candidates_file, tmp_path, capsys):
    out = tmp_path / "ranked.json"
    main(["rank", "--candidates", str(candidates_file), "--now", "2026-03-01T12:00:00+00:00",
          "--out", str(out)])
    data = json.loads(out.read_text(encoding="utf-8"))
    assert [i["video_id"] for i in data["items"]] == ["a", "b"]
    assert data["now"] == "2026-03-01T12:00:00+00:00"
    assert "Wrote" in capsys.readouterr().out


def test_invalid_candidate_file(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps([{"view_count": "lots"}]), encoding="utf-8")
    with pytest.raises(ValidationError):
        rank_file(str(path))


def test_rank_trending(candidates_file, now):
    page = rank_file(str(candidates_file), now=now, scorer_name="trending")
    assert page.scorer == "trending"
    # a: (1000 + 200*3 - 10) * 0.95**2
    assert page.items[0].video.video_id == "a"
    assert page.items[0].score == pytest.approx(1590 * 0.95 ** 2)
