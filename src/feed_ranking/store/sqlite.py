from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from feed_ranking.config import settings
from feed_ranking.domain.models import CandidateVideo
from feed_ranking.errors import VideoNotFound

log = logging.getLogger(__name__)


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def _iso(ts: datetime | str | None) -> str:
    if ts is None:
        return utcnow()
    if isinstance(ts, str):
        # fromisoformat only accepts a trailing "Z" from Python 3.11 on.
        text = ts.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        ts = datetime.fromisoformat(text)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat()


def row_to_candidate(row: sqlite3.Row | dict[str, Any]) -> CandidateVideo:
    d = dict(row)
    created_at = d.get("created_at")
    return CandidateVideo(
        video_id=d["video_id"],
        view_count=d.get("view_count"),
        like_count=d.get("like_count"),
        dislike_count=d.get("dislike_count"),
        comment_count=d.get("comment_count"),
        created_at=datetime.fromisoformat(created_at) if created_at else None,
        category=d.get("category"),
        tags=tuple(json.loads(d.get("tags_json") or "[]")),
        user_id=d.get("user_id"),
        title=d.get("title"),
    )


class Store:
    def __init__(self, db_path: str | None = None):
        self.db_path = db_path or settings.db_path
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        conn = self._connect()
        try:
            schema_path = Path(__file__).with_name("schema.sql")
            conn.executescript(schema_path.read_text(encoding="utf-8"))
            conn.commit()
        finally:
            conn.close()

    # --- videos ---
    def upsert_video(self, video_id: str, user_id: str, title: str | None = None,
                     description: str | None = None, category: str | None = None,
                     tags: Iterable[str] | None = None, created_at: datetime | str | None = None,
                     visibility: str = "public", approved: bool = True) -> None:
        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT INTO videos(video_id, user_id, title, description, category, tags_json,
                                   visibility, approved, created_at)
                VALUES(?,?,?,?,?,?,?,?,?)
                ON CONFLICT(video_id) DO UPDATE SET
                  title=COALESCE(excluded.title, videos.title),
                  description=COALESCE(excluded.description, videos.description),
                  category=COALESCE(excluded.category, videos.category),
                  tags_json=CASE WHEN excluded.tags_json != '[]' THEN excluded.tags_json ELSE videos.tags_json END,
                  visibility=excluded.visibility,
                  approved=excluded.approved
                """,
                (video_id, user_id, title, description, category, json.dumps(list(tags or [])),
                 visibility, int(approved), _iso(created_at)),
            )
            conn.commit()
        finally:
            conn.close()

    def get_video(self, video_id: str) -> dict[str, Any] | None:
        conn = self._connect()
        try:
            row = conn.execute("SELECT * FROM videos WHERE video_id=?", (video_id,)).fetchone()
            if not row:
                return None
            d = dict(row)
            d["tags"] = json.loads(d.get("tags_json") or "[]")
            return d
        finally:
            conn.close()

    def _require_video(self, conn: sqlite3.Connection, video_id: str) -> None:
        row = conn.execute("SELECT 1 FROM videos WHERE video_id=?", (video_id,)).fetchone()
        if not row:
            raise VideoNotFound(video_id)

    def list_candidates(self, exclude_user_id: str | None = None, search: str | None = None,
                        limit: int | None = None) -> list[CandidateVideo]:
        """Public, approved videos eligible for a feed."""
        q = "SELECT * FROM videos WHERE visibility='public' AND approved=1"
        params: list[Any] = []
        if exclude_user_id:
            q += " AND user_id != ?"
            params.append(exclude_user_id)
        if search and search.strip():
            term = f"%{search.strip().lower()}%"
            q += " AND (LOWER(COALESCE(title,'')) LIKE ? OR LOWER(COALESCE(description,'')) LIKE ?)"
            params.extend([term, term])
        q += " ORDER BY created_at DESC"
        if limit is not None:
            q += " LIMIT ?"
            params.append(int(limit))
        conn = self._connect()
        try:
            rows = conn.execute(q, params).fetchall()
            return [row_to_candidate(r) for r in rows]
        finally:
            conn.close()

    # --- views ---
    def record_view(self, video_id: str, user_id: str) -> bool:
        """Count a view once per user per video. Returns True when counted."""
        conn = self._connect()
        try:
            self._require_video(conn, video_id)
            cur = conn.execute(
                "INSERT OR IGNORE INTO watch_history(video_id, user_id, last_position, watched_at) VALUES(?,?,0,?)",
                (video_id, user_id, utcnow()),
            )
            counted = cur.rowcount == 1
            if counted:
                conn.execute("UPDATE videos SET view_count = view_count + 1 WHERE video_id=?", (video_id,))
            conn.commit()
            return counted
        finally:
            conn.close()

    # --- reactions ---
    def toggle_reaction(self, video_id: str, user_id: str, is_like: bool) -> str:
        """Add, remove or switch a like/dislike.

        Counter changes are applied as in-database deltas floored at zero, in
        the same transaction as the reaction row, so concurrent toggles cannot
        drive a counter negative.
        """
        conn = self._connect()
        conn.isolation_level = None
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                self._require_video(conn, video_id)
                row = conn.execute(
                    "SELECT is_like FROM video_likes WHERE video_id=? AND user_id=?",
                    (video_id, user_id),
                ).fetchone()
                if row is None:
                    conn.execute(
                        "INSERT INTO video_likes(video_id, user_id, is_like, created_at) VALUES(?,?,?,?)",
                        (video_id, user_id, int(is_like), utcnow()),
                    )
                    action, d_like, d_dislike = "added", int(is_like), int(not is_like)
                elif bool(row["is_like"]) == is_like:
                    conn.execute(
                        "DELETE FROM video_likes WHERE video_id=? AND user_id=?", (video_id, user_id),
                    )
                    action, d_like, d_dislike = "removed", -int(is_like), -int(not is_like)
                else:
                    conn.execute(
                        "UPDATE video_likes SET is_like=? WHERE video_id=? AND user_id=?",
                        (int(is_like), video_id, user_id),
                    )
                    d = 1 if is_like else -1
                    action, d_like, d_dislike = "switched", d, -d
                conn.execute(
                    """
                    UPDATE videos SET
                      like_count = MAX(like_count + ?, 0),
                      dislike_count = MAX(dislike_count + ?, 0)
                    WHERE video_id=?
                    """,
                    (d_like, d_dislike, video_id),
                )
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                raise
            log.debug("[store] reaction %s video=%s user=%s like=%s", action, video_id, user_id, is_like)
            return action
        finally:
            conn.close()

    def get_reaction(self, video_id: str, user_id: str) -> bool | None:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT is_like FROM video_likes WHERE video_id=? AND user_id=?", (video_id, user_id),
            ).fetchone()
            return bool(row["is_like"]) if row else None
        finally:
            conn.close()

    # --- watch history ---
    def add_to_watch_history(self, video_id: str, user_id: str, last_position: float = 0) -> None:
        conn = self._connect()
        try:
            self._require_video(conn, video_id)
            conn.execute(
                """
                INSERT INTO watch_history(video_id, user_id, last_position, watched_at)
                VALUES(?,?,?,?)
                ON CONFLICT(video_id, user_id) DO UPDATE SET
                  last_position = excluded.last_position,
                  watched_at = excluded.watched_at
                """,
                (video_id, user_id, float(last_position or 0), utcnow()),
            )
            conn.commit()
        finally:
            conn.close()

    def list_watch_history(self, user_id: str) -> list[dict[str, Any]]:
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT video_id, last_position, watched_at FROM watch_history WHERE user_id=? ORDER BY watched_at DESC",
                (user_id,),
            ).fetchall()
            return [dict(r) for r in rows]
        finally:
            conn.close()

    def watch_history_signals(self, user_id: str) -> list[tuple[str | None, list[str]]]:
        """(category, tags) of every video in the user's watch history."""
        conn = self._connect()
        try:
            rows = conn.execute(
                """
                SELECT v.category, v.tags_json FROM watch_history h
                JOIN videos v ON v.video_id = h.video_id
                WHERE h.user_id=?
                """,
                (user_id,),
            ).fetchall()
            return [(r["category"], json.loads(r["tags_json"] or "[]")) for r in rows]
        finally:
            conn.close()
