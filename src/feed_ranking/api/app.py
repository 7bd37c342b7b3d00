from __future__ import annotations

from contextlib import asynccontextmanager
from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from feed_ranking.engine.feed_builder import FeedBuilder
from feed_ranking.errors import FeedError, VideoNotFound
from feed_ranking.logging_config import configure_logging
from feed_ranking.store.sqlite import Store


@asynccontextmanager
async def lifespan(_app: FastAPI):
    configure_logging()
    yield


app = FastAPI(title="feed-ranking", lifespan=lifespan)


@lru_cache(maxsize=1)
def get_builder() -> FeedBuilder:
    return FeedBuilder(store=Store())


class ViewIn(BaseModel):
    user_id: str


class ReactionIn(BaseModel):
    user_id: str
    is_like: bool


class HistoryIn(BaseModel):
    user_id: str
    last_position: float = Field(default=0, ge=0)


def _http_error(exc: FeedError) -> HTTPException:
    if isinstance(exc, VideoNotFound):
        return HTTPException(status_code=404, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


@app.get("/feed")
def get_feed(
    limit: int = Query(20, ge=1, le=50),
    cursor: str | None = None,
    search: str | None = None,
    exclude_user_id: str | None = None,
    builder: FeedBuilder = Depends(get_builder),
):
    try:
        page = builder.global_feed(limit=limit, cursor=cursor, search=search,
                                   exclude_user_id=exclude_user_id)
    except FeedError as exc:
        raise _http_error(exc) from exc
    return page.to_dict()


@app.get("/feed/trending")
def get_trending_feed(
    limit: int = Query(20, ge=1, le=50),
    cursor: str | None = None,
    exclude_user_id: str | None = None,
    builder: FeedBuilder = Depends(get_builder),
):
    try:
        page = builder.trending_feed(limit=limit, cursor=cursor, exclude_user_id=exclude_user_id)
    except FeedError as exc:
        raise _http_error(exc) from exc
    return page.to_dict()


@app.get("/feed/personalized")
def get_personalized_feed(
    user_id: str,
    limit: int = Query(20, ge=1, le=50),
    cursor: str | None = None,
    builder: FeedBuilder = Depends(get_builder),
):
    if not user_id:
        raise HTTPException(status_code=400, detail="user_id required")
    try:
        page = builder.personalized_feed(user_id=user_id, limit=limit, cursor=cursor)
    except FeedError as exc:
        raise _http_error(exc) from exc
    return page.to_dict()


@app.post("/videos/{video_id}/views")
def post_view(video_id: str, body: ViewIn, builder: FeedBuilder = Depends(get_builder)):
    try:
        counted = builder.store.record_view(video_id, body.user_id)
    except FeedError as exc:
        raise _http_error(exc) from exc
    return {"incremented": counted}


@app.post("/videos/{video_id}/reactions")
def post_reaction(video_id: str, body: ReactionIn, builder: FeedBuilder = Depends(get_builder)):
    try:
        action = builder.store.toggle_reaction(video_id, body.user_id, body.is_like)
    except FeedError as exc:
        raise _http_error(exc) from exc
    return {"action": action}


@app.post("/videos/{video_id}/history")
def post_history(video_id: str, body: HistoryIn, builder: FeedBuilder = Depends(get_builder)):
    try:
        builder.store.add_to_watch_history(video_id, body.user_id, body.last_position)
    except FeedError as exc:
        raise _http_error(exc) from exc
    return {"ok": True}
