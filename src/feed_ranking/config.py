from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="FR_", env_file=".env", extra="ignore")

    # SQLite database path
    db_path: str = "feed_ranking.sqlite3"

    log_level: str = "INFO"

    # Engagement score: views*w_view + likes*w_like - dislikes*w_dislike + boost
    w_view: float = 1.0
    w_like: float = 5.0
    w_dislike: float = 3.0

    # Recency step boost (strict "age < days")
    fresh_days: int = 7
    fresh_boost: int = 100
    recent_days: int = 30
    recent_boost: int = 50

    # Trending score: (views*tr_w_view + likes*tr_w_like - dislikes*tr_w_dislike
    # + comments*tr_w_comment) * trending_decay ** (age_hours / trending_period_hours)
    tr_w_view: float = 1.0
    tr_w_like: float = 3.0
    tr_w_dislike: float = 1.0
    tr_w_comment: float = 2.0
    trending_decay: float = 0.95
    trending_period_hours: float = 24.0

    # Personalization caps
    category_cap: float = 40.0
    tag_cap: float = 40.0
    quality_cap: float = 10.0
    recency_cap: float = 10.0
    recency_window_days: float = 10.0  # linear decay to zero over this window
    score_places: int = 2

    # Feed assembly
    default_page_size: int = 20
    max_page_size: int = 50


settings = Settings()
