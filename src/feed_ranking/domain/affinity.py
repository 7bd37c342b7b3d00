from __future__ import annotations

from collections import Counter
from typing import Iterable, Sequence

from feed_ranking.domain.models import UserAffinityProfile


def build_affinity_profile(
    history: Iterable[tuple[str | None, Sequence[str] | None]],
) -> UserAffinityProfile:
    """Fold watch-history entries ``(category, tags)`` into an affinity profile.

    Each entry counts once towards ``total_watched``; a tag repeated on the
    same video counts once for that entry.
    """
    categories: Counter[str] = Counter()
    tags: Counter[str] = Counter()
    total = 0
    for category, entry_tags in history:
        total += 1
        if category:
            categories[category] += 1
        for t in set(entry_tags or ()):
            if t:
                tags[t] += 1
    return UserAffinityProfile(
        watched_categories=dict(categories),
        watched_tags=dict(tags),
        total_watched=total,
    )
