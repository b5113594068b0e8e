"""Ranking service — the trending score.

Everything here is a pure function of question summaries (any object with
``views``, ``approved_answer_count`` and ``created_at``) and the current
time. Scores are derived on every request and never stored.
"""

import enum
from datetime import datetime
from typing import Iterable, List, Optional, TypeVar

from knowledge_base.db.base import utcnow

T = TypeVar("T")

ANSWER_WEIGHT = 2


class SortOrder(str, enum.Enum):
    trending = "trending"
    recent = "recent"
    views = "views"
    answers = "answers"


def hours_since(created_at: datetime, now: Optional[datetime] = None) -> float:
    """Fractional wall-clock hours elapsed since ``created_at``, never negative."""
    now = now or utcnow()
    return max((now - created_at).total_seconds() / 3600.0, 0.0)


def trending_score(
    views: int,
    approved_answer_count: int,
    created_at: datetime,
    now: Optional[datetime] = None,
) -> float:
    """(views + 2 * approved answers) / (hours since creation + 1)."""
    engagement = views + ANSWER_WEIGHT * approved_answer_count
    return engagement / (hours_since(created_at, now) + 1.0)


def score_of(item, now: Optional[datetime] = None) -> float:
    return trending_score(item.views, item.approved_answer_count, item.created_at, now)


def rank_trending(items: Iterable[T], now: Optional[datetime] = None) -> List[T]:
    """Highest score first; equal scores put the newer question first.

    Callers pass approved questions only.
    """
    now = now or utcnow()
    return sorted(
        items,
        key=lambda item: (score_of(item, now), item.created_at),
        reverse=True,
    )
