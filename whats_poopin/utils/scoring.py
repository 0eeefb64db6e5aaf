# whats_poopin/utils/scoring.py
"""점수 해석 헬퍼 (건강 등급, 추세, 평균)."""

import math
from typing import List, Optional, Sequence

TREND_UP = "up"
TREND_DOWN = "down"
TREND_STABLE = "stable"

# (최소 점수, 등급) - 높은 점수부터 검사
_HEALTH_CATEGORIES = (
    (80, "Excellent"),
    (70, "Good"),
    (60, "Fair"),
    (40, "Poor"),
)


def health_category(rating: float) -> str:
    for threshold, category in _HEALTH_CATEGORIES:
        if rating >= threshold:
            return category
    return "Critical"


def trend(current: float, previous: Optional[float]) -> Optional[str]:
    """직전 기록 대비 추세. 직전 기록이 없거나 0점이면 None."""
    if not previous:
        return None
    if current > previous:
        return TREND_UP
    if current < previous:
        return TREND_DOWN
    return TREND_STABLE


def trends_for(ratings: Sequence[float]) -> List[Optional[str]]:
    """
    최신순으로 정렬된 점수 목록의 각 항목에 대해, 바로 다음(더 오래된) 항목 대비 추세를 계산합니다.
    """
    return [
        trend(rating, ratings[i + 1] if i + 1 < len(ratings) else None)
        for i, rating in enumerate(ratings)
    ]


def average_rating(ratings: Sequence[float]) -> int:
    """평균 점수를 정수로 반올림(0.5는 올림)합니다. 기록이 없으면 0."""
    if not ratings:
        return 0
    return int(math.floor(sum(ratings) / len(ratings) + 0.5))
