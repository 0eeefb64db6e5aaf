# whats_poopin/utils/test_scoring.py
"""
점수 해석 헬퍼 테스트

사용법: python -m pytest whats_poopin/utils/test_scoring.py -v
"""

import pytest
from whats_poopin.utils.scoring import health_category, trend, trends_for, average_rating


@pytest.mark.parametrize("rating, category", [
    (100, "Excellent"),
    (80, "Excellent"),
    (79.9, "Good"),
    (70, "Good"),
    (63.2, "Fair"),
    (40, "Poor"),
    (39.9, "Critical"),
    (0, "Critical"),
])
def test_health_category(rating, category):
    assert health_category(rating) == category


def test_trend():
    assert trend(73.6, 68.1) == "up"
    assert trend(61.4, 68.1) == "down"
    assert trend(68.1, 68.1) == "stable"
    # 비교할 직전 기록이 없음
    assert trend(68.1, None) is None
    assert trend(68.1, 0) is None


def test_trends_for_newest_first():
    assert trends_for([65.4, 71.8, 60.2]) == ["down", "up", None]
    assert trends_for([]) == []


def test_average_rating():
    assert average_rating([]) == 0
    assert average_rating([72.5]) == 73
    assert average_rating([72.4]) == 72
    assert average_rating([60.2, 71.8, 65.4]) == 66
