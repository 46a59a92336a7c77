# services/university_browser.py
from __future__ import annotations

from typing import List, Optional, Sequence

from models.application import University


def filter_universities(
    universities: Sequence[University],
    search: Optional[str] = None,
    country: Optional[str] = None,
) -> List[University]:
    """搜索词匹配学校名 / 国家 / 任一专业名（不区分大小写）；国家精确匹配。"""
    items = list(universities)

    if search:
        needle = search.strip().lower()
        items = [
            u for u in items
            if needle in u.university_name.lower()
            or needle in u.country.lower()
            or any(needle in p.name.lower() for p in u.programs)
        ]

    if country:
        items = [u for u in items if u.country == country]

    return items


def available_countries(universities: Sequence[University]) -> List[str]:
    return sorted({u.country for u in universities if u.country})
