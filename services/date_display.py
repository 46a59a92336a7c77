# services/date_display.py
"""
日期展示工具：只做展示，解析失败一律返回固定文案，不往上抛异常。
"""
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional

NOT_SET = "Not set"
INVALID_DATE = "Invalid date"
UNKNOWN = "Unknown"

_date_only_re = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_date(value) -> Optional[datetime]:
    """
    把后端给的日期（ISO 字符串 / date / datetime）转成本地时间的 naive datetime。
    无法解析返回 None。
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    else:
        s = str(value).strip()
        try:
            dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
        except ValueError:
            return None
        if _date_only_re.match(s):
            return dt
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def format_date(value) -> str:
    """'Jan 5, 2025'"""
    if not value:
        return NOT_SET
    dt = parse_date(value)
    if dt is None:
        return INVALID_DATE
    return f"{dt:%b} {dt.day}, {dt.year}"


def format_date_time(value) -> str:
    """'Jan 5, 2025, 02:30 PM'"""
    if not value:
        return NOT_SET
    dt = parse_date(value)
    if dt is None:
        return INVALID_DATE
    return f"{dt:%b} {dt.day}, {dt.year}, {dt:%I:%M %p}"


def get_relative_time(value, now: Optional[datetime] = None) -> str:
    """
    按自然日差分桶：Today / Yesterday / N days ago / N weeks ago / N months ago / N years ago。
    单复数不做处理（"1 weeks ago"）。
    """
    if not value:
        return UNKNOWN
    dt = parse_date(value)
    if dt is None:
        return UNKNOWN

    now = now or datetime.now()
    diff_days = (now.date() - dt.date()).days

    if diff_days == 0:
        return "Today"
    if diff_days == 1:
        return "Yesterday"
    if diff_days < 7:
        return f"{diff_days} days ago"
    if diff_days < 30:
        return f"{diff_days // 7} weeks ago"
    if diff_days < 365:
        return f"{diff_days // 30} months ago"
    return f"{diff_days // 365} years ago"
