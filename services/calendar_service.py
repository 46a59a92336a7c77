# services/calendar_service.py
"""
日历：月视图网格、事件筛选/排序/分组、截止日期提示。

所有"当前时间"都可以通过 now / today 参数传入，方便测试；不传则取本地时间。
"""
from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Sequence

from models.calendar_event import CalendarEvent, EventStatus, EventType
from services.date_display import parse_date

PRIORITY_ORDER = {"high": 3, "medium": 2, "low": 1}
OVERDUE_TYPES = {EventType.DEADLINE.value, EventType.SUBMISSION.value}
DAYS_OF_WEEK = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


@dataclass
class CalendarDay:
    date: date
    is_current_month: bool
    is_today: bool
    is_past: bool
    events: List[CalendarEvent] = field(default_factory=list)

    @property
    def day_number(self) -> int:
        return self.date.day

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "dayNumber": self.day_number,
            "isCurrentMonth": self.is_current_month,
            "isToday": self.is_today,
            "isPast": self.is_past,
            "events": [e.to_api() for e in self.events],
        }


def _local(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        return dt.astimezone().replace(tzinfo=None)
    return dt


def event_start(event: CalendarEvent) -> datetime:
    return _local(event.start_date)


def _sunday_offset(d: date) -> int:
    # date.weekday(): 周一=0；日历从周日开始
    return (d.weekday() + 1) % 7


# ---------- 月视图 ----------

def calendar_days(year: int, month: int, today: Optional[date] = None) -> List[CalendarDay]:
    """month 为 1..12；网格从月初前的周日开始，到月末后的周六结束。"""
    today = today or date.today()
    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])

    start = first - timedelta(days=_sunday_offset(first))
    end = last + timedelta(days=6 - _sunday_offset(last))

    days = []
    current = start
    while current <= end:
        days.append(CalendarDay(
            date=current,
            is_current_month=current.month == month,
            is_today=current == today,
            is_past=current < today,
        ))
        current += timedelta(days=1)
    return days


def distribute_events(days: Sequence[CalendarDay], events: Sequence[CalendarEvent]) -> List[CalendarDay]:
    by_day: Dict[date, List[CalendarEvent]] = {}
    for e in events:
        by_day.setdefault(event_start(e).date(), []).append(e)
    return [
        CalendarDay(
            date=d.date,
            is_current_month=d.is_current_month,
            is_today=d.is_today,
            is_past=d.is_past,
            events=by_day.get(d.date, []),
        )
        for d in days
    ]


def next_month(year: int, month: int):
    return (year + 1, 1) if month == 12 else (year, month + 1)


def previous_month(year: int, month: int):
    return (year - 1, 12) if month == 1 else (year, month - 1)


# ---------- 筛选 / 排序 / 分组 ----------

def filter_events(
    events: Sequence[CalendarEvent],
    event_type: Optional[str] = None,
    priority: Optional[str] = None,
    status: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    search: Optional[str] = None,
) -> List[CalendarEvent]:
    needle = search.strip().lower() if search else None

    def keep(e: CalendarEvent) -> bool:
        if event_type and e.event_type != event_type:
            return False
        if priority and e.priority != priority:
            return False
        if status and e.status != status:
            return False
        if start is not None and event_start(e) < start:
            return False
        if end is not None and event_start(e) > end:
            return False
        if needle:
            haystacks = [e.title, e.description or "", e.location or ""]
            if not any(needle in h.lower() for h in haystacks):
                return False
        return True

    return [e for e in events if keep(e)]


def sort_events_by_date(events: Sequence[CalendarEvent], ascending: bool = True) -> List[CalendarEvent]:
    return sorted(events, key=event_start, reverse=not ascending)


def sort_events_by_priority(events: Sequence[CalendarEvent]) -> List[CalendarEvent]:
    return sorted(events, key=lambda e: PRIORITY_ORDER.get(e.priority, 0), reverse=True)


def group_events_by_date(events: Sequence[CalendarEvent]) -> List[dict]:
    grouped: Dict[date, List[CalendarEvent]] = {}
    for e in events:
        grouped.setdefault(event_start(e).date(), []).append(e)
    return [
        {"date": d.isoformat(), "events": grouped[d]}
        for d in sorted(grouped)
    ]


# ---------- 时间相关查询 ----------

def today_events(events: Sequence[CalendarEvent], now: Optional[datetime] = None) -> List[CalendarEvent]:
    today = (now or datetime.now()).date()
    return [e for e in events if event_start(e).date() == today]


def upcoming_events(events: Sequence[CalendarEvent], days: int = 7, now: Optional[datetime] = None) -> List[CalendarEvent]:
    now = now or datetime.now()
    until = now + timedelta(days=days)
    return sort_events_by_date([e for e in events if now <= event_start(e) <= until])


def overdue_events(events: Sequence[CalendarEvent], now: Optional[datetime] = None) -> List[CalendarEvent]:
    """已过期、仍处于 scheduled 的截止/递交类事件。"""
    now = now or datetime.now()
    return [
        e for e in events
        if event_start(e) < now
        and e.event_type in OVERDUE_TYPES
        and e.status == EventStatus.SCHEDULED.value
    ]


def next_event(events: Sequence[CalendarEvent], now: Optional[datetime] = None) -> Optional[CalendarEvent]:
    now = now or datetime.now()
    future = sort_events_by_date([e for e in events if event_start(e) > now])
    return future[0] if future else None


def is_happening_now(event: CalendarEvent, now: Optional[datetime] = None) -> bool:
    now = now or datetime.now()
    start = event_start(event)
    end = _local(event.end_date) if event.end_date else start
    return start <= now <= end


def is_starting_soon(event: CalendarEvent, now: Optional[datetime] = None, minutes: int = 30) -> bool:
    now = now or datetime.now()
    delta = (event_start(event) - now).total_seconds() / 60
    return 0 < delta <= minutes


def days_until_deadline(value, today: Optional[date] = None) -> str:
    dt = parse_date(value)
    if dt is None:
        return "Unknown"
    today = today or date.today()
    diff = (dt.date() - today).days

    if diff == 0:
        return "Today"
    if diff == 1:
        return "Tomorrow"
    if diff == -1:
        return "Yesterday"
    if diff > 0:
        return f"{diff} days left"
    return f"{abs(diff)} days overdue"


def format_duration(start: datetime, end: datetime) -> str:
    minutes = int((end - start).total_seconds() // 60)
    hours, rest = divmod(minutes, 60)
    if hours == 0:
        return f"{minutes} min"
    if rest == 0:
        return f"{hours} hr"
    return f"{hours}h {rest}m"


def can_modify_event(event: CalendarEvent, user_id) -> bool:
    """学生只能修改/删除自己创建的事件。"""
    if user_id is None or event.created_by is None:
        return False
    return str(event.created_by) == str(user_id)


def event_view(event: CalendarEvent, user_id=None, now: Optional[datetime] = None) -> dict:
    data = event.to_api()
    data["durationLabel"] = format_duration(event_start(event), _local(event.end_date)) if event.end_date else None
    data["happeningNow"] = is_happening_now(event, now)
    data["startingSoon"] = is_starting_soon(event, now)
    data["canModify"] = can_modify_event(event, user_id)
    if event.event_type in OVERDUE_TYPES:
        data["deadlineLabel"] = days_until_deadline(event_start(event), (now or datetime.now()).date())
    return data
