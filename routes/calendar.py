# routes/calendar.py
"""
日历页：月视图 + 事件列表 + 学生自建事件的增删改。

学生只能修改/删除自己创建的事件（createdBy == 当前用户），
别人（顾问）安排给他的事件只读。
"""
from __future__ import annotations

import logging
from datetime import date, datetime

from flask import Blueprint, request
from flask_jwt_extended import jwt_required
from pydantic import ValidationError

from models.calendar_event import EVENT_TYPE_LABELS, REMINDER_OPTIONS, EventRequest
from routes.common import _current_user_id, backend, fail, ok
from services.calendar_service import (
    DAYS_OF_WEEK,
    calendar_days,
    can_modify_event,
    distribute_events,
    event_view,
    filter_events,
    group_events_by_date,
    next_month,
    previous_month,
    sort_events_by_date,
    sort_events_by_priority,
)
from services.date_display import parse_date

logger = logging.getLogger(__name__)

calendar_bp = Blueprint("calendar_bp", __name__, url_prefix="/api/calendar")


def _parse_event_request(partial: bool):
    data = request.get_json(silent=True) or {}
    try:
        req = EventRequest.model_validate(data)
    except ValidationError as e:
        return None, fail(f"Invalid event: {e}")

    if not partial and (not req.title or not req.start_date):
        return None, fail("title & startDate required")
    for value in (req.start_date, req.end_date):
        if value and parse_date(value) is None:
            return None, fail(f"Invalid date: {value}")
    return req, None


def _find_own_event(event_id):
    """返回 (event, 错误响应)。"""
    uid = _current_user_id()
    events = backend().get_my_events()
    event = next((e for e in events if str(e.id) == str(event_id)), None)
    if event is None:
        return None, fail("Event not found", 404)
    if not can_modify_event(event, uid):
        logger.warning(f"[calendar] 用户 {uid} 尝试修改非本人事件 {event_id}")
        return None, fail("You can only modify events you created", 403)
    return event, None


# ---------- 月视图 ----------

@calendar_bp.get("/month")
@jwt_required()
def month_view():
    today = date.today()
    year = request.args.get("year", default=today.year, type=int)
    month = request.args.get("month", default=today.month, type=int)
    if not 1 <= month <= 12:
        return fail("month must be 1..12")

    uid = _current_user_id()
    api = backend()
    # scope=mine 只看自己的事件，否则看所有与我相关的事件
    if request.args.get("scope") == "mine":
        days = calendar_days(year, month, today)
        start = datetime(days[0].date.year, days[0].date.month, days[0].date.day)
        end = datetime(days[-1].date.year, days[-1].date.month, days[-1].date.day, 23, 59, 59)
        events = api.get_my_events(start.isoformat(), end.isoformat())
    else:
        events = api.get_student_events(month, year)

    days = distribute_events(calendar_days(year, month, today), events)
    prev_y, prev_m = previous_month(year, month)
    next_y, next_m = next_month(year, month)

    return ok({
        "year": year,
        "month": month,
        "daysOfWeek": DAYS_OF_WEEK,
        "days": [d.to_dict() for d in days],
        "previous": {"year": prev_y, "month": prev_m},
        "next": {"year": next_y, "month": next_m},
        "canModify": {str(e.id): can_modify_event(e, uid) for e in events},
    })


# ---------- 事件列表 ----------

@calendar_bp.get("/events")
@jwt_required()
def list_events():
    """
    查询参数：type / priority / status / search / startDate / endDate /
    sort（date | date_desc | priority）/ group=1 按日期分组
    """
    args = request.args
    uid = _current_user_id()
    events = backend().get_my_events(args.get("startDate"), args.get("endDate"))

    events = filter_events(
        events,
        event_type=args.get("type"),
        priority=args.get("priority"),
        status=args.get("status"),
        start=parse_date(args.get("startDate")),
        end=parse_date(args.get("endDate")),
        search=args.get("search"),
    )

    sort = args.get("sort", "date")
    if sort == "priority":
        events = sort_events_by_priority(events)
    else:
        events = sort_events_by_date(events, ascending=sort != "date_desc")

    now = datetime.now()
    data = {
        "items": [event_view(e, uid, now) for e in events],
        "eventTypes": EVENT_TYPE_LABELS,
        "reminderOptions": [{"value": v, "label": label} for v, label in REMINDER_OPTIONS],
    }
    if args.get("group") in ("1", "true"):
        data["groups"] = [
            {"date": g["date"], "events": [event_view(e, uid, now) for e in g["events"]]}
            for g in group_events_by_date(events)
        ]
    return ok(data)


# ---------- 增删改 ----------

@calendar_bp.post("/events")
@jwt_required()
def create_event():
    req, error = _parse_event_request(partial=False)
    if error:
        return error
    event = backend().create_event(req)
    logger.info(f"[calendar] 新建事件 {event.id}: {event.title}")
    return ok(event_view(event, _current_user_id())), 201


@calendar_bp.put("/events/<event_id>")
@jwt_required()
def update_event(event_id):
    req, error = _parse_event_request(partial=True)
    if error:
        return error
    _, error = _find_own_event(event_id)
    if error:
        return error
    event = backend().update_event(event_id, req)
    logger.info(f"[calendar] 更新事件 {event_id}")
    return ok(event_view(event, _current_user_id()))


@calendar_bp.delete("/events/<event_id>")
@jwt_required()
def delete_event(event_id):
    _, error = _find_own_event(event_id)
    if error:
        return error
    backend().delete_event(event_id)
    logger.info(f"[calendar] 删除事件 {event_id}")
    return ok({"id": event_id})
