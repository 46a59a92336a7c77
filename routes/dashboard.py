# routes/dashboard.py
from datetime import datetime

from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from routes.application import application_view
from routes.common import _current_user_id, backend, ok
from services.application_rules import get_application_summary
from services.calendar_service import event_view, next_event, overdue_events, today_events, upcoming_events
from services.date_display import parse_date
from services.profile_completeness import completeness_view

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")

RECENT_LIMIT = 3


def _updated_key(app):
    return parse_date(app.updated_at) or datetime.min


@dashboard_bp.route("/summary", methods=["GET"])
@jwt_required()
def get_summary():
    uid = _current_user_id()
    api = backend()
    apps = api.get_my_applications()
    events = api.get_my_events()
    profile = api.get_profile()
    now = datetime.now()

    days = request.args.get("days", default=7, type=int)
    recent = sorted(apps, key=_updated_key, reverse=True)[:RECENT_LIMIT]
    nxt = next_event(events, now)

    return ok({
        "summary": get_application_summary(apps).to_api(),
        "recentApplications": [application_view(a) for a in recent],
        "todayEvents": [event_view(e, uid, now) for e in today_events(events, now)],
        "upcomingEvents": [event_view(e, uid, now) for e in upcoming_events(events, days, now)],
        "overdueEvents": [event_view(e, uid, now) for e in overdue_events(events, now)],
        "nextEvent": event_view(nxt, uid, now) if nxt else None,
        "profileCompleteness": completeness_view(profile),
    })
