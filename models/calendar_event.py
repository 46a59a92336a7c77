# models/calendar_event.py
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field

from models.application import PortalRecord


class EventType(str, Enum):
    APPOINTMENT = "appointment"
    DEADLINE = "deadline"
    TEST_DATE = "test_date"
    INTERVIEW = "interview"
    ORIENTATION = "orientation"
    MEETING = "meeting"
    SUBMISSION = "submission"
    PAYMENT = "payment"
    REMINDER = "reminder"
    OTHER = "other"


class EventStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


class EventPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


EVENT_TYPE_LABELS = {
    "appointment": "Appointment",
    "deadline": "Deadline",
    "test_date": "Test Date",
    "interview": "Interview",
    "orientation": "Orientation",
    "meeting": "Meeting",
    "submission": "Submission",
    "payment": "Payment",
    "reminder": "Reminder",
    "other": "Other",
}

# 提醒时间（分钟）
REMINDER_OPTIONS = [
    (0, "At time of event"),
    (15, "15 minutes before"),
    (30, "30 minutes before"),
    (60, "1 hour before"),
    (120, "2 hours before"),
    (1440, "1 day before"),
    (2880, "2 days before"),
    (10080, "1 week before"),
]


class CalendarEvent(PortalRecord):
    id: int | str
    title: str = ""
    description: Optional[str] = None
    event_type: EventType = EventType.OTHER
    start_date: datetime
    end_date: Optional[datetime] = None
    is_all_day: bool = False
    location: Optional[str] = None
    is_virtual: bool = False
    meeting_link: Optional[str] = None
    status: EventStatus = EventStatus.SCHEDULED
    priority: EventPriority = EventPriority.MEDIUM
    created_by: Optional[int | str] = None
    participants: List[int | str] = Field(default_factory=list)
    application_id: Optional[int | str] = None
    reminder_sent: bool = False
    reminder_time: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class EventRequest(PortalRecord):
    """学生新建/修改个人事件时提交的字段（修改时全部可选）。"""

    title: Optional[str] = None
    description: Optional[str] = None
    event_type: Optional[EventType] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    is_all_day: Optional[bool] = None
    location: Optional[str] = None
    priority: Optional[EventPriority] = None
    status: Optional[EventStatus] = None
    reminder_time: Optional[int] = None
