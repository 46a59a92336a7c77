# services/application_rules.py
"""
申请生命周期的纯规则：阶段进度、可编辑/可提交/可管理录取的判断、选校校验、汇总统计。

这里只根据最新拉取到的快照推导"界面上能不能点"，不负责状态流转本身；
真正合法与否永远以后端为准（后端仍可能拒绝前端放行的操作）。
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence

from models.application import (
    MAX_UNIVERSITY_SELECTIONS,
    STAGES,
    Application,
    ApplicationStatus,
    OfferStatus,
    PortalRecord,
    UniversitySelection,
)

MIN_SUBMIT_COMPLETION = 85

STATUS_LABELS = {
    "draft": "Draft",
    "in_review": "In Review",
    "submitted": "Submitted",
    "offers_received": "Offers Received",
    "accepted": "Accepted",
    "rejected": "Rejected",
    "visa_applied": "Visa Applied",
    "completed": "Completed",
}

STAGE_LABELS = {
    "profile_review": "Profile Review",
    "university_selection": "University Selection",
    "document_preparation": "Document Preparation",
    "submission": "Application Submission",
    "offer_management": "Offer Management",
    "visa_application": "Visa Application",
    "completed": "Completed",
}

EDITABLE_STATUSES = {ApplicationStatus.DRAFT.value, ApplicationStatus.IN_REVIEW.value}
OFFER_STATUSES = {ApplicationStatus.OFFERS_RECEIVED.value, ApplicationStatus.ACCEPTED.value}


def _value(v):
    return getattr(v, "value", v)


# ---------- 阶段 / 进度 ----------

def _stage_index(stage) -> int:
    """找不到返回 -1（阶段值来自后端，按"未开始"宽松处理，不抛异常）。"""
    try:
        return STAGES.index(_value(stage))
    except ValueError:
        return -1


def calculate_stage_progress(stage) -> int:
    idx = _stage_index(stage)
    if idx == -1:
        return 0
    # 四舍五入按 half-up，与页面上显示的一致
    return int(math.floor(100 * (idx + 1) / len(STAGES) + 0.5))


def get_next_stage(stage) -> Optional[str]:
    idx = _stage_index(stage)
    if idx == -1 or idx == len(STAGES) - 1:
        return None
    return STAGES[idx + 1]


def is_stage_completed(stage, current_stage) -> bool:
    idx, current = _stage_index(stage), _stage_index(current_stage)
    if idx == -1 or current == -1:
        return False
    return idx < current


def is_current_stage(stage, current_stage) -> bool:
    idx = _stage_index(stage)
    return idx != -1 and idx == _stage_index(current_stage)


def stage_timeline(current_stage) -> List[dict]:
    return [
        {
            "stage": s,
            "label": STAGE_LABELS[s],
            "completed": is_stage_completed(s, current_stage),
            "current": is_current_stage(s, current_stage),
        }
        for s in STAGES
    ]


# ---------- 权限判断 ----------

def can_edit_application(status) -> bool:
    return _value(status) in EDITABLE_STATUSES


def can_manage_offers(status) -> bool:
    return _value(status) in OFFER_STATUSES


@dataclass(frozen=True)
class SubmitCheck:
    can_submit: bool
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"canSubmit": self.can_submit}
        if self.reason:
            data["reason"] = self.reason
        return data


# 每条检查返回失败原因，通过返回 None；顺序即优先级，第一条失败的原因胜出
_SubmitRule = Callable[[str, Sequence[UniversitySelection], float], Optional[str]]


def _must_be_draft(status, selections, percentage):
    if status != ApplicationStatus.DRAFT.value:
        return "Application already submitted"
    return None


def _profile_complete_enough(status, selections, percentage):
    if percentage < MIN_SUBMIT_COMPLETION:
        return f"Profile completion below {MIN_SUBMIT_COMPLETION}%"
    return None


def _has_selections(status, selections, percentage):
    if not selections:
        return "No universities selected"
    return None


def _every_intake_chosen(status, selections, percentage):
    for sel in selections:
        if not sel.selected_intake:
            return f"Missing intake selection for {sel.university_name}"
    return None


SUBMIT_RULES: List[_SubmitRule] = [
    _must_be_draft,
    _profile_complete_enough,
    _has_selections,
    _every_intake_chosen,
]


def can_submit_application(
    status,
    selections: Sequence[UniversitySelection],
    eligibility_percentage: float,
) -> SubmitCheck:
    status = _value(status)
    for rule in SUBMIT_RULES:
        reason = rule(status, selections, eligibility_percentage or 0)
        if reason:
            return SubmitCheck(False, reason)
    return SubmitCheck(True)


# ---------- 选校 ----------

def validate_university_selection(selections: Sequence[UniversitySelection]) -> Optional[str]:
    """返回第一条不满足的规则对应的提示；全部通过返回 None。"""
    if len(selections) == 0:
        return "Please select at least one university"

    if len(selections) > MAX_UNIVERSITY_SELECTIONS:
        return f"Maximum {MAX_UNIVERSITY_SELECTIONS} universities allowed"

    for sel in selections:
        if not sel.selected_intake:
            return f"Please select intake for {sel.university_name}"

    # 只按 universityId 判重（同校不同专业也算重复）
    university_ids = [str(sel.university_id) for sel in selections]
    if len(set(university_ids)) != len(university_ids):
        return "Duplicate universities selected"

    return None


def sort_universities_by_priority(selections: Iterable[UniversitySelection]) -> List[UniversitySelection]:
    return sorted(selections, key=lambda s: s.priority)


# ---------- 汇总 ----------

class ApplicationSummary(PortalRecord):
    total: int = 0
    draft: int = 0
    in_review: int = 0
    submitted: int = 0
    offers_received: int = 0
    accepted: int = 0
    rejected: int = 0
    completed: int = 0
    total_offers: int = 0
    pending_offers: int = 0
    accepted_offers: int = 0


# visa_applied 不单独计数
SUMMARY_STATUSES = ("draft", "in_review", "submitted", "offers_received", "accepted", "rejected", "completed")


def get_application_summary(applications: Sequence[Application]) -> ApplicationSummary:
    counts = dict.fromkeys(SUMMARY_STATUSES, 0)
    total_offers = pending = accepted = 0

    for app in applications:
        status = _value(app.status)
        if status in counts:
            counts[status] += 1

        total_offers += len(app.offer_letters)
        for offer in app.offer_letters:
            if _value(offer.status) == OfferStatus.PENDING.value:
                pending += 1
            elif _value(offer.status) == OfferStatus.ACCEPTED.value:
                accepted += 1

    return ApplicationSummary(
        total=len(applications),
        total_offers=total_offers,
        pending_offers=pending,
        accepted_offers=accepted,
        **counts,
    )
