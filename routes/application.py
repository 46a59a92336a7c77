# routes/application.py
"""
学生端「我的申请」相关接口。

数据都以后端为准：这里只负责在转发前做一遍门户侧的规则校验
（能否编辑、能否提交、选校是否合法），并把阶段进度、标签、日期文案
这些页面要用的视图状态算好一起返回。
"""
from __future__ import annotations

import logging

from flask import Blueprint, request
from flask_jwt_extended import jwt_required
from pydantic import ValidationError

from models.application import Application, Eligibility, OfferAction, UniversitySelection
from routes.common import backend, fail, ok
from services.application_rules import (
    STAGE_LABELS,
    STATUS_LABELS,
    can_edit_application,
    can_manage_offers,
    can_submit_application,
    calculate_stage_progress,
    get_application_summary,
    get_next_stage,
    sort_universities_by_priority,
    stage_timeline,
    validate_university_selection,
)
from services.date_display import format_date, format_date_time, get_relative_time
from services.offer_board import application_title, applications_by_stage, applications_by_status

logger = logging.getLogger(__name__)

application_bp = Blueprint("application_bp", __name__, url_prefix="/api")


def application_view(app: Application, eligibility: Eligibility | None = None) -> dict:
    """申请 + 页面视图状态。传入 eligibility 时附带提交按钮的可用状态。"""
    data = app.to_api()
    data["universitySelections"] = [
        s.to_api() for s in sort_universities_by_priority(app.university_selections)
    ]
    data["title"] = application_title(app)
    data["statusLabel"] = STATUS_LABELS.get(app.status, app.status)
    data["stageLabel"] = STAGE_LABELS.get(app.stage, app.stage)
    data["progress"] = calculate_stage_progress(app.stage)
    data["nextStage"] = get_next_stage(app.stage)
    data["timeline"] = stage_timeline(app.stage)
    data["canEdit"] = can_edit_application(app.status)
    data["canManageOffers"] = can_manage_offers(app.status)
    data["createdAtLabel"] = format_date(app.created_at)
    data["submissionDateLabel"] = format_date_time(app.submission_date)
    data["lastUpdated"] = get_relative_time(app.updated_at)

    if eligibility is not None:
        check = can_submit_application(
            app.status, app.university_selections, eligibility.completion_percentage
        )
        data["submitCheck"] = check.to_dict()
        data["eligibility"] = eligibility.to_api()
    return data


def _parse_selections(items) -> list[UniversitySelection]:
    if not isinstance(items, list):
        raise ValueError("universitySelections must be a list")
    return [UniversitySelection.model_validate(item) for item in items]


# ======================================================
# ===================== 申请列表 ========================
# ======================================================

@application_bp.get("/applications")
@jwt_required()
def list_applications():
    apps = backend().get_my_applications()

    status = request.args.get("status")
    stage = request.args.get("stage")
    filtered = apps
    if status and status != "all":
        filtered = applications_by_status(filtered, status)
    if stage and stage != "all":
        filtered = applications_by_stage(filtered, stage)

    return ok({
        "items": [application_view(a) for a in filtered],
        "summary": get_application_summary(apps).to_api(),
    })


@application_bp.post("/applications")
@jwt_required()
def create_application():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return fail("request body must be a JSON object")
    app = backend().create_application(
        title=data.get("title"),
        target_intake=data.get("targetIntake"),
        target_country=data.get("targetCountry"),
    )
    logger.info(f"[application] 新建申请 {app.id}")
    return ok(application_view(app)), 201


@application_bp.get("/applications/<app_id>")
@jwt_required()
def get_application(app_id):
    api = backend()
    app = api.get_application(app_id)
    eligibility = api.check_eligibility()
    return ok(application_view(app, eligibility))


# ======================================================
# ===================== 选校 / 提交 =====================
# ======================================================

@application_bp.put("/applications/<app_id>/universities")
@jwt_required()
def select_universities(app_id):
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return fail("request body must be a JSON object")
    try:
        selections = _parse_selections(data.get("universitySelections"))
    except (ValueError, ValidationError) as e:
        return fail(f"Invalid universitySelections: {e}")

    error = validate_university_selection(selections)
    if error:
        return fail(error)

    api = backend()
    app = api.get_application(app_id)
    if not can_edit_application(app.status):
        return fail("Application can no longer be edited", 409)

    updated = api.select_universities(app_id, sort_universities_by_priority(selections))
    logger.info(f"[application] {app_id} 更新选校 {len(selections)} 所")
    return ok(application_view(updated))


@application_bp.post("/applications/<app_id>/submit")
@jwt_required()
def submit_application(app_id):
    api = backend()
    app = api.get_application(app_id)
    eligibility = api.check_eligibility()

    check = can_submit_application(
        app.status, app.university_selections, eligibility.completion_percentage
    )
    if not check.can_submit:
        logger.info(f"[application] {app_id} 不能提交: {check.reason}")
        return fail(check.reason)

    submitted = api.submit_application(app_id)
    logger.info(f"✅ [application] {app_id} 已提交")
    return ok(application_view(submitted))


# ======================================================
# ===================== 录取管理 ========================
# ======================================================

@application_bp.put("/applications/<app_id>/offers")
@jwt_required()
def manage_offer(app_id):
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return fail("request body must be a JSON object")
    try:
        action = OfferAction(data.get("action"))
    except ValueError:
        return fail("action must be one of: add, accept, reject")

    offer_id = data.get("offerId")
    api = backend()

    if action in (OfferAction.ACCEPT, OfferAction.REJECT):
        if offer_id is None:
            return fail("offerId required")
        app = api.get_application(app_id)
        if not can_manage_offers(app.status):
            return fail("Offers cannot be managed at this stage", 409)
        updated = api.manage_offer(app_id, action, offer_id=offer_id)
    else:
        updated = api.manage_offer(
            app_id,
            action,
            universityName=data.get("universityName"),
            programName=data.get("programName"),
            offerDate=data.get("offerDate"),
            conditions=data.get("conditions"),
        )

    logger.info(f"[application] {app_id} offer {action.value} {offer_id or ''}")
    return ok(application_view(updated))
