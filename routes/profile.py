# routes/profile.py
import logging

from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from routes.common import backend, fail, ok
from services.profile_wizard import STEP_KEYS, WizardError, WizardState

logger = logging.getLogger(__name__)

profile_bp = Blueprint("profile", __name__, url_prefix="/api/profile")


def _wizard_payload(state: WizardState, profile):
    return {
        "wizard": state.to_dict(),
        "profile": profile.to_api() if profile is not None else None,
    }


@profile_bp.get("/wizard")
@jwt_required()
def get_wizard():
    """续填：已完成的步骤从 profileCompletionStatus 恢复，停在第一个未完成的步骤。"""
    profile = backend().get_profile()
    state = WizardState.resume(profile)
    return ok(_wizard_payload(state, profile))


@profile_bp.put("/wizard/<step>")
@jwt_required()
def save_step(step):
    if step not in STEP_KEYS:
        return fail(f"Unknown profile step: {step}", 404)

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return fail("step data must be a JSON object")

    api = backend()
    profile = api.get_profile()
    state = WizardState.resume(profile)
    # 还没建档先 POST，之后都是 PUT
    save = api.create_profile if profile is None else api.update_profile

    saved = state.complete_step(step, data, save)
    state.completed |= WizardState.resume(saved).completed
    logger.info(f"[profile] 步骤 {step} 保存成功，进度 {state.progress}%")
    return ok(_wizard_payload(state, saved))


@profile_bp.post("/wizard/navigate")
@jwt_required()
def navigate():
    """
    body: {"currentStep": 2, "action": "previous"} 或
          {"currentStep": 2, "action": "goTo", "target": 4, "confirmed": false}
    当前步骤未保存就跳走时需要 confirmed=true，否则返回 needsConfirmation。
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return fail("request body must be a JSON object")
    current = data.get("currentStep")
    if not isinstance(current, int) or not 0 <= current < len(STEP_KEYS):
        return fail("currentStep must be a valid step index")

    profile = backend().get_profile()
    state = WizardState.resume(profile)
    state.current_step = current

    action = data.get("action")
    moved = True
    if action == "previous":
        state.previous()
    elif action == "goTo":
        target = data.get("target")
        if not isinstance(target, int):
            return fail("target must be an integer")
        try:
            moved = state.go_to(target, confirmed=bool(data.get("confirmed")))
        except WizardError as e:
            return fail(str(e))
    else:
        return fail("action must be one of: previous, goTo")

    payload = _wizard_payload(state, profile)
    payload["needsConfirmation"] = not moved
    return ok(payload)
