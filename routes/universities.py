# routes/universities.py
import logging

from flask import Blueprint, request
from flask_jwt_extended import jwt_required
from pydantic import ValidationError

from models.application import MAX_UNIVERSITY_SELECTIONS, UniversitySelection
from routes.common import backend, fail, ok
from services.application_rules import validate_university_selection
from services.selection_editor import (
    SelectionError,
    add_selection,
    find_program,
    move_down,
    move_up,
    remove_selection,
    update_intake,
)
from services.university_browser import available_countries, filter_universities

logger = logging.getLogger(__name__)

universities_bp = Blueprint("universities_bp", __name__, url_prefix="/api")


@universities_bp.get("/universities")
@jwt_required()
def list_universities():
    # country / program 交给后端过滤，search 在门户侧做
    universities = backend().get_universities(
        country=request.args.get("country"),
        program=request.args.get("program"),
    )
    items = filter_universities(
        universities,
        search=request.args.get("search"),
        country=request.args.get("country"),
    )
    return ok({
        "items": [u.to_api() for u in items],
        "countries": available_countries(universities),
        "maxSelections": MAX_UNIVERSITY_SELECTIONS,
    })


@universities_bp.post("/universities/selections")
@jwt_required()
def edit_selections():
    """
    选校编辑（不落库，保存走 PUT /api/applications/<id>/universities）。
    body: {
      "selections": [...],
      "op": "add" | "remove" | "up" | "down" | "intake",
      "index": 0, "universityId": .., "programId": .., "intake": ".."
    }
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return fail("request body must be a JSON object")
    raw = data.get("selections") or []
    if not isinstance(raw, list):
        return fail("selections must be a list")
    try:
        selections = [UniversitySelection.model_validate(s) for s in raw]
    except ValidationError as e:
        return fail(f"Invalid selections: {e}")

    op = data.get("op")
    index = data.get("index", -1)
    if not isinstance(index, int):
        return fail("index must be an integer")

    try:
        if op == "add":
            found = find_program(
                backend().get_universities(), data.get("universityId"), data.get("programId")
            )
            if found is None:
                return fail("University or program not found", 404)
            university, program = found
            selections = add_selection(selections, university, program)
        elif op == "remove":
            selections = remove_selection(selections, index)
        elif op == "up":
            selections = move_up(selections, index)
        elif op == "down":
            selections = move_down(selections, index)
        elif op == "intake":
            selections = update_intake(selections, index, data.get("intake") or "")
        else:
            return fail("op must be one of: add, remove, up, down, intake")
    except SelectionError as e:
        return fail(str(e))

    logger.debug(f"[selections] {op} -> {len(selections)} selected")
    return ok({
        "selections": [s.to_api() for s in selections],
        "validationError": validate_university_selection(selections),
    })
