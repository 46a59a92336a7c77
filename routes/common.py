# routes/common.py
from __future__ import annotations

from flask import jsonify, request
from flask_jwt_extended import get_jwt_identity

from extensions import portal_api
from services.portal_api import PortalApiClient


def _current_user_id():
    """从 JWT identity 中解析当前用户 id，兼容 int / str / dict 三种情况。"""
    ident = get_jwt_identity()
    if ident is None:
        return None
    if isinstance(ident, dict):
        return ident.get("id") or ident.get("user_id")
    try:
        return int(ident)
    except (TypeError, ValueError):
        # 后端的 id 可能是字符串（ObjectId 之类），原样返回
        return ident


def _bearer_token():
    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer "):
        return auth[7:].strip() or None
    return None


def backend() -> PortalApiClient:
    """带上当前学生 token 的后端客户端。"""
    return portal_api.client(_bearer_token())


def ok(data=None, **extra):
    body = {"code": 0, "data": data}
    body.update(extra)
    return jsonify(body)


def fail(message: str, code: int = 400):
    return jsonify({"code": code, "message": message}), code
