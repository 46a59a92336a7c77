# services/portal_api.py
"""
留学后端 REST 接口的客户端。

- 每个请求带上学生的 Bearer token（由路由层从当前请求里取出后传进来）
- 后端返回的 JSON 在这里用 pydantic 记录校验一次，业务层拿到的都是显式字段
- 任何失败（HTTP 错误 / 网络异常 / 返回结构不对）统一抛 ApiError
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from models.application import Application, Eligibility, University, UniversitySelection
from models.calendar_event import CalendarEvent, EventRequest
from models.student_profile import StudentProfile

logger = logging.getLogger(__name__)

DEFAULT_ERROR = "An unexpected error occurred"

T = TypeVar("T", bound=BaseModel)


class ApiError(Exception):
    def __init__(self, status_code: int, message: str, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.payload = payload


def parse_api_error(error: Any) -> str:
    """
    取出给用户看的错误文案，优先级：
      返回体里的 error → 返回体里的 message → 异常本身的文字 → 兜底文案
    """
    payload = getattr(error, "payload", None)
    if payload is None and isinstance(error, dict):
        payload = error
    if isinstance(payload, dict):
        if payload.get("error"):
            return str(payload["error"])
        if payload.get("message"):
            return str(payload["message"])
    if isinstance(error, BaseException) and str(error):
        return str(error)
    return DEFAULT_ERROR


class PortalApiClient:
    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = 10,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    # ---------- 底层请求 ----------

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def request(self, method: str, path: str, params: Optional[dict] = None, json: Any = None) -> Any:
        url = f"{self.base_url}{path}"
        # 空参数不往后端传
        if params:
            params = {k: v for k, v in params.items() if v not in (None, "")}

        logger.debug(f"[portal-api] {method} {url} params={params}")
        try:
            resp = self.session.request(
                method, url, params=params or None, json=json,
                headers=self._headers(), timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"❌ [portal-api] 请求异常 {method} {url}: {e}")
            raise ApiError(502, f"Backend unavailable: {e}") from e

        try:
            data = resp.json() if resp.content else {}
        except ValueError:
            data = {}

        if not resp.ok:
            message = parse_api_error(data) if data else (resp.reason or DEFAULT_ERROR)
            logger.warning(f"[portal-api] {method} {url} -> {resp.status_code}: {message}")
            raise ApiError(resp.status_code, message, data)

        return data

    def _parse(self, model: Type[T], data: Any) -> T:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.error(f"❌ [portal-api] 返回结构不符合 {model.__name__}: {e}")
            raise ApiError(502, f"Malformed {model.__name__} from backend", data) from e

    def _parse_list(self, model: Type[T], items: Any) -> List[T]:
        return [self._parse(model, item) for item in (items or [])]

    @staticmethod
    def _unwrap(data: Any, key: str) -> Any:
        # 有的接口返回 { key: {...} }，有的直接返回对象本身
        if isinstance(data, dict) and key in data:
            return data[key]
        return data

    # ---------- 申请 ----------

    def check_eligibility(self) -> Eligibility:
        return self._parse(Eligibility, self.request("GET", "/applications/student/eligibility"))

    def create_application(self, title: Optional[str] = None, target_intake: Optional[str] = None,
                           target_country: Optional[str] = None) -> Application:
        body = {"title": title, "targetIntake": target_intake, "targetCountry": target_country}
        data = self.request("POST", "/applications/student/create",
                            json={k: v for k, v in body.items() if v is not None})
        return self._parse(Application, self._unwrap(data, "application"))

    def get_my_applications(self) -> List[Application]:
        data = self.request("GET", "/applications/student/my-applications")
        return self._parse_list(Application, self._unwrap(data, "applications"))

    def get_application(self, application_id) -> Application:
        data = self.request("GET", f"/applications/student/{application_id}")
        return self._parse(Application, self._unwrap(data, "application"))

    def get_universities(self, country: Optional[str] = None, program: Optional[str] = None) -> List[University]:
        data = self.request("GET", "/applications/student/universities",
                            params={"country": country, "program": program})
        return self._parse_list(University, self._unwrap(data, "universities"))

    def select_universities(self, application_id, selections: List[UniversitySelection]) -> Application:
        body = {"universitySelections": [s.to_api() for s in selections]}
        data = self.request("PUT", f"/applications/student/{application_id}/universities", json=body)
        return self._parse(Application, self._unwrap(data, "application"))

    def submit_application(self, application_id) -> Application:
        data = self.request("POST", f"/applications/student/{application_id}/submit")
        return self._parse(Application, self._unwrap(data, "application"))

    def manage_offer(self, application_id, action, offer_id=None, **extra) -> Application:
        body = {"action": getattr(action, "value", action)}
        if offer_id is not None:
            body["offerId"] = offer_id
        body.update({k: v for k, v in extra.items() if v is not None})
        data = self.request("PUT", f"/applications/student/{application_id}/offers", json=body)
        return self._parse(Application, self._unwrap(data, "application"))

    # ---------- 日历 ----------

    def get_student_events(self, month: Optional[int] = None, year: Optional[int] = None) -> List[CalendarEvent]:
        data = self.request("GET", "/calendar/student/events", params={"month": month, "year": year})
        return self._parse_list(CalendarEvent, self._unwrap(data, "events"))

    def get_my_events(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> List[CalendarEvent]:
        data = self.request("GET", "/calendar/my-events", params={"startDate": start_date, "endDate": end_date})
        return self._parse_list(CalendarEvent, self._unwrap(data, "events"))

    def create_event(self, event: EventRequest) -> CalendarEvent:
        data = self.request("POST", "/calendar/student/create", json=event.to_api())
        return self._parse(CalendarEvent, self._unwrap(data, "event"))

    def update_event(self, event_id, changes: EventRequest) -> CalendarEvent:
        data = self.request("PUT", f"/calendar/events/{event_id}", json=changes.to_api())
        return self._parse(CalendarEvent, self._unwrap(data, "event"))

    def delete_event(self, event_id) -> dict:
        return self.request("DELETE", f"/calendar/events/{event_id}")

    # ---------- 档案 ----------

    def get_profile(self) -> Optional[StudentProfile]:
        """还没建档时后端返回 404，这里返回 None。"""
        try:
            data = self.request("GET", "/student/profile")
        except ApiError as e:
            if e.status_code == 404:
                return None
            raise
        return self._parse(StudentProfile, self._unwrap(data, "profile"))

    def create_profile(self, data: dict) -> StudentProfile:
        return self._parse(StudentProfile, self._unwrap(self.request("POST", "/student/profile", json=data), "profile"))

    def update_profile(self, data: dict) -> StudentProfile:
        return self._parse(StudentProfile, self._unwrap(self.request("PUT", "/student/profile", json=data), "profile"))


class PortalApi:
    """
    Flask 扩展形式：create_app 里 init_app 读取配置，
    路由里用 portal_api.client(token) 拿到带当前学生 token 的客户端。
    """

    def __init__(self, app=None):
        self.base_url = "http://localhost:5000/api/v1"
        self.timeout = 10.0
        self.session: Optional[requests.Session] = None
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        self.base_url = app.config.get("PORTAL_API_BASE_URL", self.base_url)
        self.timeout = float(app.config.get("PORTAL_API_TIMEOUT", self.timeout))
        self.session = requests.Session()
        app.extensions["portal_api"] = self
        logger.info(f"[portal-api] backend = {self.base_url}")

    def client(self, token: Optional[str] = None) -> PortalApiClient:
        return PortalApiClient(self.base_url, token=token, timeout=self.timeout, session=self.session)
