import pytest

from models.application import Eligibility, OfferAction
from services.portal_api import ApiError


def _selection(university_id, name, intake="September 2025", priority=1, program_id=None):
    return {
        "universityId": university_id,
        "universityName": name,
        "programId": program_id or university_id * 10,
        "selectedIntake": intake,
        "priority": priority,
    }


@pytest.fixture
def eligible():
    return Eligibility(eligible=True, completion_percentage=92)


def test_requires_token(client, fake_backend):
    resp = client.get("/api/applications")
    assert resp.status_code == 401
    fake_backend.get_my_applications.assert_not_called()


def test_list_applications_with_view_state(client, auth_headers, fake_backend, make_application):
    fake_backend.get_my_applications.return_value = [
        make_application(id="a1", status="draft", stage="university_selection"),
        make_application(id="a2", status="offers_received", stage="offer_management",
                         offerLetters=[{"id": "o1", "status": "pending"}]),
    ]

    resp = client.get("/api/applications", headers=auth_headers)

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["code"] == 0
    first, second = body["data"]["items"]
    assert first["progress"] == 29
    assert first["nextStage"] == "document_preparation"
    assert first["canEdit"] is True
    assert first["canManageOffers"] is False
    assert first["stageLabel"] == "University Selection"
    assert first["createdAtLabel"] == "Jan 5, 2025"
    assert second["canManageOffers"] is True
    assert body["data"]["summary"]["total"] == 2
    assert body["data"]["summary"]["pendingOffers"] == 1

    # 学生的 token 原样转发给后端
    assert fake_backend.seen_tokens[-1] == auth_headers["Authorization"].split(" ", 1)[1]


def test_list_applications_filters_by_status(client, auth_headers, fake_backend, make_application):
    fake_backend.get_my_applications.return_value = [
        make_application(id="a1", status="draft"),
        make_application(id="a2", status="submitted"),
    ]

    resp = client.get("/api/applications?status=submitted", headers=auth_headers)

    data = resp.get_json()["data"]
    assert [a["id"] for a in data["items"]] == ["a2"]
    # 汇总基于全部申请
    assert data["summary"]["total"] == 2


def test_list_applications_tolerates_unknown_stage_and_status(client, auth_headers, fake_backend, make_application):
    fake_backend.get_my_applications.return_value = [
        make_application(id="a1", status="draft", stage="profile_review"),
        make_application(id="a2", status="draft", stage="interview"),
        make_application(id="a3", status="withdrawn", stage="submission",
                         offerLetters=[{"id": "o1", "status": "deferred"}]),
    ]

    resp = client.get("/api/applications", headers=auth_headers)

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    unknown_stage = data["items"][1]
    assert unknown_stage["stage"] == "interview"
    assert unknown_stage["progress"] == 0
    assert unknown_stage["nextStage"] is None
    assert unknown_stage["stageLabel"] == "interview"
    assert data["items"][2]["statusLabel"] == "withdrawn"
    assert data["items"][2]["canEdit"] is False
    assert data["summary"]["total"] == 3
    assert data["summary"]["draft"] == 2
    assert data["summary"]["totalOffers"] == 1
    assert data["summary"]["pendingOffers"] == 0


def test_create_application(client, auth_headers, fake_backend, make_application):
    fake_backend.create_application.return_value = make_application(id="new1")

    resp = client.post("/api/applications", json={"title": "Fall 2025 UK", "targetCountry": "UK"},
                       headers=auth_headers)

    assert resp.status_code == 201
    fake_backend.create_application.assert_called_once_with(
        title="Fall 2025 UK", target_intake=None, target_country="UK"
    )
    data = resp.get_json()["data"]
    assert data["status"] == "draft"
    assert data["stage"] == "profile_review"
    assert data["progress"] == 14


def test_application_detail_includes_submit_gate(client, auth_headers, fake_backend, make_application, eligible):
    fake_backend.get_application.return_value = make_application(id="a1")
    fake_backend.check_eligibility.return_value = eligible

    resp = client.get("/api/applications/a1", headers=auth_headers)

    data = resp.get_json()["data"]
    assert data["submitCheck"] == {"canSubmit": False, "reason": "No universities selected"}
    assert data["eligibility"]["completionPercentage"] == 92


def test_detail_selections_sorted_by_priority(client, auth_headers, fake_backend, make_application, eligible):
    fake_backend.get_application.return_value = make_application(
        id="a1",
        universitySelections=[_selection(2, "Toronto", priority=2), _selection(1, "Leeds", priority=1)],
    )
    fake_backend.check_eligibility.return_value = eligible

    data = client.get("/api/applications/a1", headers=auth_headers).get_json()["data"]

    assert [s["universityName"] for s in data["universitySelections"]] == ["Leeds", "Toronto"]
    assert data["submitCheck"] == {"canSubmit": True}


# ---------- universities ----------

def test_select_universities_validation_error(client, auth_headers, fake_backend):
    selections = [_selection(i, f"Uni {i}", priority=i) for i in range(1, 7)]

    resp = client.put("/api/applications/a1/universities", json={"universitySelections": selections},
                      headers=auth_headers)

    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Maximum 5 universities allowed"
    fake_backend.select_universities.assert_not_called()


def test_select_universities_duplicate_university(client, auth_headers, fake_backend):
    selections = [_selection(1, "Leeds", program_id=10), _selection(1, "Leeds", program_id=11, priority=2)]

    resp = client.put("/api/applications/a1/universities", json={"universitySelections": selections},
                      headers=auth_headers)

    assert resp.get_json()["message"] == "Duplicate universities selected"


def test_select_universities_rejected_when_not_editable(client, auth_headers, fake_backend, make_application):
    fake_backend.get_application.return_value = make_application(id="a1", status="submitted")

    resp = client.put("/api/applications/a1/universities",
                      json={"universitySelections": [_selection(1, "Leeds")]}, headers=auth_headers)

    assert resp.status_code == 409
    fake_backend.select_universities.assert_not_called()


def test_select_universities_forwards_sorted(client, auth_headers, fake_backend, make_application):
    fake_backend.get_application.return_value = make_application(id="a1", status="in_review")
    fake_backend.select_universities.return_value = make_application(id="a1", status="in_review")

    resp = client.put(
        "/api/applications/a1/universities",
        json={"universitySelections": [_selection(2, "Toronto", priority=2), _selection(1, "Leeds", priority=1)]},
        headers=auth_headers,
    )

    assert resp.status_code == 200
    app_id, sent = fake_backend.select_universities.call_args.args
    assert app_id == "a1"
    assert [s.university_name for s in sent] == ["Leeds", "Toronto"]


def test_select_universities_bad_payload(client, auth_headers, fake_backend):
    resp = client.put("/api/applications/a1/universities", json={"universitySelections": "nope"},
                      headers=auth_headers)
    assert resp.status_code == 400


# ---------- submit ----------

def test_submit_blocked_by_profile_completion(client, auth_headers, fake_backend, make_application):
    fake_backend.get_application.return_value = make_application(
        id="a1", universitySelections=[_selection(1, "Leeds")]
    )
    fake_backend.check_eligibility.return_value = Eligibility(completion_percentage=60)

    resp = client.post("/api/applications/a1/submit", headers=auth_headers)

    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Profile completion below 85%"
    fake_backend.submit_application.assert_not_called()


def test_submit_ok(client, auth_headers, fake_backend, make_application, eligible):
    fake_backend.get_application.return_value = make_application(
        id="a1", universitySelections=[_selection(1, "Leeds")]
    )
    fake_backend.check_eligibility.return_value = eligible
    fake_backend.submit_application.return_value = make_application(
        id="a1", status="submitted", stage="submission", submissionDate="2025-03-01T14:30:00"
    )

    resp = client.post("/api/applications/a1/submit", headers=auth_headers)

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["status"] == "submitted"
    assert data["canEdit"] is False
    assert data["submissionDateLabel"] == "Mar 1, 2025, 02:30 PM"


def test_backend_error_passes_through(client, auth_headers, fake_backend, make_application, eligible):
    fake_backend.get_application.return_value = make_application(
        id="a1", universitySelections=[_selection(1, "Leeds")]
    )
    fake_backend.check_eligibility.return_value = eligible
    fake_backend.submit_application.side_effect = ApiError(422, "Documents missing", {"error": "Documents missing"})

    resp = client.post("/api/applications/a1/submit", headers=auth_headers)

    assert resp.status_code == 422
    assert resp.get_json() == {"code": 422, "message": "Documents missing"}


# ---------- offers ----------

def test_accept_offer(client, auth_headers, fake_backend, make_application):
    fake_backend.get_application.return_value = make_application(id="a1", status="offers_received")
    fake_backend.manage_offer.return_value = make_application(id="a1", status="accepted")

    resp = client.put("/api/applications/a1/offers", json={"action": "accept", "offerId": "o1"},
                      headers=auth_headers)

    assert resp.status_code == 200
    fake_backend.manage_offer.assert_called_once_with("a1", OfferAction.ACCEPT, offer_id="o1")


def test_reject_offer_not_allowed_in_draft(client, auth_headers, fake_backend, make_application):
    fake_backend.get_application.return_value = make_application(id="a1", status="draft")

    resp = client.put("/api/applications/a1/offers", json={"action": "reject", "offerId": "o1"},
                      headers=auth_headers)

    assert resp.status_code == 409
    fake_backend.manage_offer.assert_not_called()


def test_offer_action_validated(client, auth_headers, fake_backend):
    resp = client.put("/api/applications/a1/offers", json={"action": "maybe"}, headers=auth_headers)
    assert resp.status_code == 400

    resp = client.put("/api/applications/a1/offers", json={"action": "accept"}, headers=auth_headers)
    assert resp.get_json()["message"] == "offerId required"


def test_add_offer_forwards_details(client, auth_headers, fake_backend, make_application):
    fake_backend.manage_offer.return_value = make_application(id="a1", status="offers_received")

    client.put(
        "/api/applications/a1/offers",
        json={"action": "add", "universityName": "Leeds", "programName": "MSc DS", "conditions": ["IELTS 7.0"]},
        headers=auth_headers,
    )

    args, kwargs = fake_backend.manage_offer.call_args
    assert args == ("a1", OfferAction.ADD)
    assert kwargs["universityName"] == "Leeds"
    assert kwargs["conditions"] == ["IELTS 7.0"]


# ---------- 请求体必须是 JSON 对象 ----------

@pytest.mark.parametrize("method,url", [
    ("post", "/api/applications"),
    ("put", "/api/applications/a1/universities"),
    ("put", "/api/applications/a1/offers"),
])
def test_array_body_is_rejected(client, auth_headers, fake_backend, method, url):
    resp = getattr(client, method)(url, json=[1, 2], headers=auth_headers)

    assert resp.status_code == 400
    assert resp.get_json()["message"] == "request body must be a JSON object"
    fake_backend.create_application.assert_not_called()
    fake_backend.select_universities.assert_not_called()
    fake_backend.manage_offer.assert_not_called()
