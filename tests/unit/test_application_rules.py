import pytest

from models.application import STAGES, ApplicationStatus, UniversitySelection
from services.application_rules import (
    calculate_stage_progress,
    can_edit_application,
    can_manage_offers,
    can_submit_application,
    get_application_summary,
    get_next_stage,
    is_current_stage,
    is_stage_completed,
    sort_universities_by_priority,
    stage_timeline,
    validate_university_selection,
)


def _selection(university_id=1, name="Uni", intake="Fall 2025", program_id=10, priority=1):
    return UniversitySelection(
        university_id=university_id,
        university_name=name,
        program_id=program_id,
        selected_intake=intake,
        priority=priority,
    )


# ---------- stage progress ----------

@pytest.mark.parametrize("stage,expected", [
    ("profile_review", 14),
    ("university_selection", 29),
    ("document_preparation", 43),
    ("submission", 57),
    ("offer_management", 71),
    ("visa_application", 86),
    ("completed", 100),
])
def test_stage_progress(stage, expected):
    assert calculate_stage_progress(stage) == expected


def test_stage_progress_is_monotonic():
    values = [calculate_stage_progress(s) for s in STAGES]
    assert values == sorted(values)


def test_unknown_stage_progress_is_zero():
    assert calculate_stage_progress("archived") == 0
    assert calculate_stage_progress(None) == 0


def test_next_stage():
    assert get_next_stage("profile_review") == "university_selection"
    assert get_next_stage("visa_application") == "completed"
    assert get_next_stage("completed") is None
    assert get_next_stage("unknown") is None


def test_stage_completed_and_current():
    assert is_stage_completed("profile_review", "submission")
    assert not is_stage_completed("submission", "submission")
    assert is_current_stage("submission", "submission")
    assert not is_current_stage("profile_review", "submission")


def test_unknown_stage_is_neither_completed_nor_current():
    assert not is_stage_completed("bogus", "submission")
    assert not is_stage_completed("profile_review", "bogus")
    assert not is_current_stage("bogus", "bogus")


def test_stage_timeline_marks_position():
    timeline = stage_timeline("document_preparation")
    assert [t["stage"] for t in timeline] == STAGES
    assert [t["completed"] for t in timeline[:3]] == [True, True, False]
    assert timeline[2]["current"] is True
    assert timeline[3]["label"] == "Application Submission"


# ---------- permissions ----------

@pytest.mark.parametrize("status", [s.value for s in ApplicationStatus])
def test_can_edit_only_draft_and_in_review(status):
    assert can_edit_application(status) == (status in ("draft", "in_review"))


@pytest.mark.parametrize("status", [s.value for s in ApplicationStatus])
def test_can_manage_offers_only_with_offers(status):
    assert can_manage_offers(status) == (status in ("offers_received", "accepted"))


def test_permissions_accept_enum_members():
    assert can_edit_application(ApplicationStatus.DRAFT)
    assert can_manage_offers(ApplicationStatus.ACCEPTED)


def test_submit_without_selections():
    check = can_submit_application("draft", [], 90)
    assert check.can_submit is False
    assert check.reason == "No universities selected"


def test_submit_low_completion_checked_before_selections():
    check = can_submit_application("draft", [_selection(name="X")], 60)
    assert check.can_submit is False
    assert "Profile completion" in check.reason


def test_submit_already_submitted_wins():
    check = can_submit_application("submitted", [], 0)
    assert check.can_submit is False
    assert check.reason == "Application already submitted"


def test_submit_missing_intake_names_first_university():
    selections = [_selection(name="A"), _selection(2, "B", intake=""), _selection(3, "C", intake="")]
    check = can_submit_application("draft", selections, 85)
    assert check.reason == "Missing intake selection for B"


def test_submit_ok():
    check = can_submit_application("draft", [_selection()], 85)
    assert check.can_submit is True
    assert check.reason is None
    assert check.to_dict() == {"canSubmit": True}


def test_submit_check_to_dict_with_reason():
    assert can_submit_application("draft", [], 90).to_dict() == {
        "canSubmit": False,
        "reason": "No universities selected",
    }


# ---------- selection validator ----------

def test_validate_empty():
    assert validate_university_selection([]) == "Please select at least one university"


def test_validate_more_than_five_regardless_of_content():
    selections = [_selection(1, intake="") for _ in range(6)]
    assert validate_university_selection(selections) == "Maximum 5 universities allowed"


def test_validate_missing_intake():
    selections = [_selection(1, "Oxford"), _selection(2, "Leeds", intake="")]
    assert validate_university_selection(selections) == "Please select intake for Leeds"


def test_validate_same_university_different_program_is_duplicate():
    selections = [_selection(1, program_id=10), _selection(1, program_id=11, priority=2)]
    assert validate_university_selection(selections) == "Duplicate universities selected"


def test_validate_duplicate_across_int_and_string_ids():
    selections = [_selection(1), _selection("1", program_id=11, priority=2)]
    assert validate_university_selection(selections) == "Duplicate universities selected"


def test_validate_ok():
    assert validate_university_selection([_selection(1), _selection(2, priority=2)]) is None


def test_sort_by_priority():
    selections = [_selection(1, "A", priority=3), _selection(2, "B", priority=1), _selection(3, "C", priority=2)]
    assert [s.university_name for s in sort_universities_by_priority(selections)] == ["B", "C", "A"]


# ---------- summary ----------

def test_summary_tally(make_application):
    apps = [
        make_application(status="draft", offerLetters=[]),
        make_application(
            id="2",
            status="accepted",
            offerLetters=[{"status": "pending"}, {"status": "accepted"}],
        ),
    ]
    summary = get_application_summary(apps)
    assert summary.total == 2
    assert summary.draft == 1
    assert summary.accepted == 1
    assert summary.total_offers == 2
    assert summary.pending_offers == 1
    assert summary.accepted_offers == 1

    data = summary.to_api()
    assert data["totalOffers"] == 2
    assert data["inReview"] == 0


def test_summary_does_not_count_visa_applied_separately(make_application):
    summary = get_application_summary([make_application(status="visa_applied")])
    assert summary.total == 1
    assert "visaApplied" not in summary.to_api()


def test_summary_empty():
    summary = get_application_summary([])
    assert summary.total == 0
    assert summary.total_offers == 0
