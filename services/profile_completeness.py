# services/profile_completeness.py
"""
学生档案完整度（首页「档案完善度」卡片用）。

每个分区的字段分三组：
- essential：必填，占分区 70%
- conditional：按已填内容触发（比如选了 Family Sponsor 才要担保人信息），占 20%
- optional：选填，占 10%
组内按字段权重算百分比，整体再按 SECTION_WEIGHTS 加权。
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from pydantic import Field

from models.application import PortalRecord
from models.student_profile import StudentProfile
from services.date_display import parse_date

SECTION_WEIGHTS = {
    "personalInfo": 25,
    "educationalBackground": 30,
    "testScores": 20,
    "studyPreferences": 15,
    "financialInfo": 10,
}

EXCELLENT, GOOD, FAIR, POOR = 95, 85, 70, 50

ESSENTIAL_SHARE, CONDITIONAL_SHARE, OPTIONAL_SHARE = 70, 20, 10

# (section, 标题, 是否阻塞提交)
SECTION_TITLES = [
    ("personalInfo", "Personal Information", True),
    ("educationalBackground", "Academic Background", True),
    ("testScores", "Test Scores", False),
    ("studyPreferences", "Study Preferences", True),
    ("financialInfo", "Financial Information", False),
]

SPONSOR_FUNDING = ("Family Sponsor", "Third Party Sponsor")
ENGLISH_TESTS = ("ielts", "toefl", "pte", "duolingo")
ALL_TESTS = ENGLISH_TESTS + ("sat", "act", "gre", "gmat", "neet", "mcat")

_cnic_re = re.compile(r"^\d{5}-\d{7}-\d$")
_phone_re = re.compile(r"^\+?[\d\s\-()]{10,}$")
_email_re = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _round(x: float) -> int:
    return int(math.floor(x + 0.5))


# ---------- 字段校验 ----------

def _matches(pattern):
    return lambda v: isinstance(v, str) and bool(pattern.match(v))


def is_past_date(value) -> bool:
    dt = parse_date(value)
    return dt is not None and dt < datetime.now()


def is_future_date(value) -> bool:
    dt = parse_date(value)
    return dt is not None and dt > datetime.now()


def _long_text(value) -> bool:
    return isinstance(value, str) and len(value) >= 50


def _grade_list(value) -> bool:
    return (
        isinstance(value, list)
        and len(value) >= 3
        and all(isinstance(g, dict) and g.get("subject") and g.get("grade") for g in value)
    )


def _work_history(value) -> bool:
    return (
        isinstance(value, list)
        and len(value) > 0
        and all(isinstance(e, dict) and e.get("company") and e.get("position") and e.get("startDate") for e in value)
    )


def get_nested(data, path: str):
    """'a.b.c' 逐层取值，任何一层缺失返回 None；空 path 返回 data 本身。"""
    if not path:
        return data
    current = data
    for key in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(key)
        if current is None:
            return None
    return current


def has_test_score(data, test: str) -> bool:
    if test == "ielts":
        return bool(get_nested(data, "ieltsScores.total"))
    return bool(get_nested(data, f"{test}Score.total") or get_nested(data, f"{test}Score.composite"))


def has_english_test(data) -> bool:
    return any(has_test_score(data, t) for t in ENGLISH_TESTS)


@dataclass(frozen=True)
class FieldRule:
    path: str
    weight: int
    description: str
    validator: Optional[Callable[[Any], bool]] = None


def is_filled(value, rule: FieldRule) -> bool:
    # False / 0 算已填写，只有缺失和空值不算
    if value is None or value == "" or value == [] or value == {}:
        return False
    if rule.validator is not None:
        return bool(rule.validator(value))
    return True


# ======================================================
# ===================== 各分区字段 ======================
# ======================================================

PERSONAL_ESSENTIAL = [
    FieldRule("fullName.firstName", 5, "First Name"),
    FieldRule("fullName.lastName", 5, "Last Name"),
    FieldRule("fatherName", 3, "Father's Name"),
    FieldRule("dateOfBirth", 4, "Date of Birth", is_past_date),
    FieldRule("gender", 3, "Gender"),
    FieldRule("cnicNumber", 5, "CNIC Number", _matches(_cnic_re)),
    FieldRule("phone", 4, "Phone Number", _matches(_phone_re)),
    FieldRule("email", 5, "Email Address", _matches(_email_re)),
    FieldRule("permanentAddress.street", 3, "Street Address"),
    FieldRule("permanentAddress.city", 3, "City"),
    FieldRule("permanentAddress.provinceOfDomicile", 3, "Province"),
    FieldRule("permanentAddress.postalCode", 2, "Postal Code"),
    FieldRule("residenceCountry", 3, "Country of Residence"),
    FieldRule("emergencyContact.name", 3, "Emergency Contact Name"),
    FieldRule("emergencyContact.relation", 2, "Emergency Contact Relation"),
    FieldRule("emergencyContact.phone", 3, "Emergency Contact Phone"),
    FieldRule("passportDetails.passportCountry", 4, "Passport Country"),
    FieldRule("passportDetails.passportNumber", 4, "Passport Number"),
    FieldRule("passportDetails.passportExpiry", 4, "Passport Expiry", is_future_date),
]

PERSONAL_OPTIONAL = [
    FieldRule("religion", 1, "Religion"),
    FieldRule("profilePicture", 2, "Profile Picture"),
    FieldRule("socialLinks.linkedin", 1, "LinkedIn Profile"),
    FieldRule("socialLinks.facebook", 1, "Facebook Profile"),
    FieldRule("socialLinks.instagram", 1, "Instagram Profile"),
]

EDUCATION_ESSENTIAL = [
    FieldRule("studyLevel", 8, "Study Level"),
    FieldRule("admissionYear", 5, "Admission Year"),
]

EDUCATION_OPTIONAL = [
    FieldRule("educationalGap", 2, "Educational Gap Explanation"),
    FieldRule("additionalCertification", 1, "Additional Certifications"),
    FieldRule("hecEquivalenceStatus.applied", 2, "HEC Equivalence Status"),
]


def _school_rules(key: str, label: str, grading: Optional[str]) -> List[FieldRule]:
    rules = [
        FieldRule(f"{key}.year", 6, f"{label} Year"),
        FieldRule(f"{key}.board", 4, f"{label} Board"),
        FieldRule(f"{key}.gradingSystem", 3, f"{label} Grading System"),
    ]
    # 按所选评分方式要求百分比或科目成绩
    if grading == "percentage":
        rules.append(FieldRule(f"{key}.scorePercentage", 5, f"{label} Percentage"))
    elif grading == "grades":
        rules.append(FieldRule(f"{key}.grades", 5, f"{label} Grades", _grade_list))
    return rules


def _degree_rules(key: str, label: str, weights) -> List[FieldRule]:
    names = ("programName", "institution", "country", "startDate", "endDate", "cgpaPercentage")
    titles = ("Program", "Institution", "Country", "Start Date", "End Date", "CGPA")
    return [
        FieldRule(f"{key}.{name}", w, f"{label} {title}")
        for name, title, w in zip(names, titles, weights)
    ]


def _education_conditional(data) -> List[FieldRule]:
    level = get_nested(data, "studyLevel")
    rules: List[FieldRule] = []
    if level == "bachelor":
        rules += _school_rules("matriculation", "Matriculation", get_nested(data, "matriculation.gradingSystem"))
        rules += _school_rules("intermediate", "Intermediate", get_nested(data, "intermediate.gradingSystem"))
        rules.append(FieldRule("intermediate.preEngineeringOrPreMedical", 3, "Intermediate Program"))
    elif level == "master":
        rules += _degree_rules("bachelorDegree", "Bachelor's", (8, 6, 4, 3, 3, 6))
        rules.append(FieldRule("workExperience", 8, "Work Experience", _work_history))
    elif level == "phd":
        rules += _degree_rules("bachelorDegree", "Bachelor's", (6, 4, 3, 2, 2, 4))
        rules += _degree_rules("masterDegree", "Master's", (8, 6, 4, 3, 3, 6))
    elif level == "diploma":
        rules += [
            FieldRule("diploma.programName", 10, "Diploma Program"),
            FieldRule("diploma.institution", 8, "Diploma Institution"),
            FieldRule("diploma.year", 5, "Diploma Year"),
        ]

    if get_nested(data, "additionalCertification") is True:
        rules += [
            FieldRule("diploma.programName", 5, "Additional Certification Program"),
            FieldRule("diploma.institution", 4, "Additional Certification Institution"),
            FieldRule("diploma.year", 3, "Additional Certification Year"),
        ]
    if get_nested(data, "hecEquivalenceStatus.applied") is True:
        rules.append(FieldRule("hecEquivalenceStatus.obtainedDate", 5, "HEC Equivalence Date"))
    return rules


# 至少一门英语考试，整个分区作为取值
TEST_ESSENTIAL = [
    FieldRule("", 1, "English Proficiency Test", has_english_test),
]

TEST_OPTIONAL = [
    FieldRule("partTimeWork", 2, "Part-time Work Interest"),
    FieldRule("backlogs", 3, "Academic Backlogs"),
    FieldRule("workExperience", 5, "Work Experience Details"),
]

# 已填了分数的考试才要求补全该考试的其余字段
TEST_FIELDS = {
    "ielts": [
        FieldRule("ieltsScores.listening", 4, "IELTS Listening Score"),
        FieldRule("ieltsScores.reading", 4, "IELTS Reading Score"),
        FieldRule("ieltsScores.writing", 4, "IELTS Writing Score"),
        FieldRule("ieltsScores.speaking", 4, "IELTS Speaking Score"),
        FieldRule("ieltsScores.total", 6, "IELTS Overall Band"),
        FieldRule("ieltsScores.testDate", 3, "IELTS Test Date"),
    ],
    "toefl": [
        FieldRule("toeflScore.total", 15, "TOEFL Total Score"),
        FieldRule("toeflScore.testDate", 5, "TOEFL Test Date"),
    ],
    "pte": [
        FieldRule("pteScore.total", 15, "PTE Total Score"),
        FieldRule("pteScore.testDate", 5, "PTE Test Date"),
    ],
    "duolingo": [
        FieldRule("duolingoScore.total", 15, "Duolingo Total Score"),
        FieldRule("duolingoScore.testDate", 5, "Duolingo Test Date"),
    ],
    "sat": [
        FieldRule("satScore.total", 10, "SAT Total Score"),
        FieldRule("satScore.testDate", 3, "SAT Test Date"),
    ],
    "act": [
        FieldRule("actScore.composite", 10, "ACT Composite Score"),
        FieldRule("actScore.testDate", 3, "ACT Test Date"),
    ],
    "gre": [
        FieldRule("greScore.verbal", 4, "GRE Verbal Score"),
        FieldRule("greScore.quantitative", 4, "GRE Quantitative Score"),
        FieldRule("greScore.analytical", 4, "GRE Analytical Score"),
        FieldRule("greScore.testDate", 3, "GRE Test Date"),
    ],
    "gmat": [
        FieldRule("gmatScore.total", 12, "GMAT Total Score"),
        FieldRule("gmatScore.testDate", 3, "GMAT Test Date"),
    ],
    "neet": [
        FieldRule("neetScore.total", 12, "NEET Score"),
        FieldRule("neetScore.testDate", 3, "NEET Test Date"),
    ],
    "mcat": [
        FieldRule("mcatScore.total", 12, "MCAT Total Score"),
        FieldRule("mcatScore.testDate", 3, "MCAT Test Date"),
    ],
}


def _test_conditional(data) -> List[FieldRule]:
    rules: List[FieldRule] = []
    for test in ALL_TESTS:
        if has_test_score(data, test):
            rules += TEST_FIELDS[test]
    return rules


PREFERENCES_ESSENTIAL = [
    FieldRule("preferredCourse", 15, "Field of Study"),
    FieldRule("preferredCountry", 15, "Preferred Country"),
    FieldRule("intendedIntake.season", 8, "Intake Season"),
    FieldRule("intendedIntake.year", 8, "Intake Year"),
    FieldRule("studyReason", 12, "Study Motivation", _long_text),
    FieldRule("careerGoals", 12, "Career Goals", _long_text),
]

PREFERENCES_OPTIONAL = [
    FieldRule("specialization", 5, "Specialization"),
    FieldRule("preferredUniversities", 8, "Preferred Universities"),
    FieldRule("scholarshipInterest", 3, "Scholarship Interest"),
    FieldRule("coOpInterest", 3, "Co-op Interest"),
    FieldRule("familyAbroad", 2, "Family Abroad"),
    FieldRule("accommodationSupport", 2, "Accommodation Support"),
]

FINANCIAL_ESSENTIAL = [
    FieldRule("fundingSource", 15, "Funding Source"),
    FieldRule("budgetConstraints", 12, "Budget Range"),
    FieldRule("travelHistory", 8, "Travel History"),
]

FINANCIAL_OPTIONAL = [
    FieldRule("bankStatementsSubmitted", 5, "Bank Statements"),
    FieldRule("financialAffidavit", 5, "Financial Affidavit"),
    FieldRule("visaRejections", 3, "Visa Rejection History"),
    FieldRule("policeClearanceCertificate", 4, "Police Clearance"),
    FieldRule("medicalClearance", 4, "Medical Clearance"),
    FieldRule("domicileCertificateSubmitted", 3, "Domicile Certificate"),
    FieldRule("nocRequired", 3, "NOC Certificate"),
    FieldRule("additionalInfo", 2, "Additional Information"),
]

SPONSOR_FIELDS = [
    FieldRule("sponsorDetails.sponsorName", 10, "Sponsor Name"),
    FieldRule("sponsorDetails.sponsorRelation", 8, "Sponsor Relationship"),
    FieldRule("sponsorDetails.sponsorCnic", 8, "Sponsor CNIC", _matches(_cnic_re)),
    FieldRule("sponsorDetails.sponsorAnnualIncome", 10, "Sponsor Income"),
]


def needs_sponsor(data) -> bool:
    return get_nested(data, "fundingSource") in SPONSOR_FUNDING


def _financial_conditional(data) -> List[FieldRule]:
    rules: List[FieldRule] = []
    if needs_sponsor(data):
        rules += SPONSOR_FIELDS
    if get_nested(data, "medicalClearance") is True:
        rules.append(FieldRule("medicalConditions", 5, "Medical Conditions Details"))
    return rules


@dataclass(frozen=True)
class SectionRules:
    essential: List[FieldRule]
    optional: List[FieldRule]
    conditional: Callable[[Any], List[FieldRule]] = lambda data: []


SECTIONS: Dict[str, SectionRules] = {
    "personalInfo": SectionRules(PERSONAL_ESSENTIAL, PERSONAL_OPTIONAL),
    "educationalBackground": SectionRules(EDUCATION_ESSENTIAL, EDUCATION_OPTIONAL, _education_conditional),
    "testScores": SectionRules(TEST_ESSENTIAL, TEST_OPTIONAL, _test_conditional),
    "studyPreferences": SectionRules(PREFERENCES_ESSENTIAL, PREFERENCES_OPTIONAL),
    "financialInfo": SectionRules(FINANCIAL_ESSENTIAL, FINANCIAL_OPTIONAL, _financial_conditional),
}


# ======================================================
# ===================== 计算 ============================
# ======================================================

class FieldCount(PortalRecord):
    total: int = 0
    completed: int = 0


class SectionResult(PortalRecord):
    percentage: int = 0
    essential_fields: FieldCount = Field(default_factory=FieldCount)
    optional_fields: FieldCount = Field(default_factory=FieldCount)
    conditional_fields: FieldCount = Field(default_factory=FieldCount)
    missing_fields: List[str] = Field(default_factory=list)


class ProfileCompleteness(PortalRecord):
    overall_percentage: int = 0
    section_completeness: Dict[str, int] = Field(default_factory=dict)
    section_details: Dict[str, SectionResult] = Field(default_factory=dict)
    missing_sections: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    is_submission_ready: bool = False


def _group(data, rules: List[FieldRule]):
    """返回 (百分比, 已完成个数)。没有要求的字段时算 100。"""
    if not rules:
        return 100, 0
    total = sum(r.weight for r in rules)
    done = [r for r in rules if is_filled(get_nested(data, r.path), r)]
    return _round(100 * sum(r.weight for r in done) / total), len(done)


def section_completeness(data, rules: SectionRules) -> SectionResult:
    data = data or {}
    conditional = rules.conditional(data)

    essential_pct, essential_done = _group(data, rules.essential)
    conditional_pct, conditional_done = _group(data, conditional)
    optional_pct, optional_done = _group(data, rules.optional)

    # 整个分区一项都没填时直接算 0
    if not data:
        percentage = 0
    else:
        percentage = _round(
            (essential_pct * ESSENTIAL_SHARE
             + conditional_pct * CONDITIONAL_SHARE
             + optional_pct * OPTIONAL_SHARE) / 100
        )

    missing = [
        r.description
        for r in rules.essential + conditional
        if not is_filled(get_nested(data, r.path), r)
    ]
    return SectionResult(
        percentage=percentage,
        essential_fields=FieldCount(total=len(rules.essential), completed=essential_done),
        optional_fields=FieldCount(total=len(rules.optional), completed=optional_done),
        conditional_fields=FieldCount(total=len(conditional), completed=conditional_done),
        missing_fields=missing,
    )


def _profile_data(profile) -> dict:
    if profile is None:
        return {}
    if isinstance(profile, StudentProfile):
        # 各分区是 extra 字段，dump 后保持原来的 camelCase key
        return profile.model_dump(by_alias=True)
    return dict(profile)


def _recommendations(data: dict, sections: Dict[str, SectionResult]) -> List[str]:
    recs: List[str] = []
    personal = data.get("personalInfo") or {}
    education = data.get("educationalBackground") or {}
    tests = data.get("testScores") or {}
    prefs = data.get("studyPreferences") or {}
    financial = data.get("financialInfo") or {}
    level = education.get("studyLevel")

    if sections["personalInfo"].percentage < GOOD:
        if not personal.get("profilePicture"):
            recs.append("Add a professional profile picture to enhance your application")
        if "Passport Expiry" in sections["personalInfo"].missing_fields:
            recs.append("Ensure your passport is valid for at least 6 months beyond your intended travel date")

    if sections["educationalBackground"].percentage < GOOD:
        if level == "bachelor":
            recs.append("Complete your matriculation and intermediate education details")
        elif level == "master":
            recs.append("Add your bachelor's degree information and relevant work experience")

    if sections["testScores"].percentage < GOOD:
        if not has_english_test(tests):
            recs.append("Add English proficiency test scores (IELTS, TOEFL, PTE, or Duolingo)")
        if level in ("master", "phd"):
            recs.append("Consider adding GRE or GMAT scores to strengthen your application")

    if sections["studyPreferences"].percentage < GOOD:
        if not prefs.get("preferredUniversities"):
            recs.append("Select preferred universities to help us match you with suitable programs")
        if not _long_text(prefs.get("studyReason")):
            recs.append("Provide a detailed explanation of why you want to study abroad")

    if sections["financialInfo"].percentage < GOOD:
        sponsor_missing = any(r.description in sections["financialInfo"].missing_fields for r in SPONSOR_FIELDS)
        if needs_sponsor(financial) and sponsor_missing:
            recs.append("Complete sponsor details including income information")
        if not financial.get("bankStatementsSubmitted") and not financial.get("financialAffidavit"):
            recs.append("Upload financial documents such as bank statements or affidavit")

    return recs[:5]


def _submission_ready(data: dict, sections: Dict[str, SectionResult]) -> bool:
    blocking = [key for key, _, is_blocking in SECTION_TITLES if is_blocking]
    financial = data.get("financialInfo") or {}
    return (
        all(sections[key].percentage >= FAIR for key in blocking)
        and has_english_test(data.get("testScores") or {})
        and bool(financial.get("fundingSource") and financial.get("budgetConstraints"))
    )


def calculate_completeness(profile) -> ProfileCompleteness:
    """profile 可以是 StudentProfile、后端原始 dict 或 None（还没建档）。"""
    data = _profile_data(profile)
    sections = {key: section_completeness(data.get(key), rules) for key, rules in SECTIONS.items()}
    percentages = {key: result.percentage for key, result in sections.items()}
    overall = _round(sum(percentages[key] * w for key, w in SECTION_WEIGHTS.items()) / 100)

    return ProfileCompleteness(
        overall_percentage=overall,
        section_completeness=percentages,
        section_details=sections,
        missing_sections=[key for key, pct in percentages.items() if pct < FAIR],
        recommendations=_recommendations(data, sections),
        is_submission_ready=_submission_ready(data, sections),
    )


def completion_level(percentage: int) -> str:
    if percentage >= EXCELLENT:
        return "excellent"
    if percentage >= GOOD:
        return "good"
    if percentage >= FAIR:
        return "fair"
    if percentage >= POOR:
        return "poor"
    return "incomplete"


def get_completion_status(result: ProfileCompleteness) -> dict:
    return {
        "isComplete": result.overall_percentage >= EXCELLENT,
        "completionPercentage": result.overall_percentage,
        "nextSteps": list(result.recommendations),
        "completionLevel": completion_level(result.overall_percentage),
    }


def get_section_progress(result: ProfileCompleteness) -> List[dict]:
    progress = []
    for key, title, is_blocking in SECTION_TITLES:
        pct = result.section_completeness[key]
        if pct >= EXCELLENT:
            status = "complete"
        elif pct >= POOR:
            status = "partial"
        else:
            status = "incomplete"
        progress.append({
            "section": key,
            "title": title,
            "percentage": pct,
            "status": status,
            "missingFields": list(result.section_details[key].missing_fields),
            "isBlocking": is_blocking,
        })
    return progress


def completeness_view(profile) -> dict:
    """首页卡片：整体状态 + 各分区进度。"""
    result = calculate_completeness(profile)
    view = get_completion_status(result)
    view["missingSections"] = list(result.missing_sections)
    view["isSubmissionReady"] = result.is_submission_ready
    view["sections"] = get_section_progress(result)
    return view
