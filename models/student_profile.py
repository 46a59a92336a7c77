from __future__ import annotations

from typing import Optional

from pydantic import ConfigDict, Field

from models.application import PortalRecord

# 档案向导的步骤顺序：(key, 标题)
# key 与后端 profileCompletionStatus 里的字段一一对应
PROFILE_STEPS = [
    ("personalInfo", "Personal Details"),
    ("educationalBackground", "Academic Background"),
    ("testScores", "Test Scores"),
    ("studyPreferences", "Study Preferences"),
    ("financialInfo", "Financial & Documentation"),
]


class ProfileCompletionStatus(PortalRecord):
    personal_info: bool = False
    educational_background: bool = False
    test_scores: bool = False
    study_preferences: bool = False
    financial_info: bool = False
    overall_percentage: float = 0

    def is_done(self, step_key: str) -> bool:
        data = self.model_dump(by_alias=True)
        return bool(data.get(step_key))


class StudentProfile(PortalRecord):
    """
    只校验向导需要的部分；各步骤的具体表单字段原样透传给后端，
    所以这里保留 extra 字段。
    """

    model_config = ConfigDict(extra="allow")

    id: Optional[int | str] = None
    user_id: Optional[int | str] = None
    profile_completion_status: ProfileCompletionStatus = Field(default_factory=ProfileCompletionStatus)
