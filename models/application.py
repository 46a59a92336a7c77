# models/application.py
"""
申请（Application）相关的数据记录。

后端返回的 JSON 统一在这里做一次校验（camelCase ↔ snake_case），
之后业务层只和这些显式字段打交道，不再到处 dict.get()。
"""
from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApplicationStatus(str, Enum):
    DRAFT = "draft"
    IN_REVIEW = "in_review"
    SUBMITTED = "submitted"
    OFFERS_RECEIVED = "offers_received"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    VISA_APPLIED = "visa_applied"
    COMPLETED = "completed"


class ApplicationStage(str, Enum):
    PROFILE_REVIEW = "profile_review"
    UNIVERSITY_SELECTION = "university_selection"
    DOCUMENT_PREPARATION = "document_preparation"
    SUBMISSION = "submission"
    OFFER_MANAGEMENT = "offer_management"
    VISA_APPLICATION = "visa_application"
    COMPLETED = "completed"


STAGES = [
    "profile_review",        # 档案审核
    "university_selection",  # 选校
    "document_preparation",  # 材料准备
    "submission",            # 递交申请
    "offer_management",      # 录取管理
    "visa_application",      # 签证
    "completed",             # 完成
]

MAX_UNIVERSITY_SELECTIONS = 5


class OfferStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class OfferAction(str, Enum):
    ADD = "add"
    ACCEPT = "accept"
    REJECT = "reject"


class VisaStatus(str, Enum):
    NOT_STARTED = "not_started"
    DOCUMENTS_REQUIRED = "documents_required"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class PortalRecord(BaseModel):
    """所有记录的基类：线上字段是 camelCase，Python 里用 snake_case。"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        use_enum_values=True,
        validate_default=True,
    )

    def to_api(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Program(PortalRecord):
    id: int | str
    name: str = ""
    fees: str = ""
    duration: str = ""
    intakes: List[str] = Field(default_factory=list)


class University(PortalRecord):
    id: int | str
    university_name: str = ""
    country: str = ""
    programs: List[Program] = Field(default_factory=list)


class UniversitySelection(PortalRecord):
    university_id: int | str
    university_name: str = ""
    program_id: Optional[int | str] = None
    program_name: str = ""
    country: str = ""
    fees: str = ""
    duration: str = ""
    intakes: List[str] = Field(default_factory=list)
    selected_intake: str = ""
    priority: int = 0


class OfferLetter(PortalRecord):
    id: Optional[int | str] = None
    university_id: Optional[int | str] = None
    university_name: str = ""
    program_name: str = ""
    offer_date: Optional[str] = None
    status: OfferStatus | str = OfferStatus.PENDING
    conditions: List[str] = Field(default_factory=list)
    response_date: Optional[str] = None


class VisaInfo(PortalRecord):
    status: VisaStatus = VisaStatus.NOT_STARTED
    submission_date: Optional[str] = None
    approval_date: Optional[str] = None
    visa_number: Optional[str] = None
    expiry_date: Optional[str] = None


class Consultant(PortalRecord):
    id: int | str
    name: str = ""
    email: str = ""


class Application(PortalRecord):
    id: int | str
    student_id: Optional[int | str] = None
    consultant_id: Optional[int | str] = None
    # 后端新增的状态 / 阶段值原样保留，规则层按"未知"宽松处理
    status: ApplicationStatus | str = ApplicationStatus.DRAFT
    stage: ApplicationStage | str = ApplicationStage.PROFILE_REVIEW
    university_selections: List[UniversitySelection] = Field(default_factory=list)
    offer_letters: List[OfferLetter] = Field(default_factory=list)
    visa_info: VisaInfo = Field(default_factory=VisaInfo)
    submission_date: Optional[str] = None
    completion_date: Optional[str] = None
    rejection_reason: Optional[str] = None
    notes: Optional[str] = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    consultant: Optional[Consultant] = None


class Eligibility(PortalRecord):
    eligible: bool = False
    completion_percentage: float = 0
    missing_fields: List[str] = Field(default_factory=list)
    missing_documents: List[str] = Field(default_factory=list)
    profile: bool = False
    documents: bool = False
