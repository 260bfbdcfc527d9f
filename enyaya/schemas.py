"""
Pydantic Schemas for eNyaya Resolve
===================================

Request/response models for the HTTP API and the validated award
aggregate handed to the layout engine.
"""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl, field_validator
from datetime import datetime

from .db.models import (
    DocumentType,
    ProfessionalStatus,
    ProfessionalType,
    ResolutionType,
    UserRole,
)


def _not_blank(value: str) -> str:
    if not value or not value.strip():
        raise ValueError("must not be blank")
    return value


def _present(value):
    # Omitted fields keep their value; an explicit null is rejected
    if value is None:
        raise ValueError("may be omitted but not null")
    return value


# =============================================================================
# AWARD AGGREGATE (layout engine input)
# =============================================================================

class AdvocateInfo(BaseModel):
    """Advocate representing one side"""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    phone: str = ""


class SubmittedDocumentEntry(BaseModel):
    """Document submitted by a party, as listed on the award"""
    model_config = ConfigDict(frozen=True)

    submitted_by: str
    document_name: str
    description: Optional[str] = None


class AwardDocument(BaseModel):
    """
    Everything printed on an arbitration award / mediation report.

    Built once from the dispute record and the professional's form, then
    rendered. Construction fails with a ValidationError when a field is
    missing or of the wrong type, so rendering never sees a partial record.
    """
    model_config = ConfigDict(frozen=True)

    case_id: str = Field(..., min_length=1)
    applicant_name: str = Field(..., min_length=1)
    respondent_name: str = Field(..., min_length=1)
    resolution_type: ResolutionType
    document_type: DocumentType
    signer_name: str = Field(..., min_length=1)
    meetings_count: int = Field(0, ge=0)
    documents_submitted: List[SubmittedDocumentEntry] = Field(default_factory=list)
    applicant_advocate: Optional[AdvocateInfo] = None
    respondent_advocate: Optional[AdvocateInfo] = None
    resolution_summary: str = ""
    outcomes: str = ""
    terms_and_conditions: str = ""
    issued_at: datetime


# =============================================================================
# DISPUTES
# =============================================================================

class PartyDetails(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = None
    email: EmailStr
    address: Optional[str] = None


class CreateDisputeRequest(BaseModel):
    """Dispute registration form"""
    applicant: PartyDetails
    respondent: PartyDetails
    contract_type: str = Field(..., min_length=1, max_length=100)
    resolution_type: ResolutionType
    dispute_description: str = Field(..., min_length=1)
    annual_income: Optional[int] = Field(None, ge=0)


class UpdateDisputeRequest(BaseModel):
    """Admin edit of a dispute (only provided fields change)"""
    contract_type: Optional[str] = Field(None, min_length=1, max_length=100)
    resolution_type: Optional[ResolutionType] = None
    dispute_description: Optional[str] = Field(None, min_length=1)
    status: Optional[str] = Field(None, min_length=1, max_length=100)
    legal_aid_eligible: Optional[bool] = None

    @field_validator("contract_type", "resolution_type", "dispute_description", "status", "legal_aid_eligible")
    @classmethod
    def _not_null(cls, value):
        return _present(value)


class AssignProfessionalRequest(BaseModel):
    professional_id: str


class SubmitDocumentRequest(BaseModel):
    submitted_by: str = Field(..., min_length=1)
    document_name: str = Field(..., min_length=1)
    document_description: Optional[str] = None


class ScheduleMeetingRequest(BaseModel):
    meeting_date: datetime
    meeting_link: HttpUrl


class IssueDocumentRequest(BaseModel):
    """Form submitted by the professional to issue the final document"""
    document_type: DocumentType
    summary: str
    outcome: str
    terms: str
    remarks: Optional[str] = None
    applicant_advocate_name: Optional[str] = None
    applicant_advocate_phone: Optional[str] = None
    respondent_advocate_name: Optional[str] = None
    respondent_advocate_phone: Optional[str] = None

    @field_validator("summary", "outcome", "terms")
    @classmethod
    def _require_text(cls, value: str) -> str:
        return _not_blank(value)


class DisputeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    case_id: str
    applicant_name: str
    applicant_email: str
    respondent_name: str
    respondent_email: str
    contract_type: str
    resolution_type: ResolutionType
    dispute_description: str
    status: str
    legal_aid_eligible: bool
    assigned_professional_id: Optional[str] = None
    meeting_date: Optional[datetime] = None
    meeting_link: Optional[str] = None
    document_type: Optional[DocumentType] = None
    final_document: Optional[Dict[str, Any]] = None
    award_pdf_url: Optional[str] = None
    created_at: datetime


class TrackResponse(BaseModel):
    """Public case tracking view (no contact details)"""
    case_id: str
    status: str
    resolution_type: ResolutionType
    filed_at: datetime
    meeting_date: Optional[datetime] = None
    document_issued: bool


class MeetingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    dispute_id: str
    meeting_date: datetime
    meeting_link: str


class IssueDocumentResponse(BaseModel):
    success: bool
    case_id: str
    status: str
    storage_key: str
    warnings: List[str] = []


class AwardLinkResponse(BaseModel):
    url: str
    expires_in: int


# =============================================================================
# PROFESSIONALS / USERS / NOTIFICATIONS
# =============================================================================

class ProfessionalCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: Optional[str] = None
    type: ProfessionalType
    specialization: Optional[str] = None
    experience: int = Field(0, ge=0)
    status: ProfessionalStatus = ProfessionalStatus.ACTIVE


class ProfessionalUpdate(BaseModel):
    """Admin edit of a professional. Only phone and specialization may be cleared."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    type: Optional[ProfessionalType] = None
    specialization: Optional[str] = None
    experience: Optional[int] = Field(None, ge=0)
    status: Optional[ProfessionalStatus] = None

    @field_validator("name", "email", "type", "experience", "status")
    @classmethod
    def _not_null(cls, value):
        return _present(value)


class ProfessionalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    phone: Optional[str] = None
    type: ProfessionalType
    specialization: Optional[str] = None
    experience: int
    status: ProfessionalStatus
    cases_handled: int


class CreateUserRequest(BaseModel):
    email: EmailStr
    full_name: Optional[str] = None
    role: UserRole = UserRole.CLIENT
    professional_id: Optional[str] = None


class UpdateRoleRequest(BaseModel):
    role: UserRole
    professional_id: Optional[str] = None


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    dispute_id: Optional[str] = None
    type: str
    title: str
    message: str
    read: bool
    created_at: datetime


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: datetime
    warnings: List[str] = []
