"""
SQLAlchemy Models for Database
==============================

Schema for online dispute resolution:
- Users and roles (admin / professional / client)
- Professionals (arbitrators, mediators, legal aid advocates)
- Disputes (cases) with assignment, meeting and final document fields
- Meeting log and submitted documents per dispute
- In-app notifications

Supports both PostgreSQL and SQLite via SQLAlchemy.
"""

import enum
from datetime import datetime, timezone
from sqlalchemy import (
    Column, String, Text, Integer, Boolean, DateTime, Enum, ForeignKey, Index, JSON
)
from sqlalchemy.orm import relationship, declarative_base
import uuid

Base = declarative_base()


def generate_uuid():
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class UserRole(str, enum.Enum):
    """Platform roles"""
    ADMIN = "admin"
    PROFESSIONAL = "professional"
    CLIENT = "client"


class ResolutionType(str, enum.Enum):
    """Dispute resolution method chosen at registration"""
    ARBITRATION = "arbitration"
    MEDIATION = "mediation"
    NEGOTIATION = "negotiation"
    CONCILIATION = "conciliation"
    LEGAL_AID = "legal_aid"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


class ProfessionalType(str, enum.Enum):
    """Kind of professional handling cases"""
    ARBITRATOR = "arbitrator"
    MEDIATOR = "mediator"
    LEGAL_AID_ADVOCATE = "legal_aid_advocate"


class ProfessionalStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class DocumentType(str, enum.Enum):
    """Final document issued for a dispute"""
    ARBITRATION_AWARD = "arbitration_award"
    MEDIATION_REPORT = "mediation_report"

    @property
    def document_title(self) -> str:
        return "ARBITRATION AWARD" if self is DocumentType.ARBITRATION_AWARD else "MEDIATION REPORT"

    @property
    def signer_heading(self) -> str:
        return "ARBITRATOR:" if self is DocumentType.ARBITRATION_AWARD else "MEDIATOR:"

    @property
    def display_name(self) -> str:
        return "Arbitration Award" if self is DocumentType.ARBITRATION_AWARD else "Mediation Report"

    @property
    def issued_status(self) -> str:
        return f"{self.display_name} Issued"


class CaseStatus:
    """
    Status tokens used on disputes.

    Status is stored as a free-form string; these are the values the
    service itself writes.
    """
    PENDING_REVIEW = "Pending Review"
    PROFESSIONAL_ASSIGNED = "Professional Assigned"
    MEETING_SCHEDULED = "Meeting Scheduled"
    ARBITRATION_AWARD_ISSUED = "Arbitration Award Issued"
    MEDIATION_REPORT_ISSUED = "Mediation Report Issued"
    CLOSED = "Closed"


class NotificationType(str, enum.Enum):
    MEETING_SCHEDULED = "meeting_scheduled"
    DOCUMENT_ISSUED = "document_issued"
    PROFESSIONAL_ASSIGNED = "professional_assigned"


# =============================================================================
# MODELS
# =============================================================================

class User(Base):
    """Platform user with a single role"""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), nullable=False, unique=True)
    full_name = Column(String(255), nullable=True)
    role = Column(Enum(UserRole), default=UserRole.CLIENT, nullable=False)
    # Set for users acting as a professional
    professional_id = Column(String(36), ForeignKey("professionals.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    disputes = relationship("Dispute", back_populates="user")
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")


class Professional(Base):
    """Arbitrator / mediator / legal aid advocate"""
    __tablename__ = "professionals"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    type = Column(Enum(ProfessionalType), nullable=False)
    specialization = Column(String(255), nullable=True)
    experience = Column(Integer, default=0)
    status = Column(Enum(ProfessionalStatus), default=ProfessionalStatus.ACTIVE, nullable=False)
    cases_handled = Column(Integer, default=0)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    disputes = relationship("Dispute", back_populates="assigned_professional")


class Dispute(Base):
    """Registered dispute / case"""
    __tablename__ = "disputes"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    case_id = Column(String(32), nullable=False, unique=True)  # ODR/<year>/<6 digits>
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Parties
    applicant_name = Column(String(255), nullable=False)
    applicant_phone = Column(String(50), nullable=True)
    applicant_email = Column(String(255), nullable=False)
    applicant_address = Column(Text, nullable=True)
    annual_income = Column(Integer, nullable=True)
    respondent_name = Column(String(255), nullable=False)
    respondent_phone = Column(String(50), nullable=True)
    respondent_email = Column(String(255), nullable=False)
    respondent_address = Column(Text, nullable=True)

    # Dispute details
    contract_type = Column(String(100), nullable=False)
    resolution_type = Column(Enum(ResolutionType), nullable=False)
    dispute_description = Column(Text, nullable=False)
    legal_aid_eligible = Column(Boolean, default=False)
    status = Column(String(100), default=CaseStatus.PENDING_REVIEW, nullable=False)

    # Assignment
    assigned_professional_id = Column(String(36), ForeignKey("professionals.id", ondelete="SET NULL"), nullable=True)

    # Most recent meeting (denormalized from dispute_meetings)
    meeting_date = Column(DateTime, nullable=True)
    meeting_link = Column(String(1000), nullable=True)

    # Final document
    document_type = Column(Enum(DocumentType), nullable=True)
    final_document = Column(JSON, nullable=True)
    award_pdf_url = Column(String(500), nullable=True)  # storage key, not a public URL
    applicant_advocate_name = Column(String(255), nullable=True)
    applicant_advocate_phone = Column(String(50), nullable=True)
    respondent_advocate_name = Column(String(255), nullable=True)
    respondent_advocate_phone = Column(String(50), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    user = relationship("User", back_populates="disputes")
    assigned_professional = relationship("Professional", back_populates="disputes")
    meetings = relationship("DisputeMeeting", back_populates="dispute", cascade="all, delete-orphan",
                            order_by="DisputeMeeting.created_at")
    documents = relationship("DisputeDocument", back_populates="dispute", cascade="all, delete-orphan",
                             order_by="DisputeDocument.created_at")

    __table_args__ = (
        Index("ix_dispute_user", "user_id"),
        Index("ix_dispute_professional", "assigned_professional_id"),
    )


class DisputeMeeting(Base):
    """Append-only log of meetings scheduled for a dispute"""
    __tablename__ = "dispute_meetings"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    dispute_id = Column(String(36), ForeignKey("disputes.id", ondelete="CASCADE"), nullable=False)
    meeting_date = Column(DateTime, nullable=False)
    meeting_link = Column(String(1000), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    dispute = relationship("Dispute", back_populates="meetings")


class DisputeDocument(Base):
    """Document submitted by a party during proceedings"""
    __tablename__ = "dispute_documents"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    dispute_id = Column(String(36), ForeignKey("disputes.id", ondelete="CASCADE"), nullable=False)
    submitted_by = Column(String(255), nullable=False)
    document_name = Column(String(255), nullable=False)
    document_description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    dispute = relationship("Dispute", back_populates="documents")


class Notification(Base):
    """In-app notification for a user"""
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    dispute_id = Column(String(36), ForeignKey("disputes.id", ondelete="CASCADE"), nullable=True)
    type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    read = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    user = relationship("User", back_populates="notifications")

    __table_args__ = (
        Index("ix_notification_user", "user_id", "read"),
    )
