"""
Case Services
=============

Dispute registration, assignment and notification records.
"""

import logging
import random
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from .config import get_settings
from .db.models import (
    CaseStatus,
    Dispute,
    DisputeDocument,
    Notification,
    NotificationType,
    Professional,
    ProfessionalStatus,
)
from .schemas import CreateDisputeRequest, SubmitDocumentRequest

logger = logging.getLogger(__name__)


class CaseError(Exception):
    """Raised when a case operation is not allowed in the current state."""


def generate_case_id(now: Optional[datetime] = None) -> str:
    """Human-readable case code, e.g. ODR/2026/483920"""
    year = (now or datetime.now(timezone.utc)).year
    return f"ODR/{year}/{random.randint(100000, 999999)}"


def is_legal_aid_eligible(annual_income: Optional[int]) -> bool:
    """Income below the NALSA threshold qualifies for free legal aid."""
    if annual_income is None:
        return False
    return annual_income < get_settings().legal_aid_income_threshold


def register_dispute(db: Session, request: CreateDisputeRequest, user_id: Optional[str]) -> Dispute:
    case_id = generate_case_id()
    # Retry on the rare collision with an existing code
    while db.query(Dispute.id).filter(Dispute.case_id == case_id).first():
        case_id = generate_case_id()

    dispute = Dispute(
        case_id=case_id,
        user_id=user_id,
        applicant_name=request.applicant.name,
        applicant_phone=request.applicant.phone,
        applicant_email=str(request.applicant.email),
        applicant_address=request.applicant.address,
        annual_income=request.annual_income,
        respondent_name=request.respondent.name,
        respondent_phone=request.respondent.phone,
        respondent_email=str(request.respondent.email),
        respondent_address=request.respondent.address,
        contract_type=request.contract_type,
        resolution_type=request.resolution_type,
        dispute_description=request.dispute_description,
        legal_aid_eligible=is_legal_aid_eligible(request.annual_income),
        status=CaseStatus.PENDING_REVIEW,
    )
    db.add(dispute)
    db.commit()
    db.refresh(dispute)
    logger.info(f"Registered dispute {dispute.case_id} (legal aid eligible: {dispute.legal_aid_eligible})")
    return dispute


def assign_professional(db: Session, dispute: Dispute, professional: Professional) -> Dispute:
    if professional.status != ProfessionalStatus.ACTIVE:
        raise CaseError(f"Professional {professional.name} is inactive")

    previous = dispute.assigned_professional_id
    dispute.assigned_professional_id = professional.id
    dispute.status = CaseStatus.PROFESSIONAL_ASSIGNED
    if previous != professional.id:
        professional.cases_handled = (professional.cases_handled or 0) + 1
    db.commit()
    db.refresh(dispute)

    if dispute.user_id:
        try:
            record_notification(
                db,
                user_id=dispute.user_id,
                dispute_id=dispute.id,
                type=NotificationType.PROFESSIONAL_ASSIGNED,
                title="Professional Assigned",
                message=f"{professional.name} has been assigned to case {dispute.case_id}",
            )
        except Exception as e:
            logger.warning(f"Failed to record assignment notification for {dispute.case_id}: {e}")

    logger.info(f"Assigned {professional.name} to {dispute.case_id}")
    return dispute


def add_submitted_document(db: Session, dispute: Dispute, request: SubmitDocumentRequest) -> DisputeDocument:
    doc = DisputeDocument(
        dispute_id=dispute.id,
        submitted_by=request.submitted_by,
        document_name=request.document_name,
        document_description=request.document_description,
    )
    db.add(doc)
    db.commit()
    db.refresh(doc)
    return doc


def record_notification(
    db: Session,
    user_id: str,
    dispute_id: Optional[str],
    type: NotificationType,
    title: str,
    message: str,
) -> Notification:
    """Append an in-app notification. Rolls back and re-raises on failure."""
    notification = Notification(
        user_id=user_id,
        dispute_id=dispute_id,
        type=type.value,
        title=title,
        message=message,
    )
    try:
        db.add(notification)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return notification
