"""
eNyaya Resolve API
==================

FastAPI endpoints for online dispute resolution.

Disputes:
- POST   /api/v1/disputes                    - Register a dispute
- GET    /api/v1/disputes                    - List disputes visible to the caller
- GET    /api/v1/disputes/{id}               - Dispute details
- PATCH  /api/v1/disputes/{id}               - Admin edit
- POST   /api/v1/disputes/{id}/assign        - Assign a professional (admin)
- POST   /api/v1/disputes/{id}/documents     - Submit a document descriptor
- GET    /api/v1/disputes/{id}/meetings      - Meeting history
- POST   /api/v1/disputes/{id}/meetings      - Schedule a meeting (professional)
- POST   /api/v1/disputes/{id}/issue         - Issue award / report (professional)
- GET    /api/v1/disputes/{id}/award         - Time-limited download link
- GET    /api/v1/files/{token}               - Download via signed link
- GET    /api/v1/track/{case_code}           - Public status tracking

Administration:
- /api/v1/professionals                      - Manage professionals
- POST /api/v1/users, PUT /api/v1/users/{id}/role
- /api/v1/notifications                      - Caller's notifications

Run with:
    uvicorn enyaya.api:app --host 0.0.0.0 --port 8000
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from .auth import Resource, SessionContext, get_session_context
from .cases import CaseError, add_submitted_document, assign_professional, register_dispute
from .config import get_settings
from .db.models import Dispute, DisputeMeeting, Notification, Professional, User, UserRole
from .db.session import get_db, get_db_session, init_db
from .issuance import IssuanceCoordinator, IssuanceError, PreconditionError
from .meetings import schedule_meeting
from .schemas import (
    AssignProfessionalRequest,
    AwardLinkResponse,
    CreateDisputeRequest,
    CreateUserRequest,
    DisputeResponse,
    HealthResponse,
    IssueDocumentRequest,
    IssueDocumentResponse,
    MeetingResponse,
    NotificationResponse,
    ProfessionalCreate,
    ProfessionalResponse,
    ProfessionalUpdate,
    ScheduleMeetingRequest,
    SubmitDocumentRequest,
    TrackResponse,
    UpdateDisputeRequest,
    UpdateRoleRequest,
)
from .storage import StorageError, get_storage

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# =============================================================================
# FastAPI App
# =============================================================================

app = FastAPI(
    title="eNyaya Resolve",
    description="Online dispute resolution: registration, assignment, meetings and award issuance",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origin_list(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"],
)

router = APIRouter(prefix="/api/v1")


def _get_dispute_or_404(db: Session, dispute_id: str) -> Dispute:
    dispute = db.get(Dispute, dispute_id)
    if dispute is None:
        raise HTTPException(status_code=404, detail="Dispute not found")
    return dispute


def _require_visible(session: SessionContext, dispute: Dispute):
    # Disputes outside the caller's scope look missing
    if not session.can_view_dispute(dispute):
        raise HTTPException(status_code=404, detail="Dispute not found")


def _require_assigned(session: SessionContext, dispute: Dispute):
    if not session.is_assigned_to(dispute):
        raise HTTPException(status_code=403, detail="Not assigned to this dispute")


# =============================================================================
# Health
# =============================================================================

@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    settings = get_settings()
    return HealthResponse(
        status="healthy",
        version=settings.service_version,
        timestamp=datetime.now(timezone.utc),
        warnings=settings.validate_email_config(),
    )


# =============================================================================
# Disputes
# =============================================================================

@router.post("/disputes", response_model=DisputeResponse, status_code=201, tags=["Disputes"])
async def create_dispute(
    request: CreateDisputeRequest,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    session.require(Resource.DISPUTE_CREATE)
    return register_dispute(db, request, user_id=session.user_id)


@router.get("/disputes", response_model=List[DisputeResponse], tags=["Disputes"])
async def list_disputes(
    status: Optional[str] = None,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    query = db.query(Dispute)
    if session.can(Resource.DISPUTE_READ_ASSIGNED):
        if not session.professional_id:
            return []
        query = query.filter(Dispute.assigned_professional_id == session.professional_id)
    elif not session.can(Resource.DISPUTE_READ_ALL):
        query = query.filter(Dispute.user_id == session.user_id)
    if status:
        query = query.filter(Dispute.status == status)
    return query.order_by(Dispute.created_at.desc()).all()


@router.get("/disputes/{dispute_id}", response_model=DisputeResponse, tags=["Disputes"])
async def get_dispute(
    dispute_id: str,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    dispute = _get_dispute_or_404(db, dispute_id)
    _require_visible(session, dispute)
    return dispute


@router.patch("/disputes/{dispute_id}", response_model=DisputeResponse, tags=["Disputes"])
async def update_dispute(
    dispute_id: str,
    request: UpdateDisputeRequest,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    session.require(Resource.DISPUTE_UPDATE)
    dispute = _get_dispute_or_404(db, dispute_id)
    for field, value in request.model_dump(exclude_unset=True).items():
        setattr(dispute, field, value)
    db.commit()
    db.refresh(dispute)
    return dispute


@router.post("/disputes/{dispute_id}/assign", response_model=DisputeResponse, tags=["Disputes"])
async def assign_dispute(
    dispute_id: str,
    request: AssignProfessionalRequest,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    session.require(Resource.DISPUTE_ASSIGN)
    dispute = _get_dispute_or_404(db, dispute_id)
    professional = db.get(Professional, request.professional_id)
    if professional is None:
        raise HTTPException(status_code=404, detail="Professional not found")
    try:
        return assign_professional(db, dispute, professional)
    except CaseError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/disputes/{dispute_id}/documents", status_code=201, tags=["Disputes"])
async def submit_document(
    dispute_id: str,
    request: SubmitDocumentRequest,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    session.require(Resource.DOCUMENT_SUBMIT)
    dispute = _get_dispute_or_404(db, dispute_id)
    _require_visible(session, dispute)
    doc = add_submitted_document(db, dispute, request)
    return {"id": doc.id, "document_name": doc.document_name}


@router.get("/disputes/{dispute_id}/meetings", response_model=List[MeetingResponse], tags=["Meetings"])
async def list_meetings(
    dispute_id: str,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    dispute = _get_dispute_or_404(db, dispute_id)
    _require_visible(session, dispute)
    return db.query(DisputeMeeting).filter(DisputeMeeting.dispute_id == dispute.id) \
        .order_by(DisputeMeeting.created_at).all()


@router.post("/disputes/{dispute_id}/meetings", tags=["Meetings"])
def create_meeting(
    dispute_id: str,
    request: ScheduleMeetingRequest,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    session.require(Resource.MEETING_SCHEDULE)
    dispute = _get_dispute_or_404(db, dispute_id)
    _require_assigned(session, dispute)

    outcome = schedule_meeting(db, dispute, request)
    if not outcome.success:
        raise HTTPException(status_code=500, detail="Failed to schedule meeting.")
    return {
        "success": True,
        "status": outcome.context["update_case"],
        "warnings": [f"{r.name}: {r.error}" for r in outcome.warnings],
    }


@router.post("/disputes/{dispute_id}/issue", response_model=IssueDocumentResponse, tags=["Award"])
def issue_document(
    dispute_id: str,
    request: IssueDocumentRequest,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    session.require(Resource.AWARD_ISSUE)
    dispute = _get_dispute_or_404(db, dispute_id)
    _require_assigned(session, dispute)

    coordinator = IssuanceCoordinator(db, get_storage())
    try:
        outcome = coordinator.issue_document(dispute.id, request, professional_id=session.professional_id)
    except PreconditionError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except IssuanceError as e:
        logger.error(f"Issuing document for {dispute_id} failed at {e.step}: {e.reason}")
        raise HTTPException(status_code=502, detail="Failed to issue document.")

    return IssueDocumentResponse(
        success=True,
        case_id=outcome.case_id,
        status=outcome.status,
        storage_key=outcome.storage_key,
        warnings=outcome.warnings,
    )


@router.get("/disputes/{dispute_id}/award", response_model=AwardLinkResponse, tags=["Award"])
async def get_award_link(
    dispute_id: str,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    session.require(Resource.AWARD_DOWNLOAD)
    dispute = _get_dispute_or_404(db, dispute_id)
    _require_visible(session, dispute)
    if not dispute.award_pdf_url:
        raise HTTPException(status_code=404, detail="No document issued yet")

    ttl = get_settings().signed_url_ttl_seconds
    token = get_storage().signed_token(dispute.award_pdf_url, ttl)
    return AwardLinkResponse(url=f"/api/v1/files/{token}", expires_in=ttl)


@router.get("/files/{token}", tags=["Award"])
async def download_file(token: str):
    storage = get_storage()
    key = storage.resolve_signed_token(token)
    if key is None:
        raise HTTPException(status_code=403, detail="Link expired or invalid")
    try:
        data = storage.get(key)
    except StorageError:
        raise HTTPException(status_code=404, detail="File not found")
    filename = key.rsplit("/", 1)[-1]
    return Response(
        content=data,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )


@router.get("/track/{case_code:path}", response_model=TrackResponse, tags=["Disputes"])
async def track_dispute(case_code: str, db: Session = Depends(get_db)):
    dispute = db.query(Dispute).filter(Dispute.case_id == case_code).first()
    if dispute is None:
        raise HTTPException(status_code=404, detail="Case not found")
    return TrackResponse(
        case_id=dispute.case_id,
        status=dispute.status,
        resolution_type=dispute.resolution_type,
        filed_at=dispute.created_at,
        meeting_date=dispute.meeting_date,
        document_issued=bool(dispute.award_pdf_url),
    )


# =============================================================================
# Professionals
# =============================================================================

@router.get("/professionals", response_model=List[ProfessionalResponse], tags=["Professionals"])
async def list_professionals(
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    session.require(Resource.PROFESSIONAL_READ)
    return db.query(Professional).order_by(Professional.created_at.desc()).all()


@router.post("/professionals", response_model=ProfessionalResponse, status_code=201, tags=["Professionals"])
async def create_professional(
    request: ProfessionalCreate,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    session.require(Resource.PROFESSIONAL_MANAGE)
    data = request.model_dump()
    data["email"] = str(request.email)
    professional = Professional(**data)
    db.add(professional)
    db.commit()
    db.refresh(professional)
    logger.info(f"Created professional {professional.name} ({professional.type.value})")
    return professional


@router.patch("/professionals/{professional_id}", response_model=ProfessionalResponse, tags=["Professionals"])
async def update_professional(
    professional_id: str,
    request: ProfessionalUpdate,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    session.require(Resource.PROFESSIONAL_MANAGE)
    professional = db.get(Professional, professional_id)
    if professional is None:
        raise HTTPException(status_code=404, detail="Professional not found")
    for field, value in request.model_dump(exclude_unset=True).items():
        setattr(professional, field, str(value) if field == "email" else value)
    db.commit()
    db.refresh(professional)
    return professional


@router.delete("/professionals/{professional_id}", status_code=204, tags=["Professionals"])
async def delete_professional(
    professional_id: str,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    session.require(Resource.PROFESSIONAL_MANAGE)
    professional = db.get(Professional, professional_id)
    if professional is None:
        raise HTTPException(status_code=404, detail="Professional not found")
    db.delete(professional)
    db.commit()
    return Response(status_code=204)


# =============================================================================
# Users & Notifications
# =============================================================================

def _professional_for_role(db: Session, role: UserRole, professional_id: Optional[str]) -> Optional[str]:
    """Professional profile to link for `role`; only the professional role keeps one."""
    if role != UserRole.PROFESSIONAL:
        return None
    if not professional_id:
        raise HTTPException(status_code=422, detail="professional_id is required for the professional role")
    if db.get(Professional, professional_id) is None:
        raise HTTPException(status_code=422, detail="Professional not found")
    return professional_id


@router.post("/users", status_code=201, tags=["Users"])
async def create_user(
    request: CreateUserRequest,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    session.require(Resource.ROLE_MANAGE)
    email = str(request.email).lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=409, detail="User already exists")
    professional_id = _professional_for_role(db, request.role, request.professional_id)
    user = User(email=email, full_name=request.full_name, role=request.role,
                professional_id=professional_id)
    db.add(user)
    db.commit()
    return {"id": user.id, "email": user.email, "role": user.role.value}


@router.put("/users/{user_id}/role", tags=["Users"])
async def update_user_role(
    user_id: str,
    request: UpdateRoleRequest,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    session.require(Resource.ROLE_MANAGE)
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    professional_id = _professional_for_role(db, request.role, request.professional_id)
    user.role = request.role
    user.professional_id = professional_id
    db.commit()
    logger.info(f"User {user.email} role changed to {user.role.value}")
    return {"id": user.id, "email": user.email, "role": user.role.value}


@router.get("/notifications", response_model=List[NotificationResponse], tags=["Notifications"])
async def list_notifications(
    unread_only: bool = False,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    session.require(Resource.NOTIFICATION_READ)
    query = db.query(Notification).filter(Notification.user_id == session.user_id)
    if unread_only:
        query = query.filter(Notification.read.is_(False))
    return query.order_by(Notification.created_at.desc()).all()


@router.post("/notifications/{notification_id}/read", tags=["Notifications"])
async def mark_notification_read(
    notification_id: str,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    notification = db.get(Notification, notification_id)
    if notification is None or notification.user_id != session.user_id:
        raise HTTPException(status_code=404, detail="Notification not found")
    notification.read = True
    db.commit()
    return {"id": notification.id, "read": True}


app.include_router(router)


# =============================================================================
# Startup
# =============================================================================

@app.on_event("startup")
async def startup_event():
    """Initialize on startup"""
    settings = get_settings()
    logger.info(f"Starting {settings.service_name} v{settings.service_version}")
    for warning in settings.validate_email_config():
        logger.warning(warning)

    init_db()

    if settings.bootstrap_admin_email:
        email = settings.bootstrap_admin_email.strip().lower()
        with get_db_session() as db:
            if not db.query(User).filter(User.email == email).first():
                db.add(User(email=email, full_name="Administrator", role=UserRole.ADMIN))
                logger.info(f"Created bootstrap admin {email}")
