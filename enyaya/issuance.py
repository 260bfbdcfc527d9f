"""
Document Issuance
=================

Issue the final arbitration award / mediation report for a dispute.

Steps (see workflow.run_workflow):
1. lookup_professional  BEST_EFFORT  signer name, placeholder on failure
2. render               FATAL        award PDF bytes
3. upload               FATAL        new object under a timestamped key
4. update_case          FATAL        status, final document, storage key
5. notification_record  BEST_EFFORT  in-app notification for the filer
6. email_parties        BEST_EFFORT  email applicant and respondent

A fatal failure stops the run without undoing earlier steps: an upload
followed by a failed case update leaves an unreferenced object behind.
Concurrent issuances for the same case are not serialized; the last case
update wins.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from .cases import record_notification
from .config import get_settings
from .db.models import Dispute, NotificationType, Professional, utc_now
from .email_utils import AWARD_FINALIZED, DisputeNotification, NotificationError, send_dispute_notification
from .exporter import render_award_pdf
from .schemas import AdvocateInfo, AwardDocument, IssueDocumentRequest, SubmittedDocumentEntry
from .storage import LocalStorage
from .workflow import Step, StepPolicy, WorkflowOutcome, run_workflow

logger = logging.getLogger(__name__)

UNKNOWN_PROFESSIONAL = "Unknown Professional"


class PreconditionError(Exception):
    """Issuance rejected before any side effect."""


class IssuanceError(Exception):
    """A fatal issuance step failed."""

    def __init__(self, reason: str, step: Optional[str] = None, outcome: Optional[WorkflowOutcome] = None):
        super().__init__(reason)
        self.reason = reason
        self.step = step
        self.outcome = outcome


@dataclass
class IssuanceOutcome:
    success: bool
    dispute_id: str
    case_id: str
    status: str
    storage_key: str
    workflow: WorkflowOutcome

    @property
    def warnings(self) -> List[str]:
        return [f"{r.name}: {r.error}" for r in self.workflow.warnings]


def _advocate(name: Optional[str], phone: Optional[str]) -> Optional[AdvocateInfo]:
    if not name or not name.strip():
        return None
    return AdvocateInfo(name=name.strip(), phone=(phone or "").strip())


def to_display_time(value: datetime) -> datetime:
    """`value` in the zone dates are printed in. Naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(ZoneInfo(get_settings().display_timezone))


def build_award(dispute: Dispute, request: IssueDocumentRequest, signer_name: str, issued_at: datetime) -> AwardDocument:
    """Assemble the award aggregate from the case record and the issuance form."""
    return AwardDocument(
        case_id=dispute.case_id,
        applicant_name=dispute.applicant_name,
        respondent_name=dispute.respondent_name,
        resolution_type=dispute.resolution_type,
        document_type=request.document_type,
        signer_name=signer_name,
        meetings_count=len(dispute.meetings),
        documents_submitted=[
            SubmittedDocumentEntry(
                submitted_by=d.submitted_by,
                document_name=d.document_name,
                description=d.document_description,
            )
            for d in dispute.documents
        ],
        applicant_advocate=_advocate(request.applicant_advocate_name, request.applicant_advocate_phone),
        respondent_advocate=_advocate(request.respondent_advocate_name, request.respondent_advocate_phone),
        resolution_summary=request.summary,
        outcomes=request.outcome,
        terms_and_conditions=request.terms,
        issued_at=to_display_time(issued_at),
    )


class IssuanceCoordinator:
    """Runs the issuance workflow against a database session and object store."""

    def __init__(
        self,
        db: Session,
        storage: LocalStorage,
        dispatcher: Callable[[DisputeNotification], List[Any]] = send_dispute_notification,
        renderer: Callable[[AwardDocument], bytes] = render_award_pdf,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.storage = storage
        self.dispatcher = dispatcher
        self.renderer = renderer
        self.clock = clock

    def _check_preconditions(self, dispute_id: str, professional_id: Optional[str]) -> Dispute:
        dispute = self.db.get(Dispute, dispute_id)
        if dispute is None:
            raise PreconditionError(f"Dispute {dispute_id} not found")
        if not dispute.assigned_professional_id:
            raise PreconditionError(f"Dispute {dispute.case_id} has no assigned professional")
        if professional_id and professional_id != dispute.assigned_professional_id:
            raise PreconditionError(f"Professional {professional_id} is not assigned to {dispute.case_id}")
        return dispute

    def _steps(self, dispute: Dispute, request: IssueDocumentRequest) -> List[Step]:
        db = self.db
        document_type = request.document_type

        def lookup_professional(ctx: Dict[str, Any]) -> str:
            professional = db.get(Professional, dispute.assigned_professional_id)
            if professional is None:
                raise LookupError(f"professional {dispute.assigned_professional_id} not found")
            return professional.name

        def render(ctx: Dict[str, Any]) -> bytes:
            signer = ctx.get("lookup_professional", UNKNOWN_PROFESSIONAL)
            award = build_award(dispute, request, signer, ctx["issued_at"])
            return self.renderer(award)

        def upload(ctx: Dict[str, Any]) -> str:
            key = self.storage.award_key(dispute.id, ctx["issued_at"])
            self.storage.put(key, ctx["render"], "application/pdf")
            return key

        def update_case(ctx: Dict[str, Any]) -> str:
            applicant = _advocate(request.applicant_advocate_name, request.applicant_advocate_phone)
            respondent = _advocate(request.respondent_advocate_name, request.respondent_advocate_phone)
            try:
                dispute.document_type = document_type
                dispute.final_document = {
                    "document_type": document_type.value,
                    "summary": request.summary,
                    "outcome": request.outcome,
                    "terms": request.terms,
                    "remarks": request.remarks,
                    "issued_date": ctx["issued_at"].isoformat(),
                }
                dispute.award_pdf_url = ctx["upload"]
                dispute.applicant_advocate_name = applicant.name if applicant else None
                dispute.applicant_advocate_phone = (applicant.phone or None) if applicant else None
                dispute.respondent_advocate_name = respondent.name if respondent else None
                dispute.respondent_advocate_phone = (respondent.phone or None) if respondent else None
                dispute.status = document_type.issued_status
                db.commit()
            except Exception:
                db.rollback()
                raise
            return dispute.status

        def notification_record(ctx: Dict[str, Any]):
            if not dispute.user_id:
                raise ValueError(f"dispute {dispute.case_id} has no filing user")
            record_notification(
                db,
                user_id=dispute.user_id,
                dispute_id=dispute.id,
                type=NotificationType.DOCUMENT_ISSUED,
                title="Final Document Issued",
                message=f"{document_type.display_name} has been issued for case {dispute.case_id}",
            )

        def email_parties(ctx: Dict[str, Any]):
            results = self.dispatcher(DisputeNotification(
                type=AWARD_FINALIZED,
                case_id=dispute.case_id,
                applicant_name=dispute.applicant_name,
                applicant_email=dispute.applicant_email,
                respondent_name=dispute.respondent_name,
                respondent_email=dispute.respondent_email,
                resolution_method=dispute.resolution_type.label,
            ))
            failed = [r.recipient for r in results if not r.success]
            if failed:
                raise NotificationError(f"email not delivered to {', '.join(failed)}")
            return results

        return [
            Step("lookup_professional", lookup_professional, StepPolicy.BEST_EFFORT),
            Step("render", render, StepPolicy.FATAL),
            Step("upload", upload, StepPolicy.FATAL),
            Step("update_case", update_case, StepPolicy.FATAL),
            Step("notification_record", notification_record, StepPolicy.BEST_EFFORT),
            Step("email_parties", email_parties, StepPolicy.BEST_EFFORT),
        ]

    def issue_document(
        self,
        dispute_id: str,
        request: IssueDocumentRequest,
        professional_id: Optional[str] = None,
    ) -> IssuanceOutcome:
        """
        Issue the final document for a dispute.

        Raises PreconditionError before any side effect when the dispute is
        missing or unassigned, and IssuanceError when a fatal step fails.
        """
        dispute = self._check_preconditions(dispute_id, professional_id)

        outcome = run_workflow(
            f"issue {dispute.case_id}",
            self._steps(dispute, request),
            context={"issued_at": self.clock()},
        )
        if not outcome.success:
            step = outcome.failed_step
            raise IssuanceError(f"{step} failed: {outcome.fatal_error}", step=step, outcome=outcome)

        logger.info(f"Issued {request.document_type.display_name} for {dispute.case_id} -> {outcome.context['upload']}")
        return IssuanceOutcome(
            success=True,
            dispute_id=dispute.id,
            case_id=dispute.case_id,
            status=outcome.context["update_case"],
            storage_key=outcome.context["upload"],
            workflow=outcome,
        )
