"""
Meeting Scheduling
==================

A professional schedules a video meeting for a dispute. The case update is
fatal; the meeting log entry, in-app notification and emails are best effort.
"""

import logging
from typing import Any, Callable, Dict, List

from sqlalchemy.orm import Session

from .cases import record_notification
from .db.models import CaseStatus, Dispute, DisputeMeeting, NotificationType
from .email_utils import MEETING_SCHEDULED, DisputeNotification, NotificationError, send_dispute_notification
from .schemas import ScheduleMeetingRequest
from .workflow import Step, StepPolicy, WorkflowOutcome, run_workflow

logger = logging.getLogger(__name__)


def schedule_meeting(
    db: Session,
    dispute: Dispute,
    request: ScheduleMeetingRequest,
    dispatcher: Callable[[DisputeNotification], List[Any]] = send_dispute_notification,
) -> WorkflowOutcome:
    link = str(request.meeting_link)
    when = request.meeting_date

    def update_case(ctx: Dict[str, Any]) -> str:
        try:
            dispute.meeting_date = when
            dispute.meeting_link = link
            dispute.status = CaseStatus.MEETING_SCHEDULED
            db.commit()
        except Exception:
            db.rollback()
            raise
        return dispute.status

    def log_meeting(ctx: Dict[str, Any]) -> str:
        meeting = DisputeMeeting(dispute_id=dispute.id, meeting_date=when, meeting_link=link)
        try:
            db.add(meeting)
            db.commit()
        except Exception:
            db.rollback()
            raise
        return meeting.id

    def notification_record(ctx: Dict[str, Any]):
        if not dispute.user_id:
            raise ValueError(f"dispute {dispute.case_id} has no filing user")
        record_notification(
            db,
            user_id=dispute.user_id,
            dispute_id=dispute.id,
            type=NotificationType.MEETING_SCHEDULED,
            title="Meeting Scheduled",
            message=f"A video conference has been scheduled for case {dispute.case_id} "
                    f"on {when.strftime('%d/%m/%Y %H:%M')}",
        )

    def email_parties(ctx: Dict[str, Any]):
        results = dispatcher(DisputeNotification(
            type=MEETING_SCHEDULED,
            case_id=dispute.case_id,
            applicant_name=dispute.applicant_name,
            applicant_email=dispute.applicant_email,
            respondent_name=dispute.respondent_name,
            respondent_email=dispute.respondent_email,
            resolution_method=dispute.resolution_type.label,
            meeting_link=link,
            meeting_date=when,
        ))
        failed = [r.recipient for r in results if not r.success]
        if failed:
            raise NotificationError(f"email not delivered to {', '.join(failed)}")
        return results

    return run_workflow(
        f"schedule meeting {dispute.case_id}",
        [
            Step("update_case", update_case, StepPolicy.FATAL),
            Step("log_meeting", log_meeting, StepPolicy.BEST_EFFORT),
            Step("notification_record", notification_record, StepPolicy.BEST_EFFORT),
            Step("email_parties", email_parties, StepPolicy.BEST_EFFORT),
        ],
    )
