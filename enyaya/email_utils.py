"""
Email Utilities
===============

Transactional email for dispute notifications.

Delivery order:
1. Resend HTTP API when RESEND_API_KEY is set
2. SMTP when SMTP_HOST/SMTP_USER/SMTP_PASSWORD are set
3. Otherwise the email is only logged (development mode)
"""

import smtplib
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from html import escape
from typing import List, Optional

import httpx

from .config import get_settings

logger = logging.getLogger(__name__)

MEETING_SCHEDULED = "meeting_scheduled"
AWARD_FINALIZED = "award_finalized"


class NotificationError(Exception):
    """One or more notification emails were not delivered."""


@dataclass
class DeliveryResult:
    recipient: str
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


@dataclass
class DisputeNotification:
    """Details shared by the emails sent to both parties of a dispute"""
    type: str
    case_id: str
    applicant_name: str
    applicant_email: str
    respondent_name: str
    respondent_email: str
    resolution_method: str
    meeting_link: Optional[str] = None
    meeting_date: Optional[datetime] = None
    document_url: Optional[str] = None


def is_email_configured() -> bool:
    """Check if a real delivery channel is configured."""
    settings = get_settings()
    smtp_ready = bool(settings.smtp_host and settings.smtp_user and settings.smtp_password)
    return bool(settings.resend_api_key) or smtp_ready


def _send_via_resend(to_email: str, subject: str, html_body: str, text_body: Optional[str]) -> DeliveryResult:
    settings = get_settings()
    payload = {
        "from": settings.email_from,
        "to": [to_email],
        "subject": subject,
        "html": html_body,
    }
    if text_body:
        payload["text"] = text_body

    try:
        response = httpx.post(
            settings.resend_api_url,
            json=payload,
            headers={"Authorization": f"Bearer {settings.resend_api_key}"},
            timeout=settings.email_timeout,
        )
        response.raise_for_status()
        message_id = response.json().get("id")
    except httpx.HTTPStatusError as e:
        logger.error(f"Resend API error for {to_email}: {e.response.status_code}")
        return DeliveryResult(to_email, False, error=f"HTTP {e.response.status_code}: {e.response.text[:200]}")
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return DeliveryResult(to_email, False, error=str(e))

    logger.info(f"Email sent successfully to {to_email} (id={message_id})")
    return DeliveryResult(to_email, True, message_id=message_id)


def _send_via_smtp(to_email: str, subject: str, html_body: str, text_body: Optional[str]) -> DeliveryResult:
    settings = get_settings()
    try:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = settings.email_from
        msg["To"] = to_email

        if text_body:
            msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.email_timeout) as server:
            if settings.smtp_use_tls:
                server.starttls()
            server.login(settings.smtp_user, settings.smtp_password)
            server.sendmail(settings.email_from, to_email, msg.as_string())
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return DeliveryResult(to_email, False, error=str(e))

    logger.info(f"Email sent successfully to {to_email}")
    return DeliveryResult(to_email, True)


def send_email(
    to_email: str,
    subject: str,
    html_body: str,
    text_body: Optional[str] = None
) -> DeliveryResult:
    """
    Send a single email.

    Never raises; failures are reported in the returned DeliveryResult.
    Without a configured channel the email is logged and treated as sent.
    """
    settings = get_settings()

    if settings.resend_api_key:
        return _send_via_resend(to_email, subject, html_body, text_body)

    if is_email_configured():
        return _send_via_smtp(to_email, subject, html_body, text_body)

    logger.info(f"[DEV MODE] Email would be sent to {to_email}: {subject}")
    logger.debug(f"[DEV MODE] Email body: {text_body or html_body[:200]}")
    return DeliveryResult(to_email, True, message_id="dev-mode")


# =============================================================================
# DISPUTE NOTIFICATIONS
# =============================================================================

def _format_meeting_date(value: Optional[datetime]) -> str:
    if value is None:
        return "To be confirmed"
    return value.strftime("%A, %d %B %Y at %I:%M %p")


def _case_details_html(n: DisputeNotification) -> str:
    return f"""
                <div class="info-box">
                  <h2>Case Details</h2>
                  <p><span class="label">Case ID:</span> {escape(n.case_id)}</p>
                  <p><span class="label">Resolution Method:</span> {escape(n.resolution_method)}</p>
                  <p><span class="label">Applicant:</span> {escape(n.applicant_name)}</p>
                  <p><span class="label">Respondent:</span> {escape(n.respondent_name)}</p>
                </div>"""


def _wrap_html(heading: str, accent: str, body: str) -> str:
    year = datetime.now(timezone.utc).year
    return f"""
    <!DOCTYPE html>
    <html>
      <head>
        <meta charset="utf-8">
        <style>
          body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
          .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
          .header {{ background: {accent}; color: white; padding: 30px; text-align: center; border-radius: 8px 8px 0 0; }}
          .content {{ background: #f9f9f9; padding: 30px; border-radius: 0 0 8px 8px; }}
          .info-box {{ background: white; padding: 20px; margin: 20px 0; border-left: 4px solid {accent}; border-radius: 4px; }}
          .button {{ display: inline-block; background: {accent}; color: white; padding: 12px 30px; text-decoration: none; border-radius: 4px; margin: 20px 0; }}
          .footer {{ text-align: center; margin-top: 30px; color: #666; font-size: 12px; }}
          .label {{ font-weight: bold; color: {accent}; }}
        </style>
      </head>
      <body>
        <div class="container">
          <div class="header">
            <h1>{heading}</h1>
            <p>eNyaya Resolve - Online Dispute Resolution</p>
          </div>
          <div class="content">
            <p>Dear Participant,</p>
            {body}
          </div>
          <div class="footer">
            <p>This email is generated from <strong>eNyaya Resolve</strong></p>
            <p>&copy; {year} eNyaya Resolve. All rights reserved.</p>
          </div>
        </div>
      </body>
    </html>
    """


def build_notification_email(n: DisputeNotification):
    """Return (subject, html_body, text_body) for a dispute notification."""
    if n.type == MEETING_SCHEDULED:
        subject = f"eNyaya Resolve - Meeting Scheduled for Case {n.case_id}"
        when = _format_meeting_date(n.meeting_date)
        if n.meeting_link:
            link_html = f'<p><a href="{escape(n.meeting_link)}" class="button" target="_blank">Join Meeting</a></p>'
        else:
            link_html = "<p>Meeting link will be provided shortly.</p>"
        body = f"""
            <p>A meeting has been scheduled for your dispute resolution case.</p>
            {_case_details_html(n)}
            <div class="info-box">
              <h2>Meeting Information</h2>
              <p><span class="label">Scheduled Time:</span> {escape(when)}</p>
              {link_html}
            </div>
            <p>Please join 5 minutes before the scheduled time and keep all relevant documents ready.</p>"""
        html_body = _wrap_html("Meeting Scheduled", "#667eea", body)
        text_body = (
            f"A meeting has been scheduled for case {n.case_id} ({n.resolution_method}).\n"
            f"Applicant: {n.applicant_name}\nRespondent: {n.respondent_name}\n"
            f"Scheduled time: {when}\n"
            f"Join link: {n.meeting_link or 'will be provided shortly'}\n"
        )
    elif n.type == AWARD_FINALIZED:
        subject = f"eNyaya Resolve - Award Copy Finalized for Case {n.case_id}"
        document_url = n.document_url or f"{get_settings().app_url.rstrip('/')}/track"
        link_html = f'<p><a href="{escape(document_url)}" class="button" target="_blank">Download Award Copy</a></p>'
        body = f"""
            <p>The award copy for your dispute resolution case has been finalized.</p>
            {_case_details_html(n)}
            <div class="info-box">
              <h2>Award Document</h2>
              <p>The final document contains the complete details and resolution of your case.</p>
              {link_html}
            </div>
            <p>Thank you for using eNyaya Resolve for your dispute resolution.</p>"""
        html_body = _wrap_html("Award Copy Finalized", "#10b981", body)
        text_body = (
            f"The award copy for case {n.case_id} ({n.resolution_method}) has been finalized.\n"
            f"Applicant: {n.applicant_name}\nRespondent: {n.respondent_name}\n"
            f"Download: {document_url}\n"
        )
    else:
        raise ValueError(f"Unknown notification type: {n.type}")

    return subject, html_body, text_body


def send_dispute_notification(notification: DisputeNotification) -> List[DeliveryResult]:
    """
    Email both parties of a dispute.

    Each recipient is sent independently; a failure for one does not stop
    the other.
    """
    subject, html_body, text_body = build_notification_email(notification)
    results = []
    for recipient in (notification.applicant_email, notification.respondent_email):
        results.append(send_email(recipient, subject, html_body, text_body))
    return results
