from datetime import datetime, timezone
import logging
import smtplib
from email.message import EmailMessage
from sqlalchemy.orm import Session
import uuid
import requests

from flightbot.core.config import settings
from flightbot.models.email_log import EmailLog
from flightbot.schemas.booking import BookingRecord
from flightbot.services.amount_resolver import format_amount

logger = logging.getLogger(__name__)

MAX_SEND_ATTEMPTS = 5


def queue_email(db: Session, to_email: str, subject: str, body: str, related_booking_id: str = "") -> str:
    """Queue and attempt immediate send. Body is stored so the worker can retry on failure."""
    eid = str(uuid.uuid4())
    log = EmailLog(
        id=eid,
        to_email=to_email,
        subject=subject,
        body=body,
        status="queued",
        related_booking_id=related_booking_id,
        attempts=0,
    )
    db.add(log)
    db.commit()

    log.attempts = 1
    try:
        send_email(to_email, subject, body)
        log.status = "sent"
        log.sent_at = datetime.now(timezone.utc)
    except (OSError, smtplib.SMTPException, requests.RequestException, RuntimeError) as e:
        # Worker will retry via process_email_queue
        logger.warning("Email %s to %s failed, queued for retry: %s", eid, to_email, e)
        log.status = "failed"
    db.commit()
    return eid


def send_email(to_email: str, subject: str, body: str):
    """Send email via SendGrid if configured, otherwise SMTP (MailHog recommended for local)."""
    if settings.SENDGRID_API_KEY:
        _send_via_sendgrid(to_email, subject, body)
        return

    msg = EmailMessage()
    msg["From"] = settings.SMTP_FROM
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as smtp:
        if settings.SMTP_USERNAME:
            smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        smtp.send_message(msg)


def _send_via_sendgrid(to_email: str, subject: str, body: str):
    r = requests.post(
        "https://api.sendgrid.com/v3/mail/send",
        json={
            "personalizations": [{"to": [{"email": to_email}]}],
            "from": {"email": settings.SENDGRID_FROM_EMAIL or settings.SMTP_FROM},
            "subject": subject,
            "content": [{"type": "text/plain", "value": body}],
        },
        headers={"Authorization": f"Bearer {settings.SENDGRID_API_KEY}"},
        timeout=20,
    )
    if r.status_code >= 400:
        raise RuntimeError(f"SendGrid error {r.status_code}: {r.text}")


def process_pending_emails(db: Session, limit: int = 50) -> dict:
    """Retry up to `limit` queued or failed emails that still have attempts left. Returns counts."""
    pending = (
        db.query(EmailLog)
        .filter(
            EmailLog.status.in_(["queued", "failed"]),
            EmailLog.attempts < MAX_SEND_ATTEMPTS,
            EmailLog.body.isnot(None),
            EmailLog.body != "",
        )
        .order_by(EmailLog.created_at.asc())
        .limit(limit)
        .all()
    )
    sent, failed = 0, 0
    for log in pending:
        log.attempts = (log.attempts or 0) + 1
        try:
            send_email(log.to_email, log.subject, log.body)
            log.status = "sent"
            log.sent_at = datetime.now(timezone.utc)
            sent += 1
        except (OSError, smtplib.SMTPException, requests.RequestException, RuntimeError) as e:
            logger.warning("Retry of email %s failed: %s", log.id, e)
            log.status = "failed"
            failed += 1
    if pending:
        db.commit()
    return {"processed": len(pending), "sent": sent, "failed": failed}


def confirmation_email_body(record: BookingRecord) -> str:
    f = record.flight
    lines = [
        f"Your booking {record.booking_id} is {record.status.value}.",
        "",
        f"Flight: {f.airline} {f.flightNumber}",
        f"Route: {f.departure.airport} -> {f.arrival.airport}",
        f"Departure: {f.departure.time} on {f.departure.date}",
        f"Arrival: {f.arrival.time} on {f.arrival.date}",
        "",
        "Passengers:",
    ]
    lines += [f"  {i + 1}. {p.full_name}" for i, p in enumerate(record.passengers)]
    lines += [
        "",
        f"Total paid: {format_amount(record.total_amount, record.currency)}",
        f"Payment ID: {record.payment_id or '-'}",
        "",
        "Please carry a valid ID/Passport for travel. Check-in online 24 hours before departure.",
    ]
    return "\n".join(lines)


class EmailNotifier:
    """Sends the booking confirmation to the lead passenger."""

    def __init__(self, db: Session):
        self.db = db

    def booking_confirmed(self, record: BookingRecord) -> str | None:
        if not record.passengers:
            return None
        to_email = record.passengers[0].email
        return queue_email(
            self.db,
            to_email,
            f"Booking confirmed: {record.booking_id}",
            confirmation_email_body(record),
            related_booking_id=record.booking_id,
        )
