"""Notification service for sending appointment e-mails over SMTP."""

import asyncio
import smtplib
from email.message import EmailMessage
from email.utils import formataddr, make_msgid

import structlog
from pydantic import BaseModel

from app.config import settings
from app.schemas.appointments import AppointmentResponse, ReminderKind

logger = structlog.get_logger(__name__)


class EmailResult(BaseModel):
    """Outcome of a single e-mail send."""

    success: bool
    message_id: str | None = None
    error: str | None = None


def _format_date(appointment: AppointmentResponse) -> str:
    return appointment.appointment_date.strftime("%A, %d %B %Y")


def _format_time(appointment: AppointmentResponse) -> str:
    return appointment.appointment_time.strftime("%H:%M")


class NotificationService:
    """
    Sends confirmation, cancellation and reminder e-mails.

    Every public method returns an ``EmailResult`` and never raises, so
    callers can fire and forget.
    """

    async def send_email(self, to: str, subject: str, body: str) -> EmailResult:
        """
        Send a plain-text e-mail.

        Args:
            to: Recipient address
            subject: Subject line
            body: Message body

        Returns:
            Send result
        """
        if not settings.email_enabled:
            logger.info("email_delivery_disabled", to=to, subject=subject)
            return EmailResult(success=False, error="Email delivery is disabled")

        if not to:
            return EmailResult(success=False, error="Recipient has no e-mail address")

        message = EmailMessage()
        message["From"] = formataddr((settings.email_from_name, settings.email_from_address))
        message["To"] = to
        message["Subject"] = subject
        message["Message-ID"] = make_msgid(domain=settings.email_from_address.split("@")[-1])
        message.set_content(body)

        try:
            await asyncio.to_thread(self._deliver, message)
        except Exception as e:
            logger.error("email_send_failed", to=to, subject=subject, error=str(e))
            return EmailResult(success=False, error=str(e))

        logger.info("email_sent", to=to, subject=subject)
        return EmailResult(success=True, message_id=message["Message-ID"])

    @staticmethod
    def _deliver(message: EmailMessage) -> None:
        """Blocking SMTP delivery, run in a worker thread."""
        with smtplib.SMTP(
            settings.smtp_host,
            settings.smtp_port,
            timeout=settings.smtp_timeout,
        ) as smtp:
            if settings.smtp_use_tls:
                smtp.starttls()
            if settings.smtp_username:
                smtp.login(settings.smtp_username, settings.smtp_password)
            smtp.send_message(message)

    async def send_confirmation(self, appointment: AppointmentResponse) -> EmailResult:
        """E-mail the patient that their appointment is booked."""
        subject = f"Appointment confirmed - {_format_date(appointment)}"
        body = (
            f"Hello {appointment.patient_first_name},\n\n"
            f"Your appointment is confirmed.\n\n"
            f"Treatment: {appointment.specialty_name}\n"
            f"Date: {_format_date(appointment)}\n"
            f"Time: {_format_time(appointment)}\n"
            f"Price: ${appointment.price:,.2f}\n\n"
            f"If you cannot attend, please cancel at least "
            f"{settings.cancellation_cutoff_hours} hours in advance.\n\n"
            f"{settings.email_from_name}\n"
        )
        return await self.send_email(appointment.patient_email, subject, body)

    async def send_cancellation(
        self,
        appointment: AppointmentResponse,
        reason: str | None = None,
        staff_initiated: bool = False,
    ) -> EmailResult:
        """E-mail the patient that their appointment was cancelled."""
        if staff_initiated:
            subject = f"Appointment cancelled by the clinic - {_format_date(appointment)}"
            intro = "We are sorry to let you know that the clinic had to cancel your appointment."
        else:
            subject = f"Appointment cancelled - {_format_date(appointment)}"
            intro = "Your appointment has been cancelled as requested."

        body = (
            f"Hello {appointment.patient_first_name},\n\n"
            f"{intro}\n\n"
            f"Treatment: {appointment.specialty_name}\n"
            f"Date: {_format_date(appointment)}\n"
            f"Time: {_format_time(appointment)}\n"
        )
        if reason:
            body += f"Reason: {reason}\n"
        body += f"\nYou can book a new appointment at any time.\n\n{settings.email_from_name}\n"

        return await self.send_email(appointment.patient_email, subject, body)

    async def send_reminder(
        self,
        appointment: AppointmentResponse,
        kind: ReminderKind = ReminderKind.DAY_BEFORE,
    ) -> EmailResult:
        """E-mail the patient a reminder ahead of the visit."""
        if kind == ReminderKind.TWO_HOURS:
            subject = f"Your appointment is in 2 hours - {_format_time(appointment)}"
            when = "today"
        else:
            subject = f"Reminder: appointment tomorrow at {_format_time(appointment)}"
            when = "tomorrow"

        body = (
            f"Hello {appointment.patient_first_name},\n\n"
            f"This is a reminder of your appointment {when}.\n\n"
            f"Treatment: {appointment.specialty_name}\n"
            f"Date: {_format_date(appointment)}\n"
            f"Time: {_format_time(appointment)}\n\n"
            f"Please arrive 10 minutes early.\n\n"
            f"{settings.email_from_name}\n"
        )
        return await self.send_email(appointment.patient_email, subject, body)

    async def notify_cancellations(
        self,
        appointments: list[AppointmentResponse],
        reason: str,
        staff_initiated: bool = True,
    ) -> int:
        """
        Send one cancellation e-mail per appointment.

        A failed send is logged and counted; the remaining sends still go out.

        Returns:
            Number of failed sends
        """
        failures = 0
        for appointment in appointments:
            try:
                result = await self.send_cancellation(appointment, reason, staff_initiated)
            except Exception as e:
                result = EmailResult(success=False, error=str(e))
            if not result.success:
                failures += 1
                logger.warning(
                    "cancellation_email_failed",
                    appointment_id=appointment.id,
                    error=result.error,
                )

        logger.info(
            "bulk_cancellation_notified",
            total=len(appointments),
            failed=failures,
        )
        return failures


def get_notification_service() -> NotificationService:
    """Dependency returning the notification sender."""
    return NotificationService()
