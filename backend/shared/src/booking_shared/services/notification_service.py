"""Payment confirmation emails via Amazon SES.

Delivery outcome is returned as a NotificationResult; failures are never
raised to the caller.
"""

import html
import os
from functools import lru_cache

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from booking_shared.models import ConfirmationNotice, NotificationResult
from booking_shared.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """Sends booking confirmation emails."""

    def __init__(
        self,
        from_email: str | None = None,
        region: str | None = None,
    ) -> None:
        """Initialize notifier.

        Args:
            from_email: Sender address. Defaults to SES_FROM_EMAIL.
            region: SES region. Defaults to SES_REGION, then the boto3 default.
        """
        self.from_email = from_email or os.getenv("SES_FROM_EMAIL")
        self.region = region or os.getenv("SES_REGION")
        self._ses = None

    def _client(self):
        if self._ses is None:
            self._ses = boto3.client("ses", region_name=self.region)
        return self._ses

    def send_payment_confirmation(self, notice: ConfirmationNotice) -> NotificationResult:
        """Send one confirmation listing every activity of the group.

        Args:
            notice: Aggregated group confirmation

        Returns:
            sent with the SES message id, skipped when no sender is
            configured, failed on SES errors
        """
        if not self.from_email:
            logger.warning(
                "SES_FROM_EMAIL not set; skipping confirmation for checkout %s",
                notice.checkout_id,
            )
            return NotificationResult(outcome="skipped")

        subject = f"Confirmation de réservation - {notice.event_name}"
        try:
            response = self._client().send_email(
                Source=self.from_email,
                Destination={"ToAddresses": [notice.to]},
                Message={
                    "Subject": {"Data": subject, "Charset": "UTF-8"},
                    "Body": {
                        "Text": {"Data": render_text(notice), "Charset": "UTF-8"},
                        "Html": {"Data": render_html(notice), "Charset": "UTF-8"},
                    },
                },
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(
                "Failed to send confirmation for checkout %s: %s",
                notice.checkout_id,
                e,
            )
            return NotificationResult(outcome="failed", error=str(e))

        message_id = response.get("MessageId")
        logger.info(
            "Sent confirmation for checkout %s to %s... (%d activities)",
            notice.checkout_id,
            notice.to[:20],
            len(notice.activities),
        )
        return NotificationResult(outcome="sent", message_id=message_id)


def _format_amount(amount) -> str:
    return f"{amount:.2f} €"


def _format_participants(participants: dict[str, int]) -> str:
    return ", ".join(f"{count} {label}" for label, count in participants.items())


def render_text(notice: ConfirmationNotice) -> str:
    """Plain-text body of the confirmation email."""
    lines = [
        f"Bonjour {notice.first_name} {notice.last_name},",
        "",
        f"Nous avons bien reçu votre paiement pour {notice.event_name}.",
    ]
    if notice.event_date:
        lines.append(f"Date : {notice.event_date.strftime('%d/%m/%Y')}")
    lines.append("")
    for activity in notice.activities:
        line = f"- {activity.activity_name} : {_format_amount(activity.amount)}"
        if activity.participants:
            line += f" ({_format_participants(activity.participants)})"
        lines.append(line)
    lines += [
        "",
        f"Total payé : {_format_amount(notice.total_amount)}",
        f"Référence : {notice.checkout_id}",
    ]
    return "\n".join(lines)


def render_html(notice: ConfirmationNotice) -> str:
    """HTML body of the confirmation email."""
    rows = "".join(
        "<tr>"
        f"<td>{html.escape(a.activity_name)}</td>"
        f"<td>{html.escape(_format_participants(a.participants))}</td>"
        f"<td style=\"text-align: right;\">{_format_amount(a.amount)}</td>"
        "</tr>"
        for a in notice.activities
    )
    date_line = (
        f"<p>Date : {notice.event_date.strftime('%d/%m/%Y')}</p>"
        if notice.event_date
        else ""
    )
    return f"""
    <html>
    <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <h2 style="color: #333;">Paiement reçu</h2>
        <p>Bonjour {html.escape(notice.first_name)} {html.escape(notice.last_name)},</p>
        <p>Nous avons bien reçu votre paiement pour {html.escape(notice.event_name)}.</p>
        {date_line}
        <table style="width: 100%; border-collapse: collapse;">{rows}</table>
        <p style="font-weight: bold;">Total payé : {_format_amount(notice.total_amount)}</p>
        <p style="color: #999; font-size: 12px;">Référence : {html.escape(notice.checkout_id)}</p>
    </body>
    </html>
    """


@lru_cache(maxsize=1)
def get_notification_service() -> NotificationService:
    """Get the shared NotificationService instance."""
    return NotificationService()
