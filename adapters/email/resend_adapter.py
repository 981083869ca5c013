"""
Resend email service adapter.

Every send method returns True/False and never raises: email is a side
effect of the operation that triggered it, not part of it. Without a
Resend API key the message is logged instead of sent.
"""

import logging
from datetime import datetime
from html import escape
from typing import Optional

import resend

from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)


def _money(amount: float, currency: str = "INR") -> str:
    symbol = "₹" if currency == "INR" else f"{currency} "
    return f"{symbol}{amount:,.2f}"


def _date(value: Optional[datetime]) -> str:
    return value.strftime("%d %b %Y") if value else "-"


class ResendEmailService:
    """Transactional email for DigiKite, sent through Resend."""

    def __init__(self):
        if settings.resend_api_key:
            resend.api_key = settings.resend_api_key
        self._from_email = settings.resend_from_email
        self._frontend_url = settings.frontend_url
        self._admin_email = settings.admin_email

    async def _send(self, to_email: str, subject: str, html: str, dev_note: str = "") -> bool:
        if not settings.resend_api_key:
            logger.info("[DEV] Email to %s: %s %s", to_email, subject, dev_note)
            return True

        try:
            resend.Emails.send({
                "from": self._from_email,
                "to": to_email,
                "subject": subject,
                "html": html,
            })
            return True
        except Exception as e:
            logger.error("Failed to send email '%s' to %s: %s", subject, to_email, e)
            return False

    def _layout(self, heading: str, body: str, button: tuple[str, str] | None = None) -> str:
        """Wrap body HTML in the shared DigiKite email shell."""
        button_html = ""
        if button:
            label, url = button
            button_html = f"""
                <div style="text-align: center; margin: 32px 0;">
                    <a href="{url}" style="display: inline-block; background: #2563eb; color: white; text-decoration: none; padding: 14px 32px; border-radius: 8px; font-weight: 500;">
                        {label}
                    </a>
                </div>"""
        return f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="utf-8">
            <meta name="viewport" content="width=device-width, initial-scale=1.0">
        </head>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; background-color: #F5F7FB; padding: 40px 20px;">
            <div style="max-width: 560px; margin: 0 auto; background: white; border-radius: 12px; padding: 40px;">
                <h1 style="color: #0F172A; font-size: 22px; margin: 0 0 24px; text-align: center;">DigiKite</h1>
                <h2 style="color: #0F172A; font-size: 18px; margin-bottom: 16px;">{heading}</h2>
                <div style="color: #334155; line-height: 1.6;">{body}</div>
                {button_html}
                <hr style="border: none; border-top: 1px solid #E2E8F0; margin: 32px 0;">
                <p style="color: #94A3B8; font-size: 12px; text-align: center;">DigiKite &middot; Guild alumni platform</p>
            </div>
        </body>
        </html>
        """

    # --- Account ---------------------------------------------------------

    async def send_verification_email(
        self,
        to_email: str,
        user_name: str,
        verification_token: str,
        verification_code: str,
    ) -> bool:
        """
        Send the email verification link and 6-digit code.

        Args:
            to_email: Recipient email address
            user_name: User's name for personalization
            verification_token: JWT embedded in the link
            verification_code: Code the user can type instead
        """
        url = f"{self._frontend_url}/verify-email?token={verification_token}"
        body = (
            f"<p>Hi {escape(user_name)},</p>"
            "<p>Thanks for signing up for DigiKite. Verify your email address with the "
            "button below, or enter this code:</p>"
            f"<p style=\"font-size: 28px; letter-spacing: 6px; text-align: center;\"><strong>{verification_code}</strong></p>"
            "<p style=\"font-size: 13px; color: #94A3B8;\">The link and code expire in 24 hours.</p>"
        )
        return await self._send(
            to_email,
            "Verify your DigiKite account",
            self._layout("Verify your email address", body, ("Verify Email Address", url)),
            dev_note=f"code={verification_code} url={url}",
        )

    async def send_welcome_email(self, to_email: str, user_name: str) -> bool:
        body = (
            f"<p>Hi {escape(user_name)},</p>"
            "<p>Your email is verified. You can now pick a plan for your institution, "
            "start a free trial and launch your Guild alumni network.</p>"
        )
        return await self._send(
            to_email,
            "Welcome to DigiKite!",
            self._layout("Welcome to DigiKite", body, ("Explore Plans", f"{self._frontend_url}/pricing")),
        )

    # --- Sales -------------------------------------------------------------

    async def send_demo_request_confirmation(
        self, to_email: str, contact_name: str, organization_name: str
    ) -> bool:
        body = (
            f"<p>Hi {escape(contact_name)},</p>"
            f"<p>Thanks for requesting a Guild demo for <strong>{escape(organization_name)}</strong>. "
            "Our team will reach out within one business day to schedule it.</p>"
        )
        return await self._send(
            to_email,
            "We received your demo request",
            self._layout("Demo request received", body),
        )

    async def send_contact_confirmation(self, to_email: str, name: str) -> bool:
        body = (
            f"<p>Hi {escape(name)},</p>"
            "<p>Thanks for getting in touch. We have received your message and will reply shortly.</p>"
        )
        return await self._send(
            to_email,
            "We received your message",
            self._layout("Thanks for contacting DigiKite", body),
        )

    async def send_contact_admin_notification(
        self, name: str, email: str, subject: str, message: str, organization: Optional[str] = None
    ) -> bool:
        body = (
            f"<p><strong>From:</strong> {escape(name)} &lt;{escape(email)}&gt;</p>"
            f"<p><strong>Organization:</strong> {escape(organization or '-')}</p>"
            f"<p><strong>Subject:</strong> {escape(subject)}</p>"
            f"<p style=\"white-space: pre-wrap;\">{escape(message)}</p>"
        )
        return await self._send(
            self._admin_email,
            f"New contact submission: {subject}",
            self._layout("New contact form submission", body),
        )

    async def send_trial_signup_admin_notification(
        self, organization_name: str, contact_email: str, plan_name: str, trial_ends_at: Optional[datetime]
    ) -> bool:
        body = (
            f"<p><strong>{escape(organization_name)}</strong> ({escape(contact_email)}) started a "
            f"free trial of the <strong>{escape(plan_name)}</strong> plan.</p>"
            f"<p>Trial ends: {_date(trial_ends_at)}</p>"
        )
        return await self._send(
            self._admin_email,
            f"New trial: {organization_name}",
            self._layout("New free trial", body),
        )

    # --- Billing -----------------------------------------------------------

    async def send_payment_confirmation(
        self,
        to_email: str,
        name: str,
        plan_name: str,
        billing_cycle: str,
        amount: float,
        currency: str,
        invoice_number: Optional[str],
        valid_until: Optional[datetime],
    ) -> bool:
        body = (
            f"<p>Hi {escape(name)},</p>"
            f"<p>We received your payment of <strong>{_money(amount, currency)}</strong> for the "
            f"{escape(plan_name)} plan ({billing_cycle.lower()}).</p>"
            f"<p>Invoice: {invoice_number or '-'}<br>Subscription valid until: {_date(valid_until)}</p>"
        )
        return await self._send(
            to_email,
            "Payment received - DigiKite",
            self._layout("Payment successful", body, ("Open Portal", f"{self._frontend_url}/portal")),
        )

    async def send_payment_admin_notification(
        self, organization_name: str, amount: float, currency: str, plan_name: str
    ) -> bool:
        body = (
            f"<p><strong>{escape(organization_name)}</strong> paid {_money(amount, currency)} "
            f"for the {escape(plan_name)} plan.</p>"
        )
        return await self._send(
            self._admin_email,
            f"Payment received: {organization_name}",
            self._layout("Payment received", body),
        )

    async def send_invoice_email(
        self,
        to_email: str,
        organization_name: str,
        invoice_number: str,
        total: float,
        currency: str,
        due_date: Optional[datetime],
        pdf_url: Optional[str] = None,
    ) -> bool:
        body = (
            f"<p>Hello {escape(organization_name)},</p>"
            f"<p>Invoice <strong>{invoice_number}</strong> for {_money(total, currency)} "
            f"is due on {_date(due_date)}.</p>"
        )
        button = ("Download Invoice", pdf_url) if pdf_url else ("View in Portal", f"{self._frontend_url}/portal/invoices")
        return await self._send(
            to_email,
            f"Invoice {invoice_number} from DigiKite",
            self._layout("Your invoice", body, button),
        )

    async def send_trial_expiration_reminder(
        self, to_email: str, name: str, organization_name: str, plan_name: str, days_left: int, trial_ends_at: datetime
    ) -> bool:
        body = (
            f"<p>Hi {escape(name)},</p>"
            f"<p>The free trial of the {escape(plan_name)} plan for "
            f"<strong>{escape(organization_name)}</strong> ends in <strong>{days_left} "
            f"day{'s' if days_left != 1 else ''}</strong> ({_date(trial_ends_at)}).</p>"
            "<p>Subscribe now to keep your alumni network running without interruption.</p>"
        )
        return await self._send(
            to_email,
            f"Your Guild trial ends in {days_left} day{'s' if days_left != 1 else ''}",
            self._layout("Your trial is ending soon", body, ("Subscribe Now", f"{self._frontend_url}/portal/subscription")),
        )

    async def send_subscription_expiration_reminder(
        self, to_email: str, name: str, organization_name: str, plan_name: str, days_left: int, end_date: datetime
    ) -> bool:
        body = (
            f"<p>Hi {escape(name)},</p>"
            f"<p>The {escape(plan_name)} subscription for <strong>{escape(organization_name)}</strong> "
            f"expires in <strong>{days_left} days</strong> ({_date(end_date)}) and will not renew automatically.</p>"
        )
        return await self._send(
            to_email,
            f"Your Guild subscription expires in {days_left} days",
            self._layout("Subscription expiring", body, ("Renew Now", f"{self._frontend_url}/portal/subscription")),
        )


# Singleton instance
email_service = ResendEmailService()
