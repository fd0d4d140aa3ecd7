"""
Email Service - transactional emails via SendGrid
"""

import asyncio
import html
import logging
from typing import Optional

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Content, Email, Mail, To

from config.settings import BILLING_YEARLY, PRICE_TABLE, BILLING_MONTHLY

logger = logging.getLogger(__name__)


def _wrap(title: str, body: str) -> str:
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 700px; margin: 0 auto; color: #333333;">
        <h1 style="font-size: 32px;">{title}</h1>
        {body}
        <p style="font-size: 12px; color: #999999;">KittyCare</p>
    </div>
    """


def welcome_template(first_name: str) -> str:
    return _wrap(
        "Welcome Aboard!",
        f"<p>Hi {html.escape(first_name)}, thanks for signing up! Add your cat's profile to get tailored care recommendations.</p>",
    )


def subscription_success_template(plan: str, start_date: str, end_date: str, billing_period: str) -> str:
    pricing = PRICE_TABLE.get(billing_period, PRICE_TABLE[BILLING_MONTHLY])
    period_label = "year" if billing_period == BILLING_YEARLY else "month"
    return _wrap(
        "Subscription Confirmed",
        f"""
        <p>Welcome to KittyCare! Your trial has officially begun.</p>
        <ul>
            <li><b>Subscription Plan:</b> {html.escape(plan)}</li>
            <li><b>Billing:</b> ${pricing['amount']} per {period_label}</li>
            <li><b>Period:</b> {html.escape(str(start_date))} - {html.escape(str(end_date))}</li>
        </ul>
        """,
    )


def subscription_cancel_template(username: str, end_date: str, plan: str, billing_period: str) -> str:
    return _wrap(
        "Subscription Canceled",
        f"""
        <p>Hi {html.escape(username)}, we're sorry to see you go! Please take this email as confirmation
        that your subscription has been canceled.</p>
        <ul>
            <li><b>Subscription Plan:</b> {html.escape(plan)} ({html.escape(billing_period)})</li>
            <li><b>Access Until:</b> {html.escape(str(end_date))}</li>
        </ul>
        """,
    )


class EmailService:
    """Service for sending emails via SendGrid"""

    def __init__(self, client: Optional[SendGridAPIClient], from_email: str, from_name: str):
        self.client = client
        self.from_email = from_email
        self.from_name = from_name

    @classmethod
    def from_settings(cls, settings) -> "EmailService":
        if not settings.sendgrid_api_key:
            logger.warning("SENDGRID_API_KEY not set - emails will not be sent")
            client = None
        else:
            client = SendGridAPIClient(settings.sendgrid_api_key)
        return cls(client, settings.sendgrid_from_email, settings.sendgrid_from_name)

    async def send_email(self, to_email: str, subject: str, html_content: str) -> bool:
        """
        Send an email.

        Returns:
            True if SendGrid accepted the message, False otherwise

        Raises:
            Exception: transport errors from the SendGrid client propagate to the caller
        """
        if not self.client:
            logger.error("Cannot send email - SendGrid not configured")
            return False

        message = Mail(
            from_email=Email(self.from_email, self.from_name),
            to_emails=To(to_email),
            subject=subject,
            html_content=Content("text/html", html_content),
        )
        response = await asyncio.to_thread(self.client.send, message)
        if response.status_code in (200, 201, 202):
            logger.info(f"Email sent successfully to {to_email}: {subject}")
            return True
        logger.error(f"SendGrid error: {response.status_code} - {response.body}")
        return False

    async def send_welcome(self, to_email: str, first_name: str) -> bool:
        return await self.send_email(to_email, "Welcome to KittyCare", welcome_template(first_name))

    async def send_subscription_confirmation(
        self, to_email: str, plan: str, start_date: str, end_date: str, billing_period: str
    ) -> bool:
        return await self.send_email(
            to_email,
            "Subscription Confirmation",
            subscription_success_template(plan, start_date, end_date, billing_period),
        )

    async def send_subscription_canceled(
        self, to_email: str, username: str, end_date: str, plan: str, billing_period: str
    ) -> bool:
        return await self.send_email(
            to_email,
            "Subscription Canceled",
            subscription_cancel_template(username, end_date, plan, billing_period),
        )
