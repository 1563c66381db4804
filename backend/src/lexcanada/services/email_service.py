"""
Email service for LexCanada.
Handles account verification and billing notifications.
"""

import logging
import smtplib
import ssl
import os
from datetime import datetime
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional

logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending emails."""

    def __init__(self):
        """Initialize email service."""
        self.smtp_server = os.getenv("SMTP_SERVER", "smtp.gmail.com")
        self.smtp_port = int(os.getenv("SMTP_PORT", "587"))
        self.sender_email = os.getenv("SMTP_USERNAME", "")
        self.sender_password = os.getenv("SMTP_PASSWORD", "")
        self.app_name = os.getenv("APP_NAME", "LexCanada")
        self.base_url = os.getenv("BASE_URL", "http://localhost:8050")

        # Check if email is configured
        self.is_configured = bool(self.sender_email and self.sender_password)
        if not self.is_configured:
            logger.warning("Email service not configured - SMTP credentials missing")

    def _send(self, to_email: str, subject: str, text_content: str, html_content: str) -> bool:
        if not self.is_configured:
            logger.warning(f"Email service not configured - not sending '{subject}'")
            return False

        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = self.sender_email
        message["To"] = to_email
        message.attach(MIMEText(text_content, "plain"))
        message.attach(MIMEText(html_content, "html"))

        try:
            context = ssl.create_default_context()
            with smtplib.SMTP(self.smtp_server, self.smtp_port) as server:
                server.starttls(context=context)
                server.login(self.sender_email, self.sender_password)
                server.sendmail(self.sender_email, to_email, message.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send '{subject}' to {to_email}: {e}")
            return False

        logger.info(f"Email '{subject}' sent to {to_email}")
        return True

    def send_verification_email(self, email: str, username: str, verification_token: str) -> bool:
        """Send email verification email."""
        verification_url = f"{self.base_url}/api/v1/auth/verify-email?token={verification_token}"
        subject = f"Verify Your Email - {self.app_name}"

        html_content = f"""
        <html>
        <body>
            <h2>Welcome to {self.app_name}!</h2>
            <p>Hello {username},</p>
            <p>Please confirm your email address to finish setting up your account:</p>
            <p><a href="{verification_url}">Verify Email Address</a></p>
            <p>Or copy and paste this link into your browser:</p>
            <p>{verification_url}</p>
            <p>If you didn't create an account with {self.app_name}, please ignore this email.</p>
        </body>
        </html>
        """

        text_content = f"""
        Welcome to {self.app_name}!

        Hello {username},

        Please confirm your email address by visiting the link below:

        {verification_url}

        If you didn't create an account with {self.app_name}, please ignore this email.
        """

        return self._send(email, subject, text_content, html_content)

    def send_trial_ending_email(self, email: str, username: str, trial_end: Optional[datetime]) -> bool:
        """Warn a subscriber that their free trial is about to end."""
        end_text = trial_end.strftime("%B %d, %Y") if trial_end else "soon"
        subject = f"Your {self.app_name} trial ends {end_text}"

        html_content = f"""
        <html>
        <body>
            <p>Hello {username},</p>
            <p>Your free trial ends on <strong>{end_text}</strong>. Your subscription will continue
            automatically unless you cancel before then.</p>
            <p>You can manage billing from your account settings.</p>
        </body>
        </html>
        """

        text_content = f"""
        Hello {username},

        Your free trial ends on {end_text}. Your subscription will continue
        automatically unless you cancel before then.

        You can manage billing from your account settings.
        """

        return self._send(email, subject, text_content, html_content)


# Global email service instance
email_service = EmailService()
