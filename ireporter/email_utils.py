"""
Email Utilities
===============

Status-change emails for report owners (plus an admin copy).
Supports both SMTP and mock mode for development.
"""

import smtplib
import logging
from datetime import datetime
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from html import escape
from typing import Optional

from .config import get_settings

logger = logging.getLogger(__name__)

REPORT_KIND_DISPLAY = {
    "red-flag": "Red Flag Report",
    "intervention": "Intervention Request",
}

STATUS_COLORS = {
    "draft": "#6c757d",
    "under-investigation": "#ffc107",
    "resolved": "#28a745",
    "rejected": "#dc3545",
}


def kind_display_name(kind) -> str:
    value = getattr(kind, "value", kind)
    return REPORT_KIND_DISPLAY.get(value, str(value))


def _status_value(status) -> str:
    return str(getattr(status, "value", status))


def send_email(
    to_email: str,
    subject: str,
    html_body: str,
    text_body: Optional[str] = None
) -> bool:
    """
    Send an email.

    Returns True if sent successfully, False otherwise.
    In development mode (SMTP not configured), logs the email instead.
    """
    settings = get_settings()

    if not settings.email_configured():
        logger.info(f"[DEV MODE] Email would be sent to {to_email}: {subject}")
        logger.debug(f"[DEV MODE] Email body: {text_body or html_body[:200]}")
        return True

    try:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = settings.smtp_from
        msg["To"] = to_email

        if text_body:
            msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as server:
            if settings.smtp_use_tls:
                server.starttls()
            server.login(settings.smtp_user, settings.smtp_password)
            server.sendmail(settings.smtp_from, to_email, msg.as_string())

        logger.info(f"Email sent successfully to {to_email}")
        return True

    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


def render_status_change_email(
    kind,
    report_title: str,
    old_status,
    new_status,
    report_id: Optional[int] = None,
    recipient_email: Optional[str] = None,
    admin_copy: bool = False,
) -> str:
    """HTML body for a status change; admin_copy adds the owner's address"""
    display = kind_display_name(kind)
    old_value = _status_value(old_status)
    new_value = _status_value(new_status)
    old_color = STATUS_COLORS.get(old_value, "#6c757d")
    new_color = STATUS_COLORS.get(new_value, "#6c757d")
    now = datetime.utcnow()

    if admin_copy:
        greeting = "Hello Admin,"
        intro = "<strong>You have updated a report status:</strong>"
        owner_line = f"<p><strong>User Email:</strong> {escape(recipient_email or 'Not available')}</p>"
        header = f"ADMIN COPY - iReporter {display} Update"
    else:
        greeting = "Hello,"
        intro = f"Your {display.lower()} status has been updated by the administrator:"
        owner_line = ""
        header = f"iReporter - {display} Update"

    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="UTF-8">
        <style>
            body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
            .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
            .header {{ background: #4CAF50; color: white; padding: 20px; text-align: center; border-radius: 5px 5px 0 0; }}
            .content {{ background: #f9f9f9; padding: 20px; border-radius: 0 0 5px 5px; }}
            .status-box {{ background: white; padding: 15px; border-left: 4px solid #4CAF50; margin: 15px 0; }}
            .badge {{ display: inline-block; padding: 5px 10px; border-radius: 3px; color: white; font-weight: bold; margin: 0 5px; }}
            .footer {{ text-align: center; padding: 20px; color: #666; font-size: 12px; }}
        </style>
    </head>
    <body>
        <div class="container">
            <div class="header">
                <h2>{escape(header)}</h2>
            </div>
            <div class="content">
                <p>{greeting}</p>
                <p>{intro}</p>
                <div class="status-box">
                    <p><strong>Report Title:</strong> {escape(report_title or 'N/A')}</p>
                    <p><strong>Report ID:</strong> {report_id if report_id is not None else 'N/A'}</p>
                    {owner_line}
                    <p><strong>Status Changed:</strong>
                        <span class="badge" style="background: {old_color};">{escape(old_value)}</span>
                        &rarr;
                        <span class="badge" style="background: {new_color};">{escape(new_value)}</span>
                    </p>
                    <p><strong>Update Time:</strong> {now.strftime('%Y-%m-%d %H:%M')} UTC</p>
                </div>
                <p>Please log in to your iReporter account to view more details.</p>
                <p>Best regards,<br>iReporter Team</p>
            </div>
            <div class="footer">
                <p>This is an automated notification. Please do not reply to this email.</p>
                <p>&copy; {now.year} iReporter. All rights reserved.</p>
            </div>
        </div>
    </body>
    </html>
    """


def send_status_change_email(
    to_email: str,
    kind,
    report_title: str,
    old_status,
    new_status,
    report_id: Optional[int] = None,
) -> bool:
    """
    Send the owner a status-change email, and an admin copy when ADMIN_EMAIL is set.

    Returns True only if the owner's email was sent. The admin copy never
    affects the result.
    """
    settings = get_settings()
    display = kind_display_name(kind)
    old_value = _status_value(old_status)
    new_value = _status_value(new_status)

    text_body = f"""
Hello,

Your {display.lower()} "{report_title}" changed status: {old_value} -> {new_value}.

Please log in to your iReporter account to view more details.

iReporter Team
"""

    sent = send_email(
        to_email=to_email,
        subject=f"Your {display} Status Has Been Updated - iReporter",
        html_body=render_status_change_email(kind, report_title, old_status, new_status, report_id),
        text_body=text_body,
    )

    if settings.admin_email:
        admin_sent = send_email(
            to_email=settings.admin_email,
            subject=f"[ADMIN] {display} Status Changed - iReporter",
            html_body=render_status_change_email(
                kind, report_title, old_status, new_status, report_id,
                recipient_email=to_email, admin_copy=True,
            ),
        )
        if not admin_sent:
            logger.warning(f"Admin copy of status email for {display} {report_id} was not sent")

    return sent
