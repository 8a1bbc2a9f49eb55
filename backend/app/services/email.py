"""Composing and sending system emails. Delivery is best effort."""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from html import escape

from app.core.config import settings
from app.core.sanitize import clean_display_name, clean_email, clean_url
from app.models.enums import EmailKind

logger = logging.getLogger(__name__)

FALLBACK_CLIENT_URL = "https://letschat.example.com"


def _wrap_email_html(*, title: str, intro: str, content: str, footer: str) -> str:
    return f"""\
<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>{escape(title)}</title>
  </head>
  <body style="margin:0;padding:0;background:#f4f4f8;font-family:Arial,sans-serif;color:#111827;">
    <table role="presentation" width="100%" cellpadding="0" cellspacing="0" style="padding:24px 12px;">
      <tr>
        <td align="center">
          <table role="presentation" width="100%" cellpadding="0" cellspacing="0" style="max-width:600px;background:#ffffff;border-radius:12px;overflow:hidden;">
            <tr>
              <td style="padding:20px 24px;background:#4f46e5;color:#ffffff;">
                <h1 style="margin:0;font-size:20px;">{escape(title)}</h1>
              </td>
            </tr>
            <tr>
              <td style="padding:24px;">
                <p style="margin:0 0 14px;font-size:15px;line-height:1.6;">{escape(intro)}</p>
                {content}
              </td>
            </tr>
            <tr>
              <td style="padding:16px 24px;background:#f9fafb;">
                <p style="margin:0;font-size:12px;color:#6b7280;">{escape(footer)}</p>
              </td>
            </tr>
          </table>
        </td>
      </tr>
    </table>
  </body>
</html>
"""


def _cta_button(label: str, href: str) -> str:
    return (
        '<p style="margin:20px 0;">'
        f'<a href="{escape(href, quote=True)}" '
        'style="display:inline-block;background:#4f46e5;color:#ffffff;text-decoration:none;'
        'padding:12px 18px;border-radius:8px;font-weight:600;">'
        f"{escape(label)}</a></p>"
    )


def build_welcome_email(name: str, client_url: str | None) -> tuple[str, str, str]:
    safe_name = clean_display_name(name)
    if not safe_name:
        raise ValueError("invalid_name")
    link = clean_url(client_url)
    if link is None:
        logger.warning("Invalid client URL for welcome email; using fallback link")
        link = FALLBACK_CLIENT_URL

    subject = "Welcome to Letschat"
    body = (
        f"Hi {safe_name},\n\n"
        "Your Letschat account is ready. Jump in and start chatting:\n\n"
        f"{link}\n"
    )
    html_content = (
        f'<p style="margin:0 0 12px;font-size:14px;">Hi {escape(safe_name)},</p>'
        '<p style="margin:0 0 14px;font-size:14px;line-height:1.6;">'
        "Your Letschat account is ready.</p>"
        f"{_cta_button('Open Letschat', link)}"
    )
    html_body = _wrap_email_html(
        title="Welcome to Letschat",
        intro="Thanks for signing up.",
        content=html_content,
        footer="You received this email because an account was created with this address.",
    )
    return subject, body, html_body


def send_email(to: str, subject: str, body: str, *, kind: EmailKind, html_body: str | None = None) -> bool:
    if not settings.SMTP_HOST:
        logger.info("SMTP not configured; skipping %s email to %s", kind.value, to)
        return False
    if not settings.SMTP_FROM:
        logger.warning("SMTP_FROM not configured; skipping %s email to %s", kind.value, to)
        return False

    message = EmailMessage()
    message["From"] = settings.SMTP_FROM
    message["To"] = to
    message["Subject"] = subject
    message.set_content(body)
    if html_body:
        message.add_alternative(html_body, subtype="html")

    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
            server.ehlo()
            if settings.SMTP_TLS:
                server.starttls()
                server.ehlo()
            if settings.SMTP_USER:
                server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            server.send_message(message)
        logger.info("Email sent (%s): %s", kind.value, to)
        return True
    except Exception:
        logger.exception("Email send failed (%s): %s", kind.value, to)
        return False


def send_welcome_email(email: str, name: str) -> bool:
    """Background task run after signup. Never raises."""
    try:
        to = clean_email(email)
        subject, body, html_body = build_welcome_email(name, settings.CLIENT_URL)
        return send_email(to, subject, body, kind=EmailKind.welcome, html_body=html_body)
    except Exception:
        logger.exception("Failed to send welcome email to %s", email)
        return False
