"""Outbound email / WhatsApp notices for complaint creation and resolution."""
import logging
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from html import escape

import requests
from flask import current_app

log = logging.getLogger("brosolve.delivery")

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"


def send_email(to: str, subject: str, html_body: str) -> dict:
    """
    Deliver one HTML email over SMTP. Never raises: the caller's request has
    already succeeded, so failures come back as {"sent": False, ...}.
    """
    cfg = current_app.config
    host = cfg.get("MAILER_SMTP_HOST")
    user = cfg.get("MAILER_USER")
    password = cfg.get("MAILER_PASS")
    if not host or not user or not password:
        return {"sent": False, "reason": "Email config missing"}
    if not to:
        return {"sent": False, "reason": "No recipient"}

    port = int(cfg.get("MAILER_SMTP_PORT") or 587)
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = cfg.get("MAILER_FROM") or "BROSolve <noreply@brosolve.example>"
    msg["To"] = to
    msg["Date"] = formatdate(localtime=True)
    msg["Message-ID"] = make_msgid()
    msg.set_content("This message requires an HTML capable mail client.")
    msg.add_alternative(html_body, subtype="html")

    try:
        context = ssl.create_default_context()
        if port == 465:
            with smtplib.SMTP_SSL(host, port, context=context, timeout=15) as server:
                server.login(user, password)
                server.send_message(msg)
        else:
            with smtplib.SMTP(host, port, timeout=15) as server:
                server.starttls(context=context)
                server.login(user, password)
                server.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:
        log.error("Email send error to=%s: %s", to, exc)
        return {"sent": False, "error": str(exc)}

    log.info("Email sent to=%s subject=%s", to, subject)
    return {"sent": True, "messageId": msg["Message-ID"]}


def send_whatsapp(to: str, body: str) -> dict:
    """Send a WhatsApp text through Twilio's Messages API; same contract as send_email."""
    cfg = current_app.config
    sid = cfg.get("TWILIO_ACCOUNT_SID")
    token = cfg.get("TWILIO_AUTH_TOKEN")
    sender = cfg.get("TWILIO_WHATSAPP_FROM")
    if not sid or not token or not sender:
        return {"sent": False, "reason": "WhatsApp config missing"}
    if not to:
        return {"sent": False, "reason": "No recipient"}

    payload = {
        "From": sender if sender.startswith("whatsapp:") else f"whatsapp:{sender}",
        "To": to if to.startswith("whatsapp:") else f"whatsapp:{to}",
        "Body": body,
    }
    try:
        r = requests.post(TWILIO_MESSAGES_URL.format(sid=sid), data=payload, auth=(sid, token), timeout=10)
        r.raise_for_status()
        data = r.json()
    except (requests.RequestException, ValueError) as exc:
        log.error("WhatsApp send error to=%s: %s", to, exc)
        return {"sent": False, "error": str(exc)}

    return {"sent": True, "sid": data.get("sid")}


def notify_complaint_created(complaint, user) -> dict:
    subject = f"New Complaint: {complaint.title}"
    html_body = (
        "<h2>New Complaint Created</h2>"
        f"<p><strong>Title:</strong> {escape(complaint.title)}</p>"
        f"<p><strong>Category:</strong> {escape(complaint.category)}</p>"
        f"<p><strong>Description:</strong> {escape(complaint.description or '')}</p>"
        f"<p><strong>Raised by:</strong> {escape(user.name)} ({escape(user.email)})</p>"
    )
    recipient = current_app.config.get("STAFF_NOTIFY_EMAIL") or user.email
    result = {"email": send_email(recipient, subject, html_body)}
    if user.phone:
        result["whatsapp"] = send_whatsapp(user.phone, f"New complaint created: {complaint.title}")
    return result


def notify_complaint_resolved(complaint, user) -> dict:
    subject = f"Complaint Resolved: {complaint.title}"
    html_body = (
        "<h2>Your Complaint Has Been Resolved</h2>"
        f"<p><strong>Title:</strong> {escape(complaint.title)}</p>"
        "<p><strong>Status:</strong> Resolved</p>"
        "<p>Thank you for using BROSolve!</p>"
    )
    result = {"email": send_email(user.email, subject, html_body)}
    if user.phone:
        result["whatsapp"] = send_whatsapp(user.phone, f'Your complaint "{complaint.title}" has been resolved.')
    return result
