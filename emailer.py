import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import List

from config import EMAIL_CONFIG, ENV
from logger import get_logger
from models import ProcessingResult

log = get_logger("emailer")


def send_email(to_addrs: List[str], subject: str, html: str) -> None:
    if not to_addrs:
        log.warning("No recipients for email; skipping.")
        return

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = EMAIL_CONFIG["from_addr"]
    msg["To"] = ", ".join(to_addrs)
    msg.attach(MIMEText(html, "html"))

    try:
        with smtplib.SMTP(EMAIL_CONFIG["smtp_server"], EMAIL_CONFIG["smtp_port"], timeout=30) as server:
            server.starttls()
            if EMAIL_CONFIG["smtp_password"]:
                server.login(EMAIL_CONFIG["smtp_username"], EMAIL_CONFIG["smtp_password"])
            server.sendmail(msg["From"], to_addrs, msg.as_string())
        log.info(f"Email sent: {subject} -> {to_addrs}")
    except (smtplib.SMTPException, OSError) as e:
        log.error(f"Failed sending email '{subject}': {e}")


def _list_block(title: str, items) -> str:
    if not items:
        return ""
    rows = "".join(f"<li>{escape(str(i))}</li>" for i in items)
    return f"<h3>{title}</h3><ul>{rows}</ul>"


def result_summary_html(doc_entry: int, result: ProcessingResult) -> str:
    colour = "#1b7f3b" if result.success else "#b00020"
    verdict = "completed" if result.success else "FAILED"
    return f"""
    <div style="font-family:Segoe UI,Arial,sans-serif; max-width:900px;">
      <h2 style="color:{colour};">Order file processing {verdict} ({ENV})</h2>
      <p><b>DocEntry:</b> {doc_entry} &nbsp; <b>DocNum:</b> {result.order_number or 'n/a'}</p>
      <p><b>Lines:</b> {result.processed_lines} &nbsp;
         <b>Components:</b> {result.processed_components} &nbsp;
         <b>Files copied:</b> {result.copied_files} &nbsp;
         <b>Elapsed:</b> {result.elapsed_ms} ms</p>
      {_list_block("Errors", result.errors)}
      {_list_block("Components without files", result.missing_component_item_codes)}
      {_list_block("Warnings", result.warning_messages)}
      {_list_block("Destination folders", result.created_destination_folders)}
    </div>
    """
