import smtplib
from email.mime.application import MIMEApplication
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, List
import logging

logger = logging.getLogger(__name__)


@dataclass
class EmailAttachment:
    """File attached to an outgoing email."""
    filename: str
    content: bytes
    content_type: str = "application/pdf"


class EmailService:
    """Email service for sending transactional emails via SMTP."""

    def __init__(
        self,
        smtp_host: str = "smtp.gmail.com",
        smtp_port: int = 587,
        smtp_user: str = "",
        smtp_password: str = "",
        from_email: str = "",
        from_name: str = "AXIS CRM"
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.from_email = from_email or smtp_user
        self.from_name = from_name

    def _build_message(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str],
        attachments: Optional[List[EmailAttachment]],
    ) -> MIMEMultipart:
        """multipart/mixed: an html/plain alternative body followed by the attachments."""
        msg = MIMEMultipart('mixed')
        msg['Subject'] = subject
        msg['From'] = f"{self.from_name} <{self.from_email}>"
        msg['To'] = to_email

        body = MIMEMultipart('alternative')
        if text_content:
            body.attach(MIMEText(text_content, 'plain'))
        body.attach(MIMEText(html_content, 'html'))
        msg.attach(body)

        for attachment in attachments or []:
            _, subtype = attachment.content_type.split("/", 1)
            part = MIMEApplication(attachment.content, _subtype=subtype)
            part.add_header('Content-Disposition', 'attachment', filename=attachment.filename)
            msg.attach(part)

        return msg

    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
        attachments: Optional[List[EmailAttachment]] = None
    ) -> bool:
        """
        Send an email over SMTP.

        Args:
            to_email: Recipient email address
            subject: Email subject
            html_content: HTML body of the email
            text_content: Plain text body (optional fallback)
            attachments: Files to attach (optional)

        Returns:
            True if email sent successfully, False otherwise
        """
        if not self.smtp_user or not self.smtp_password:
            logger.warning(f"SMTP credentials missing; email '{subject}' to {to_email} not sent")
            return False

        msg = self._build_message(to_email, subject, html_content, text_content, attachments)

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=10) as server:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
                server.sendmail(self.from_email, to_email, msg.as_string())

            logger.info(f"Email sent successfully to {to_email}")
            return True

        except smtplib.SMTPAuthenticationError:
            logger.error("SMTP Authentication failed. Check email credentials.")
            return False
        except smtplib.SMTPException as e:
            logger.error(f"SMTP error: {e}")
            return False
        except TimeoutError:
            logger.error("SMTP connection timed out")
            return False
        except OSError as e:
            logger.error(f"Network error sending email: {e}")
            return False

    # ==================== TENANT BILLING ====================

    def send_recurring_invoice_email(
        self,
        to_email: str,
        tenant_name: str,
        invoice_number: str,
        total_amount: Decimal,
        due_date: date,
        company_name: str = "AXIS CRM",
        pdf_content: Optional[bytes] = None
    ) -> bool:
        """
        Send a newly generated recurring invoice to the tenant.

        The PDF, when given, is attached as invoice-<number>.pdf.
        """
        subject = f"New Invoice {invoice_number}"
        due_label = due_date.strftime("%b %d, %Y")

        html_content = f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <h2 style="color: #333;">New Invoice Generated</h2>
            <p>Hello {tenant_name},</p>
            <p>A new invoice has been generated for you.</p>
            <div style="background-color: #f5f5f5; padding: 15px; margin: 20px 0; border-radius: 5px;">
                <p style="margin: 0;"><strong>Invoice Number:</strong> {invoice_number}</p>
                <p style="margin: 5px 0;"><strong>Amount Due:</strong> ${total_amount:,.2f}</p>
                <p style="margin: 5px 0;"><strong>Due Date:</strong> {due_label}</p>
            </div>
            <p>You can view and download this invoice from your tenant portal.</p>
            <p>Best regards,<br/>{company_name}</p>
        </div>
        """

        text_content = f"""
        New Invoice Generated

        Hello {tenant_name},

        Invoice Number: {invoice_number}
        Amount Due: ${total_amount:,.2f}
        Due Date: {due_label}

        You can view and download this invoice from your tenant portal.

        Best regards,
        {company_name}
        """

        attachments = None
        if pdf_content:
            attachments = [EmailAttachment(filename=f"invoice-{invoice_number}.pdf", content=pdf_content)]

        return self.send_email(to_email, subject, html_content, text_content, attachments)


def get_email_service() -> EmailService:
    """Get email service instance with settings."""
    from app.config import settings

    return EmailService(
        smtp_host=settings.SMTP_HOST,
        smtp_port=settings.SMTP_PORT,
        smtp_user=settings.SMTP_USER,
        smtp_password=settings.SMTP_PASSWORD,
        from_email=settings.SMTP_FROM_EMAIL,
        from_name=settings.SMTP_FROM_NAME
    )
