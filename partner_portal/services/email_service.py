import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from html import escape
from typing import Optional, List, Tuple, Any
from decimal import Decimal
import logging

from starlette.concurrency import run_in_threadpool

from partner_portal.config import settings
from partner_portal.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


class EmailService:
    """Email service for sending transactional emails via Gmail SMTP."""

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
    ):
        self.smtp_host = smtp_host or settings.SMTP_HOST
        self.smtp_port = smtp_port or settings.SMTP_PORT
        self.smtp_user = smtp_user if smtp_user is not None else settings.SMTP_USER
        self.smtp_password = smtp_password if smtp_password is not None else settings.SMTP_PASSWORD
        self.from_email = from_email or settings.SMTP_FROM_EMAIL or self.smtp_user
        self.from_name = from_name or settings.SMTP_FROM_NAME

    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> bool:
        """
        Send an email using Gmail SMTP.

        Args:
            to_email: Recipient email address
            subject: Email subject
            html_content: HTML body of the email
            text_content: Plain text body (optional fallback)

        Returns:
            True once the mail server accepted the message

        Raises:
            ExternalServiceError: SMTP not configured or the send failed
        """
        if not self.smtp_user or not self.smtp_password:
            logger.warning("Email not configured. SMTP credentials missing.")
            raise ExternalServiceError("Email is not configured")

        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = f"{self.from_name} <{self.from_email}>"
        msg['To'] = to_email

        if text_content:
            msg.attach(MIMEText(text_content, 'plain'))
        msg.attach(MIMEText(html_content, 'html'))

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=10) as server:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
                server.sendmail(self.from_email, to_email, msg.as_string())
        except smtplib.SMTPAuthenticationError as e:
            logger.error("SMTP Authentication failed. Check email credentials.")
            raise ExternalServiceError("SMTP authentication failed") from e
        except smtplib.SMTPException as e:
            logger.error(f"SMTP error: {e}")
            raise ExternalServiceError(f"SMTP error: {e}") from e
        except OSError as e:
            # Covers socket timeouts and refused connections
            logger.error(f"Network error sending email: {e}")
            raise ExternalServiceError(f"Could not reach mail server: {e}") from e

        logger.info(f"Email sent successfully to {to_email}")
        return True

    def render_order_status_email(
        self,
        customer_name: Optional[str],
        order_number: str,
        status: str,
        items: List[Any],
        total_amount: Decimal,
    ) -> Tuple[str, str, str]:
        """Build subject, HTML and text bodies of an order status email."""
        subject = f"Order {order_number}: {status}"
        name = escape(customer_name or "Partner")

        rows = []
        text_rows = []
        for item in items or []:
            item_name = _item_name(item)
            quantity = _item_quantity(item)
            rows.append(f"""
                <tr>
                    <td style="padding: 10px 0; font-weight: bold;">{escape(item_name)}</td>
                    <td style="padding: 10px 0; text-align: right;">x{quantity}</td>
                </tr>""")
            text_rows.append(f"  {item_name} x{quantity}")

        total = f"₹{Decimal(total_amount):,.2f}"

        html_content = f"""
        <div style="font-family: sans-serif; max-width: 600px; margin: auto; border: 1px solid #e2e8f0; border-radius: 20px; overflow: hidden;">
            <div style="background: #4f46e5; padding: 25px; text-align: center; color: white;">
                <h1 style="margin:0; font-size: 20px;">PRAKRUTHI AQUA</h1>
            </div>
            <div style="padding: 30px; color: #1e293b;">
                <p>Hello <strong>{name}</strong>,</p>
                <p>Your order status has been updated to: <strong>{escape(status)}</strong></p>
                <hr style="border:none; border-top: 1px solid #f1f5f9; margin: 20px 0;">
                <table style="width: 100%;">{''.join(rows)}
                </table>
                <div style="margin-top: 20px; text-align: right; font-size: 18px; font-weight: 900;">
                    Total: {total}
                </div>
            </div>
            <div style="background: #f8fafc; padding: 20px; text-align: center; font-size: 10px; color: #94a3b8;">
                OFFICIAL MANAGEMENT PORTAL
            </div>
        </div>
        """

        text_content = "\n".join([
            f"Hello {customer_name or 'Partner'},",
            "",
            f"Your order status has been updated to: {status}",
            "",
            *text_rows,
            "",
            f"Total: {total}",
        ])
        return subject, html_content, text_content

    async def send_order_status_email(
        self,
        to_email: str,
        customer_name: Optional[str],
        order_number: str,
        status: str,
        items: List[Any],
        total_amount: Decimal,
    ) -> bool:
        """
        Send the order status update email.

        SMTP is blocking, so the send runs in the threadpool.

        Raises:
            ExternalServiceError: the email could not be sent
        """
        subject, html_content, text_content = self.render_order_status_email(
            customer_name, order_number, status, items, total_amount
        )
        return await run_in_threadpool(
            self.send_email, to_email, subject, html_content, text_content
        )


def _item_name(item: Any) -> str:
    if isinstance(item, dict):
        return item.get("product_name") or item.get("name") or "Product Item"
    return getattr(item, "display_name", None) or "Product Item"


def _item_quantity(item: Any) -> int:
    if isinstance(item, dict):
        return item.get("quantity", 0)
    return getattr(item, "quantity", 0)
