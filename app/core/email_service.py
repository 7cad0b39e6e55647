import logging
import smtplib
import ssl
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from html import escape
from typing import List, Optional
from app.core.config import settings

logger = logging.getLogger(__name__)


class EmailService:
    def __init__(self):
        self.smtp_server = settings.SMTP_SERVER
        self.smtp_port = settings.SMTP_PORT
        self.username = settings.SMTP_USERNAME
        self.password = settings.SMTP_PASSWORD
        self.from_email = settings.FROM_EMAIL
        self.from_name = settings.FROM_NAME
        self.timeout = settings.EMAIL_TIMEOUT

    def send_email(
        self,
        to_emails: List[str],
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> bool:
        """Send email over SMTP with STARTTLS. Returns False on delivery failure."""

        if not settings.SEND_EMAILS:
            logger.info(f"Email sending disabled. Would send: {subject} to {to_emails}")
            return True

        if not to_emails:
            return True

        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = f"{self.from_name} <{self.from_email}>"
        message["To"] = ", ".join(to_emails)

        if text_content:
            message.attach(MIMEText(text_content, "plain"))
        message.attach(MIMEText(html_content, "html"))

        try:
            context = ssl.create_default_context()
            with smtplib.SMTP(self.smtp_server, self.smtp_port, timeout=self.timeout) as server:
                server.starttls(context=context)
                if self.username:
                    server.login(self.username, self.password)
                server.sendmail(self.from_email, to_emails, message.as_string())

            logger.info(f"Email sent successfully to {to_emails}")
            return True

        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_emails}: {str(e)}")
            return False

    def send_notification_email(self, to_email: str, title: str, message: str, action_url: str = None, data: dict = None) -> bool:
        """Send workflow notification email with standard template"""

        button = f'<a class="button" href="{escape(action_url)}">View request</a>' if action_url else ""
        html_content = f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="utf-8">
            <title>{escape(title)}</title>
            <style>
                body {{ font-family: Arial, sans-serif; margin: 0; padding: 20px; background-color: #f5f5f5; }}
                .container {{ max-width: 600px; margin: 0 auto; background-color: white; padding: 30px; border-radius: 10px; }}
                .title {{ color: #1f2937; font-size: 20px; margin: 20px 0; }}
                .message {{ color: #4b5563; line-height: 1.6; margin: 20px 0; }}
                .button {{ display: inline-block; background-color: #2563eb; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px; }}
                .footer {{ text-align: center; margin-top: 30px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }}
            </style>
        </head>
        <body>
            <div class="container">
                <h2 class="title">{escape(title)}</h2>
                <div class="message">{escape(message)}</div>
                {self._format_data_section(data) if data else ""}
                {button}
                <div class="footer">
                    <p>This is an automated message from the {escape(settings.PROJECT_NAME)}</p>
                </div>
            </div>
        </body>
        </html>
        """

        text_content = f"{title}\n\n{message}\n{self._format_data_text(data) if data else ''}"
        if action_url:
            text_content += f"\nView request: {action_url}\n"

        return self.send_email([to_email], title, html_content, text_content)

    def _format_data_section(self, data: dict) -> str:
        """Format data dictionary as HTML"""
        html = "<div style='background-color: #f9fafb; padding: 15px; border-radius: 6px; margin: 20px 0;'>"
        html += "<h3 style='margin-top: 0; color: #374151;'>Details:</h3>"
        for key, value in data.items():
            if value is not None:
                formatted_key = key.replace('_', ' ').title()
                html += f"<p style='margin: 5px 0;'><strong>{escape(formatted_key)}:</strong> {escape(str(value))}</p>"
        html += "</div>"
        return html

    def _format_data_text(self, data: dict) -> str:
        """Format data dictionary as plain text"""
        text = "\nDetails:\n"
        for key, value in data.items():
            if value is not None:
                formatted_key = key.replace('_', ' ').title()
                text += f"{formatted_key}: {value}\n"
        return text


email_service = EmailService()
