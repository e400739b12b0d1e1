"""Email service using SMTP2GO API"""
import requests
from html import escape
from typing import Optional
from app.config import settings
import logging

logger = logging.getLogger(__name__)

class EmailService:
    """Email service for sending emails via SMTP2GO"""

    def __init__(self):
        self.api_key = settings.SMTP2GO_API_KEY
        self.api_url = settings.SMTP2GO_API_URL
        self.sender_email = settings.MAIL_SENDER_EMAIL
        self.sender_name = settings.MAIL_SENDER_NAME

    def send_email(self, to_email: str, subject: str, html_body: str, text_body: Optional[str] = None) -> bool:
        """
        Send an email using SMTP2GO API

        Args:
            to_email: Recipient email address
            subject: Email subject
            html_body: HTML email body
            text_body: Plain text email body (optional)

        Returns:
            bool: True if email sent successfully, False otherwise
        """
        if not self.api_key:
            logger.warning("SMTP2GO_API_KEY not configured. Email not sent.")
            return False

        payload = {
            "api_key": self.api_key,
            "to": [to_email],
            "sender": f"{self.sender_name} <{self.sender_email}>",
            "subject": subject,
            "html_body": html_body,
        }

        if text_body:
            payload["text_body"] = text_body

        try:
            response = requests.post(self.api_url, json=payload, timeout=10)
            response.raise_for_status()

            result = response.json()

            if result.get('data', {}).get('succeeded', 0) > 0:
                logger.info(f"Email sent successfully to {to_email}")
                return True
            else:
                logger.error(f"Failed to send email to {to_email}: {result.get('data', {}).get('error')}")
                return False

        except requests.exceptions.RequestException as e:
            logger.error(f"Error sending email via SMTP2GO: {e}")
            return False

    def send_decryption_code_email(self, to_email: str, file_name: str, code: str) -> bool:
        """
        Send the decryption code for a maximum-security file

        Args:
            to_email: Recipient email address
            file_name: Name of the shared file
            code: 6-digit decryption code

        Returns:
            bool: True if email sent successfully
        """
        subject = f"Decryption Code for {file_name}"

        html_body = self._get_decryption_code_template(file_name, code)
        text_body = self._get_decryption_code_text(file_name, code)

        return self.send_email(to_email, subject, html_body, text_body)

    def _get_decryption_code_template(self, file_name: str, code: str) -> str:
        """Generate HTML email template for a decryption code"""
        return f"""
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Decryption Code - FortiFile</title>
</head>
<body style="margin: 0; padding: 0; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif; background-color: #0D1117;">
    <table width="100%" cellpadding="0" cellspacing="0" style="background-color: #0D1117; padding: 40px 20px;">
        <tr>
            <td align="center">
                <table width="600" cellpadding="0" cellspacing="0" style="background-color: #161B22; border: 1px solid #30363d; border-radius: 12px;">
                    <tr>
                        <td style="padding: 40px;">
                            <h2 style="margin: 0 0 20px; font-size: 20px; color: #C9D1D9;">
                                You have received a secure file
                            </h2>
                            <p style="margin: 0 0 20px; font-size: 15px; line-height: 1.6; color: #8B949E;">
                                Use this code to decrypt <strong style="color: #C9D1D9;">{escape(file_name)}</strong>:
                            </p>
                            <div style="padding: 16px; background-color: #0D1117; border: 1px solid #30363d; border-radius: 6px; text-align: center;">
                                <span style="font-size: 32px; letter-spacing: 8px; color: #88FFFF; font-family: 'JetBrains Mono', monospace;">{code}</span>
                            </div>
                            <p style="margin: 20px 0 0; font-size: 13px; line-height: 1.6; color: #8B949E;">
                                This code expires in <strong style="color: #C9D1D9;">{settings.DECRYPTION_CODE_TTL_MINUTES} minutes</strong>.
                                Do not forward it.
                            </p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>
"""

    def _get_decryption_code_text(self, file_name: str, code: str) -> str:
        """Generate plain text version of the decryption code email"""
        return f"""
FortiFile - Decryption Code

You have received a secure file. Use this code to decrypt {file_name}: {code}

This code expires in {settings.DECRYPTION_CODE_TTL_MINUTES} minutes. Do not forward it.

---
This is an automated message. Please do not reply to this email.
"""

# Singleton instance
email_service = EmailService()
