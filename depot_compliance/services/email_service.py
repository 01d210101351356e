"""
Отправка email уведомлений через SMTP

Ошибка отправки никогда не прерывает вызывающий код: она логируется,
а метод возвращает False.
"""
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional

from depot_compliance.config import Settings, get_settings
from depot_compliance.logger import logger


class EmailService:
    """
    Отправка писем через SMTP
    """

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.enabled = settings.email_enabled
        self.smtp_host = settings.email_smtp_host
        self.smtp_port = settings.email_smtp_port
        self.smtp_user = settings.email_smtp_user
        self.smtp_password = settings.email_smtp_password
        self.from_address = settings.email_from_address
        self.from_name = settings.email_from_name
        self.use_tls = settings.email_use_tls

    def send_email(self, to: str, subject: str, body: str) -> bool:
        """
        Отправка письма

        Returns:
            True если письмо отправлено
        """
        if not self.enabled:
            logger.debug("Email уведомления отключены, письмо не отправлено", extra={"to": to})
            return False

        if not to:
            logger.warning("Не указан адрес получателя письма")
            return False

        if not all([self.smtp_host, self.from_address]):
            logger.warning("Настройки SMTP не заполнены, письмо не отправлено", extra={"to": to})
            return False

        try:
            msg = MIMEMultipart('alternative')
            msg['Subject'] = subject
            msg['From'] = f"{self.from_name} <{self.from_address}>"
            msg['To'] = to

            msg.attach(MIMEText(body, 'plain', 'utf-8'))

            html_body = f"""
            <html>
                <body>
                    <h2>{subject}</h2>
                    <p>{body.replace(chr(10), '<br>')}</p>
                </body>
            </html>
            """
            msg.attach(MIMEText(html_body, 'html', 'utf-8'))

            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=10) as server:
                if self.use_tls:
                    server.starttls()
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg)

            logger.info("Письмо отправлено", extra={"to": to, "subject": subject})
            return True

        except Exception as e:
            logger.error(
                f"Не удалось отправить письмо: {e}",
                extra={"to": to, "subject": subject, "error": str(e)},
                exc_info=True
            )
            return False
