"""
Outbound email over SMTP (verification, invitation and password reset messages)
"""

from email.message import EmailMessage
from typing import Optional
from urllib.parse import quote
import logging
import smtplib

from app.config import settings
from app.core.security import mask_email

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    pass


class Mailer:
    def __init__(
        self,
        host: str = None,
        port: int = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = None,
        enabled: bool = None,
    ):
        self.host = host or settings.smtp_host
        self.port = port or settings.smtp_port
        self.user = user if user is not None else settings.smtp_user
        self.password = password if password is not None else settings.smtp_password
        self.use_tls = settings.smtp_use_tls if use_tls is None else use_tls
        self.enabled = settings.email_enabled if enabled is None else enabled

    def send(self, to: str, subject: str, html: str) -> bool:
        """Send an HTML email. Returns False when delivery is disabled; raises EmailDeliveryError on failure."""
        if not self.enabled:
            logger.info(f"Email delivery disabled; skipping '{subject}' to {mask_email(to)}")
            return False
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = f"{settings.email_from_name} <{settings.email_from}>"
        msg["To"] = to
        msg.set_content("Abra este email em um cliente com suporte a HTML.")
        msg.add_alternative(html, subtype="html")
        try:
            with smtplib.SMTP(self.host, self.port, timeout=20) as server:
                if self.use_tls:
                    server.starttls()
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP failure sending '{subject}' to {mask_email(to)}: {type(e).__name__} - {e}")
            raise EmailDeliveryError(str(e)) from e
        logger.info(f"Email '{subject}' sent to {mask_email(to)}")
        return True

    def send_verification_email(self, email: str, token: str) -> bool:
        url = f"{settings.public_url}/verificar-email?token={quote(token)}&email={quote(email)}"
        html = (
            "<p>Olá!</p>"
            "<p>Confirme seu endereço de email para ativar sua conta NaviBot:</p>"
            f'<p><a href="{url}">Verificar email</a></p>'
            "<p>Se você não criou esta conta, ignore esta mensagem.</p>"
        )
        return self.send(email, "Verifique seu email - NaviBot", html)

    def send_invitation_email(
        self,
        email: str,
        token: str,
        user_name: Optional[str] = None,
        admin_name: Optional[str] = None,
        workspace_name: Optional[str] = None,
    ) -> bool:
        url = f"{settings.public_url}/aceitar-convite?token={quote(token)}&email={quote(email)}"
        inviter = admin_name or "Um administrador"
        html = (
            f"<p>Olá{', ' + user_name if user_name else ''}!</p>"
            f"<p>{inviter} convidou você para o workspace {workspace_name or 'NaviBot'}.</p>"
            f'<p><a href="{url}">Aceitar convite</a></p>'
        )
        return self.send(email, "Convite para o Workspace NaviBot", html)

    def send_password_reset_email(self, email: str, token: str) -> bool:
        url = f"{settings.public_url}/recuperar-senha?token={quote(token)}"
        html = (
            "<p>Recebemos um pedido para redefinir sua senha.</p>"
            f'<p><a href="{url}">Redefinir senha</a></p>'
            f"<p>O link expira em {settings.password_reset_expire_minutes} minutos.</p>"
        )
        return self.send(email, "Redefina sua senha", html)


def get_mailer() -> Mailer:
    return Mailer()
