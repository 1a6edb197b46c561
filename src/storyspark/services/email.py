"""Transactional e-mail: account verification and password reset."""

from __future__ import annotations

import asyncio
import logging
import smtplib
from html import escape
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from urllib.parse import urlencode

from storyspark.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

APP_DISPLAY_NAME = "Chispas de Historias"

VERIFICATION_TEMPLATE = """
<div style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto;">
  <h1>¡Te damos la bienvenida a {app}!</h1>
  <p>Hola <strong>{name}</strong>,</p>
  <p>Para comenzar tu aventura necesitas verificar tu dirección de correo electrónico.</p>
  <p><a href="{url}">✨ Verificar mi cuenta ✨</a></p>
  <p>¿No puedes hacer clic en el botón? Copia y pega este enlace en tu navegador:<br>{url}</p>
  <p><strong>⏰ ¡Importante!</strong> Este enlace expirará en {hours} horas por razones de seguridad.</p>
  <p>Si no creaste esta cuenta, puedes ignorar este email de forma segura.</p>
  <p>Con cariño,<br><strong>El equipo de {app}</strong></p>
</div>
"""

RESET_TEMPLATE = """
<div style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto;">
  <h1>🔐 Restablece tu contraseña</h1>
  <p>Hola <strong>{name}</strong>,</p>
  <p>Recibimos una solicitud para restablecer la contraseña de tu cuenta en {app}.</p>
  <p><a href="{url}">🔑 Restablecer mi contraseña 🔑</a></p>
  <p>¿No puedes hacer clic en el botón? Copia y pega este enlace en tu navegador:<br>{url}</p>
  <p><strong>⏰ ¡Importante!</strong> Este enlace expirará en {minutes} minutos por razones de seguridad.</p>
  <p>Si no solicitaste este restablecimiento de contraseña, puedes ignorar este email de forma segura.</p>
  <p>Con cariño,<br><strong>El equipo de {app}</strong></p>
</div>
"""


class EmailService:
    """Sends HTML e-mail over SMTP with STARTTLS."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def _send_sync(self, to: str, subject: str, html: str) -> None:
        msg = MIMEMultipart()
        msg["From"] = self.settings.effective_email_from
        msg["To"] = to
        msg["Subject"] = subject
        msg.attach(MIMEText(html, "html"))

        with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port) as server:
            server.starttls()
            server.login(self.settings.smtp_user, self.settings.smtp_password)
            server.send_message(msg)

    async def send(self, to: str, subject: str, html: str) -> bool:
        """Send a message without blocking the event loop.

        Returns:
            False when SMTP is not configured and the message was only logged
        """
        if not self.settings.has_smtp_credentials():
            logger.warning("SMTP not configured; e-mail to %s not sent: %s", to, subject)
            return False
        await asyncio.to_thread(self._send_sync, to, subject, html)
        logger.info("Sent '%s' to %s", subject, to)
        return True

    def _link(self, path: str, token: str) -> str:
        base = self.settings.public_base_url.rstrip("/")
        return f"{base}{path}?{urlencode({'token': token})}"

    async def send_verification_email(self, email: str, name: str, token: str) -> bool:
        url = self._link("/api/verify-email", token)
        html = VERIFICATION_TEMPLATE.format(
            app=APP_DISPLAY_NAME,
            name=escape(name),
            url=url,
            hours=self.settings.email_verification_expire_hours,
        )
        return await self.send(email, f"Verifica tu cuenta en {APP_DISPLAY_NAME}", html)

    async def send_password_reset_email(self, email: str, name: str, token: str) -> bool:
        url = self._link("/reset-password", token)
        html = RESET_TEMPLATE.format(
            app=APP_DISPLAY_NAME,
            name=escape(name),
            url=url,
            minutes=self.settings.password_reset_expire_minutes,
        )
        return await self.send(email, f"Restablece tu contraseña en {APP_DISPLAY_NAME}", html)


def get_email_service() -> EmailService:
    """FastAPI dependency returning the e-mail service."""
    return EmailService()
