"""Tests for the transactional e-mail templates."""

import asyncio

from storyspark.services.email import EmailService


class CapturingEmailService(EmailService):
    """Keeps rendered messages instead of sending them."""

    def __init__(self) -> None:
        super().__init__()
        self.sent: list[tuple[str, str, str]] = []

    async def send(self, to: str, subject: str, html: str) -> bool:
        self.sent.append((to, subject, html))
        return True


class TestEmailTemplates:
    """Test how user data is placed in the HTML body."""

    def test_verification_escapes_name(self) -> None:
        """Test markup in the account name is rendered as text."""
        service = CapturingEmailService()
        asyncio.run(service.send_verification_email("ana@example.com", "<b>Ana</b>", "tok"))
        _, _, html = service.sent[0]
        assert "<b>Ana</b>" not in html
        assert "&lt;b&gt;Ana&lt;/b&gt;" in html

    def test_reset_escapes_name(self) -> None:
        """Test the reset e-mail escapes the name too."""
        service = CapturingEmailService()
        asyncio.run(
            service.send_password_reset_email(
                "ana@example.com", '<a href="https://mal.example">Ana</a>', "tok"
            )
        )
        _, _, html = service.sent[0]
        assert "mal.example\">" not in html
        assert "&lt;a href=" in html

    def test_link_carries_token(self) -> None:
        """Test the verification link points at the API with the raw token."""
        service = CapturingEmailService()
        asyncio.run(service.send_verification_email("ana@example.com", "Ana", "abc123"))
        _, subject, html = service.sent[0]
        assert "/api/verify-email?token=abc123" in html
        assert subject.startswith("Verifica tu cuenta")
