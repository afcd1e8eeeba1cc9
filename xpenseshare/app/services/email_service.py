"""
services/email_service.py — Transactional email client (Maileroo v2 API).

Only one message is ever sent: the invite email that goes to someone who is
added to a group but has no profile yet.

Any failure (client not configured, transport error, non-2xx response)
raises EMAIL_DELIVERY_FAILED (502). The add-member call that triggered the
email fails with it; nothing is retried here.

Layer rules:
  - No Flask imports. Routes build the client with EmailClient.from_config().
"""

from __future__ import annotations

import logging
from html import escape
from typing import Mapping

import requests

from xpenseshare.app.errors import AppError, ErrorCode

logger = logging.getLogger(__name__)

SENDER_DISPLAY_NAME = "Xpense Share"


def _delivery_failed(message: str) -> AppError:
    return AppError(ErrorCode.EMAIL_DELIVERY_FAILED, message, 502)


class EmailClient:

    def __init__(
            self,
            api_url: str,
            api_key: str | None,
            from_email: str | None,
            install_url: str,
            timeout: float = 10,
            session: requests.Session | None = None,
    ) -> None:
        self.api_url     = api_url
        self.api_key     = api_key
        self.from_email  = from_email
        self.install_url = install_url
        self.timeout     = timeout
        self.http        = session or requests.Session()

    @classmethod
    def from_config(cls, config: Mapping) -> "EmailClient":
        return cls(
            api_url=config["MAILEROO_API_URL"],
            api_key=config.get("MAILEROO_API_KEY"),
            from_email=config.get("MAILEROO_FROM_EMAIL"),
            install_url=config["INVITE_INSTALL_URL"],
            timeout=config.get("EMAIL_TIMEOUT_SECONDS", 10),
        )

    def build_invite_payload(
            self,
            to_email: str,
            group_name: str,
            inviter_name: str,
    ) -> dict:
        group_html = escape(group_name)
        inviter_html = escape(inviter_name)
        return {
            "from": {
                "address": self.from_email,
                "display_name": SENDER_DISPLAY_NAME,
            },
            "to": [{"address": to_email}],
            "subject": f"Join {group_name} on Xpense Share",
            "html": (
                '<div style="font-family: Arial, sans-serif; padding: 20px; color: #333;">'
                '<h2 style="color: #10b981;">You\'ve been invited!</h2>'
                "<p>Hi there,</p>"
                f"<p><strong>{inviter_html}</strong> has invited you to join their group "
                f'"<strong>{group_html}</strong>" on <strong>Xpense Share</strong>.</p>'
                "<p>Xpense Share is the easiest way to split bills and track expenses "
                "with friends.</p>"
                f'<p><a href="{escape(self.install_url)}">Install App &amp; Join</a></p>'
                "</div>"
            ),
            "plain": (
                f'{inviter_name} has invited you to join their group "{group_name}" '
                f"on Xpense Share. Install the app to get started: {self.install_url}"
            ),
        }

    def send_invite(self, to_email: str, group_name: str, inviter_name: str) -> None:
        """
        Sends the group invite email.

        Raises:
            AppError(EMAIL_DELIVERY_FAILED, 502)
        """
        if not self.api_key or not self.from_email:
            raise _delivery_failed("Email delivery is not configured.")

        payload = self.build_invite_payload(to_email, group_name, inviter_name)
        try:
            response = self.http.post(
                self.api_url,
                json=payload,
                headers={"X-API-Key": self.api_key},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("Invite email to %s failed: %s", to_email, exc)
            raise _delivery_failed("Could not send the invite email.") from exc

        if not response.ok:
            logger.warning(
                "Invite email to %s rejected: HTTP %s %s",
                to_email, response.status_code, response.text[:200],
            )
            raise _delivery_failed(
                f"The email provider rejected the invite (HTTP {response.status_code})."
            )

        logger.info("Invite email sent to %s for group %r", to_email, group_name)
