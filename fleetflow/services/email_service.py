"""
fleetflow/services/email_service.py
────────────────────────────────────
Transactional email via Resend (https://resend.com).

Configuration:
  Set RESEND_API_KEY in environment/.env
  Set EMAIL_FROM in environment/.env (e.g. "FleetFlow <noreply@fleetflow.app>")

All methods are fire-and-forget friendly:
  Use run_background(email.send_invite(...)) so request handlers never wait
  on delivery. Failures are logged and returned, never raised: an invitation
  is valid whether or not its email went out, since the issuer also gets the
  token back.
"""

from __future__ import annotations

import logging

import httpx

from fleetflow.core.config import settings

log = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"

_ROLE_BLURB = {
    "driver": [
        "View your assigned routes and deliveries",
        "Track your performance metrics",
        "Manage your schedule",
    ],
    "manager": [
        "Manage drivers and vehicles",
        "Plan routes and shifts",
        "Monitor fleet performance and maintenance",
    ],
}


class EmailService:

    def __init__(self):
        self.api_key = settings.RESEND_API_KEY
        self.from_addr = settings.EMAIL_FROM
        self.base_url = settings.APP_BASE_URL
        self.enabled = bool(self.api_key and self.api_key != "disabled")

    async def _send(self, to: str, subject: str, html: str) -> dict:
        """
        Core send. Returns {"id": "...", "ok": True} on success.
        Returns {"ok": False, "error": "..."} on failure (never raises).
        """
        if not self.enabled:
            log.info("[EmailService] DISABLED — would send to %s: %s", to, subject)
            return {"ok": True, "id": "disabled", "skipped": True}

        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                resp = await client.post(
                    RESEND_API_URL,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "from": self.from_addr,
                        "to": [to],
                        "subject": subject,
                        "html": html,
                    },
                )
        except httpx.HTTPError as e:
            log.error("[EmailService] Exception sending to %s: %s", to, e)
            return {"ok": False, "error": str(e)}

        if resp.status_code in (200, 201):
            return {"ok": True, "id": resp.json().get("id", "unknown")}
        log.error("[EmailService] Resend error %s: %s", resp.status_code, resp.text)
        return {"ok": False, "error": resp.text, "status": resp.status_code}

    def accept_url(self, invite_token: str, role: str) -> str:
        return f"{self.base_url}/accept-invite?token={invite_token}&type={role}"

    async def send_invite(
        self,
        to_email: str,
        invitee_name: str,
        company_name: str,
        inviter_name: str | None,
        role: str,
        invite_token: str,
        expiry_days: int,
    ) -> dict:
        """Invitation email for a prospective driver or manager."""
        accept_url = self.accept_url(invite_token, role)
        subject = f"You're invited to join {company_name} on FleetFlow"
        perks = "".join(f"<li>{item}</li>" for item in _ROLE_BLURB.get(role, []))
        html = f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
          <div style="background-color: #3b82f6; padding: 20px; text-align: center; border-radius: 5px 5px 0 0;">
            <h2 style="color: white; margin: 0;">Welcome to FleetFlow!</h2>
          </div>
          <div style="background-color: #f9fafb; padding: 30px; border-radius: 0 0 5px 5px;">
            <p>Hi <strong>{invitee_name}</strong>,</p>
            <p>{inviter_name or "Your administrator"} has invited you to join
               <strong>{company_name}</strong> as a <strong>{role}</strong>.</p>
            <h3 style="color: #374151;">What you'll be able to do:</h3>
            <ul style="color: #595959;">{perks}</ul>
            <a href="{accept_url}"
               style="display: inline-block; background: #3b82f6; color: #fff;
                      font-weight: 700; padding: 12px 28px; border-radius: 6px;
                      text-decoration: none;">
              Accept Invitation
            </a>
            <p style="color: #94a3b8; font-size: 12px; margin: 24px 0 0;">
              This invitation expires in {expiry_days} days. If you didn't expect it, ignore this email.
              <br>Or copy this link: <code style="font-size: 11px;">{accept_url}</code>
            </p>
          </div>
        </div>
        """
        return await self._send(to_email, subject, html)

    async def send_password_reset(
        self,
        to_email: str,
        display_name: str | None,
        reset_token: str,
        expiry_minutes: int,
    ) -> dict:
        reset_url = f"{self.base_url}/reset-password?token={reset_token}"
        subject = "Reset your FleetFlow password"
        html = f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
          <p>Hi {display_name or "there"},</p>
          <p>We received a request to reset the password for your FleetFlow account.</p>
          <a href="{reset_url}"
             style="display: inline-block; background: #3b82f6; color: #fff;
                    font-weight: 700; padding: 12px 28px; border-radius: 6px;
                    text-decoration: none;">
            Reset Password
          </a>
          <p style="color: #94a3b8; font-size: 12px; margin: 24px 0 0;">
            This link expires in {expiry_minutes} minutes and works once.
            If you didn't ask for it, ignore this email; your password is unchanged.
          </p>
        </div>
        """
        return await self._send(to_email, subject, html)
