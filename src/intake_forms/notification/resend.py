"""ResendEmailNotifier — delivers submissions to the clinic via the Resend API.

Delivery policy per form submission:
  1. Render the form's HTML document and convert it to PDF (worker thread).
  2. POST one email with the PDF attached.
  3. On any failure in 1-2, POST a plain summary email instead, subject
     suffixed with "(Fallback)".  A delivered fallback counts as success
     with ``fallback=True``; a failed fallback is the reported error.

Contact requests skip the PDF and go out as an HTML email whose
``reply_to`` is the requester's address.

``send`` never raises for delivery failures; it reports them in the
returned :class:`NotificationResult`.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from collections.abc import Mapping
from typing import Any

import httpx

from intake_forms.config import IntakeSettings
from intake_forms.errors import NotificationError
from intake_forms.interfaces import Notifier
from intake_forms.models.codes import FormType
from intake_forms.models.submission import NotificationResult
from intake_forms.notification.renderer import DocumentRenderer

logger = logging.getLogger(__name__)


def attachment_filename(form_type: FormType) -> str:
    """``Pre-Certification Medication List`` -> ``pre-certification_medication_list.pdf``."""
    return "_".join(form_type.display_name.lower().split()) + ".pdf"


class ResendEmailNotifier(Notifier):
    """Email channel backed by the Resend HTTP API.

    Args:
        settings: API key, endpoint, sender and recipient.
        renderer: HTML/PDF document renderer.
        transport: optional httpx transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        settings: IntakeSettings,
        renderer: DocumentRenderer,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._renderer = renderer
        self._transport = transport

    @property
    def _sender(self) -> str:
        return f'"{self._settings.sender_name}" <{self._settings.sender_email}>'

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def send(self, form_type: FormType, form_data: dict[str, Any]) -> NotificationResult:
        if form_type is FormType.CONTACT:
            return await self._send_contact(form_data)

        try:
            await self._send_document(form_type, form_data)
        except Exception as exc:
            logger.warning(
                "Document email for %s failed, sending fallback: %s", form_type.value, exc,
            )
            return await self._send_fallback(form_type, form_data)

        logger.info("Document email sent for %s", form_type.value)
        return NotificationResult(success=True)

    # ------------------------------------------------------------------
    # Delivery paths
    # ------------------------------------------------------------------

    async def _send_document(self, form_type: FormType, form_data: Mapping[str, Any]) -> None:
        html = self._renderer.render_document(form_type, form_data)
        pdf = await asyncio.to_thread(self._renderer.render_pdf, html)
        await self._post({
            "from": self._sender,
            "to": [self._settings.admin_email],
            "subject": f"New {form_type.display_name} Submission",
            "html": self._renderer.render_notice(form_type),
            "attachments": [
                {
                    "filename": attachment_filename(form_type),
                    "content": base64.b64encode(pdf).decode("ascii"),
                }
            ],
        })

    async def _send_fallback(
        self, form_type: FormType, form_data: Mapping[str, Any],
    ) -> NotificationResult:
        try:
            await self._post({
                "from": self._sender,
                "to": [self._settings.admin_email],
                "subject": f"New {form_type.display_name} Submission (Fallback)",
                "html": self._renderer.render_summary(form_type, form_data),
            })
        except NotificationError as exc:
            logger.error("Fallback email for %s also failed: %s", form_type.value, exc)
            return NotificationResult(success=False, fallback=True, error=str(exc))

        logger.info("Fallback email sent for %s", form_type.value)
        return NotificationResult(success=True, fallback=True)

    async def _send_contact(self, form_data: Mapping[str, Any]) -> NotificationResult:
        payload: dict[str, Any] = {
            "from": self._sender,
            "to": [self._settings.admin_email],
            "subject": f"New Message Submission from {form_data.get('name', '')}".strip(),
            "html": self._renderer.render_contact(form_data),
        }
        reply_to = str(form_data.get("email") or "").strip()
        if reply_to:
            payload["reply_to"] = reply_to
        try:
            await self._post(payload)
        except NotificationError as exc:
            logger.error("Contact email failed: %s", exc)
            return NotificationResult(success=False, error=str(exc))

        logger.info("Contact email sent")
        return NotificationResult(success=True)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        """POST one email; raises NotificationError on any failure."""
        if not self._settings.resend_api_key:
            raise NotificationError("RESEND_API_KEY is not configured")

        headers = {"Authorization": f"Bearer {self._settings.resend_api_key}"}
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.email_timeout, transport=self._transport,
            ) as client:
                response = await client.post(
                    self._settings.resend_api_url, json=payload, headers=headers,
                )
        except httpx.HTTPError as exc:
            raise NotificationError(f"Email request failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.is_error:
            message = body.get("message") if isinstance(body, dict) else None
            raise NotificationError(message or f"Email API returned HTTP {response.status_code}")
        return body if isinstance(body, dict) else {}
